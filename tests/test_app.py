"""Tests for the Flask routes (model calls mocked)."""
from unittest.mock import MagicMock, patch

import httpx
import pytest
from openai import APITimeoutError

from conftest import make_openai_client


def _add(client, day, content, status=None):
    task = client.post(f"/api/week/{day}/tasks").get_json()
    body = {"content": content}
    if status:
        body["status"] = status
    return client.patch(f"/api/week/{day}/tasks/{task['id']}", json=body).get_json()


def _generate(client, report_json):
    fake = make_openai_client(content="```json\n" + report_json + "\n```")
    with patch("app.openai_client", return_value=(fake, None)):
        return client.post("/api/report/generate", json={})


def test_health(client):
    assert client.get("/health").get_json() == {"ok": True}


class TestTaskRoutes:
    def test_add_update_cycle_delete(self, client):
        task = _add(client, "Monday", "写周报", status="pending")
        assert task["content"] == "写周报"
        cycled = client.post(f"/api/week/Monday/tasks/{task['id']}/cycle").get_json()
        assert cycled["status"] == "in-progress"
        week = client.delete(f"/api/week/Monday/tasks/{task['id']}").get_json()
        assert week["week"]["Monday"] == []

    def test_unknown_task_is_404(self, client):
        resp = client.post("/api/week/Monday/tasks/nope/cycle")
        assert resp.status_code == 404

    def test_non_object_body_is_400(self, client, state):
        task = _add(client, "Monday", "写周报")
        resp = client.patch(f"/api/week/Monday/tasks/{task['id']}", json=["content", "x"])
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "Request body must be a JSON object."}
        assert state.board["Monday"][0].content == "写周报"

    def test_unknown_day_is_400(self, client):
        assert client.post("/api/week/Sunday/tasks").status_code == 400

    def test_dashboard(self, client):
        assert client.get("/api/dashboard").get_json()["dashboard"] is None
        _add(client, "Monday", "a")
        _add(client, "Monday", "b", status="pending")
        data = client.get("/api/dashboard").get_json()
        assert data["dashboard"]["completion_rate"] == 50
        assert data["dashboard"]["busiest_day"] == "Monday"

    def test_refine(self, client):
        task = _add(client, "Tuesday", "开会")
        fake = make_openai_client(content="参加需求评审会议并确认排期")
        with patch("app.openai_client", return_value=(fake, None)):
            resp = client.post(f"/api/week/Tuesday/tasks/{task['id']}/refine", json={})
        assert resp.get_json()["content"] == "参加需求评审会议并确认排期"

    def test_refine_while_busy_is_blocked(self, client, state):
        task = _add(client, "Tuesday", "开会")
        with state.refining.hold():
            resp = client.post(f"/api/week/Tuesday/tasks/{task['id']}/refine", json={})
        assert resp.status_code == 409


class TestDraftRoutes:
    def test_save_then_load(self, client):
        task = _add(client, "Wednesday", "上线")
        assert client.post("/api/draft/save").get_json()["ok"] is True
        client.post("/api/week/clear")
        week = client.post("/api/draft/load").get_json()
        assert week["has_draft"] is True
        assert week["week"]["Wednesday"] == [task]

    def test_corrupt_draft_leaves_board(self, client, state):
        task = _add(client, "Friday", "复盘")
        state.drafts.directory.mkdir(parents=True, exist_ok=True)
        state.drafts.path.write_text("corrupt", encoding="utf-8")
        resp = client.post("/api/draft/load")
        assert resp.status_code == 400
        assert "损坏" in resp.get_json()["error"]
        assert state.board["Friday"][0].id == task["id"]


class TestReportRoutes:
    def test_generate_requires_content(self, client):
        resp = client.post("/api/report/generate", json={})
        assert resp.status_code == 400

    def test_generate_and_edit(self, client, report_json):
        _add(client, "Monday", "重构登录模块")
        resp = _generate(client, report_json)
        data = resp.get_json()
        assert resp.status_code == 200
        assert data["status"] == "success"
        assert data["report"]["finalSummary"] == "工作饱和，按时达成目标。"

        resp = client.patch(
            "/api/report/field",
            json={"section": "weeklySummary", "index": 1, "value": "X"},
        )
        assert resp.get_json()["report"]["weeklySummary"][:3] == ["完成登录模块重构", "X", "整理接口文档"]

        bad = client.patch("/api/report/field", json={"section": "nope", "index": 0, "value": "X"})
        assert bad.status_code == 400
        assert client.patch("/api/report/field", json="text").status_code == 400

        meta = client.patch("/api/report/meta", json={"field": "name", "value": "王五"}).get_json()
        assert meta["meta"]["name"] == "王五"

        text = client.get("/api/report/text").get_json()["text"]
        assert text.startswith("本周总结:")

    def test_malformed_model_output_keeps_previous_report(self, client, report_json):
        _add(client, "Monday", "重构登录模块")
        _generate(client, report_json)
        fake = make_openai_client(content="this is not json")
        with patch("app.openai_client", return_value=(fake, None)):
            resp = client.post("/api/report/generate", json={})
        assert resp.status_code == 502
        data = client.get("/api/report").get_json()
        assert data["status"] == "error"
        assert data["report"]["finalSummary"] == "工作饱和，按时达成目标。"

    def test_timeout_maps_to_504(self, client):
        _add(client, "Monday", "重构登录模块")
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        fake = make_openai_client(error=APITimeoutError(request=request))
        with patch("app.openai_client", return_value=(fake, None)):
            resp = client.post("/api/report/generate", json={})
        assert resp.status_code == 504

    def test_empty_choices_sets_error_status(self, client):
        _add(client, "Monday", "重构登录模块")
        fake = MagicMock()
        fake.chat.completions.create.return_value = MagicMock(choices=[])
        with patch("app.openai_client", return_value=(fake, None)):
            resp = client.post("/api/report/generate", json={})
        assert resp.status_code == 502
        assert client.get("/api/report").get_json()["status"] == "error"

    def test_unexpected_failure_does_not_leave_loading(self, client, state):
        _add(client, "Monday", "重构登录模块")
        with patch("app.openai_client", return_value=(MagicMock(), None)), patch(
            "app.generate_report", side_effect=RuntimeError("boom")
        ):
            with pytest.raises(RuntimeError):
                client.post("/api/report/generate", json={})
        assert state.report_status == "error"
        assert not state.generating.busy

    def test_generate_while_busy_is_blocked(self, client, state):
        _add(client, "Monday", "重构登录模块")
        with state.generating.hold():
            resp = client.post("/api/report/generate", json={})
        assert resp.status_code == 409

    def test_theme_and_table(self, client, report_json):
        _add(client, "Monday", "重构登录模块")
        _generate(client, report_json)
        theme = client.post("/api/report/theme", json={"primary": "#3b82f6"}).get_json()["theme"]
        assert theme["secondary"] == "#89b4fa"
        table = client.get("/api/report/table").get_json()
        assert table["rows"][0][0]["background"] == "#3b82f6"
        assert client.post("/api/report/theme", json={"name": "不存在"}).status_code == 400

    def test_table_without_report_is_404(self, client):
        assert client.get("/api/report/table").status_code == 404

    def test_index_renders(self, client, report_json):
        assert client.get("/").status_code == 200
        _add(client, "Monday", "重构登录模块")
        _generate(client, report_json)
        page = client.get("/").get_data(as_text=True)
        assert "工作饱和，按时达成目标。" in page


class TestExportRoutes:
    def test_pdf_download(self, client, report_json):
        _add(client, "Monday", "重构登录模块")
        _generate(client, report_json)
        resp = client.get("/export/pdf")
        assert resp.status_code == 200
        assert resp.mimetype == "application/pdf"
        assert resp.data.startswith(b"%PDF")
        assert "work_report.pdf" in resp.headers["Content-Disposition"]

    def test_docx_download(self, client, report_json):
        _add(client, "Monday", "重构登录模块")
        _generate(client, report_json)
        resp = client.get("/export/docx")
        assert resp.status_code == 200
        assert resp.data[:2] == b"PK"

    def test_export_failure_notice(self, client, report_json):
        _add(client, "Monday", "重构登录模块")
        _generate(client, report_json)
        with patch("report_export.rasterize_layout", side_effect=RuntimeError("boom")):
            resp = client.get("/export/pdf")
        assert resp.status_code == 500
        assert resp.get_json() == {"error": "PDF 生成失败，请重试"}

    def test_export_without_report(self, client):
        assert client.get("/export/pdf").status_code == 404
