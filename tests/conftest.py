import json
from unittest.mock import MagicMock

import pytest

import app as app_module
from drafts import DraftStore
from workspace import WorkspaceState


@pytest.fixture
def sample_report():
    return {
        "weeklySummary": ["完成登录模块重构", "上线报表导出", "整理接口文档", "多余的一条"],
        "nextWeekAttention": ["关注性能回归"],
        "dailyLogs": [
            {"day": "星期一", "date": "10.12", "content": "重构登录模块"},
            {"day": "星期三 (Wednesday)", "date": "10.14", "content": "联调报表导出"},
            {"day": "星期五", "date": "10.16", "content": "整理接口文档"},
        ],
        "problemsAndSolutions": [
            {"problem": "测试环境不稳定", "solution": "申请独立环境", "resolved": "推进中"},
        ],
        "nextWeekPlan": [
            {"day": "星期一", "content": "性能压测"},
            {"day": "星期二", "content": "修复压测问题"},
        ],
        "finalSummary": "工作饱和，按时达成目标。",
    }


@pytest.fixture
def sample_meta():
    return {"name": "张三", "role": "后端工程师", "dateRange": "2026-10-12 → 2026-10-16"}


def make_openai_client(content=None, error=None):
    """MagicMock shaped like openai.OpenAI for chat.completions.create."""
    client = MagicMock()
    if error is not None:
        client.chat.completions.create.side_effect = error
    else:
        message = MagicMock()
        message.content = content
        choice = MagicMock()
        choice.message = message
        client.chat.completions.create.return_value = MagicMock(choices=[choice])
    return client


@pytest.fixture
def fake_client_factory():
    return make_openai_client


@pytest.fixture
def state(tmp_path):
    fresh = WorkspaceState(draft_store=DraftStore(tmp_path / "drafts"))
    app_module.app.config["WEEKLY_STATE"] = fresh
    return fresh


@pytest.fixture
def client(state):
    app_module.app.config["TESTING"] = True
    with app_module.app.test_client() as c:
        yield c


@pytest.fixture
def report_json(sample_report):
    return json.dumps(sample_report, ensure_ascii=False)
