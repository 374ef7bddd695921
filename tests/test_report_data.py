"""Tests for parsing and editing the structured report."""
import pytest

from report_data import (
    FieldRef,
    ReportDataStore,
    ReportFieldError,
    ReportParseError,
    parse_report,
    plain_text_summary,
    read_field,
    update_field,
    update_meta,
)


class TestParseReport:
    def test_plain_json(self):
        assert parse_report('{"finalSummary": "ok"}') == {"finalSummary": "ok"}

    def test_strips_json_code_fence(self):
        raw = '```json\n{"weeklySummary": ["a"]}\n```'
        assert parse_report(raw) == {"weeklySummary": ["a"]}

    def test_strips_bare_code_fence(self):
        assert parse_report('```\n{"finalSummary": "x"}\n```') == {"finalSummary": "x"}

    def test_malformed_json_raises(self):
        with pytest.raises(ReportParseError):
            parse_report('{"weeklySummary": [')

    def test_non_object_raises(self):
        with pytest.raises(ReportParseError):
            parse_report("[1, 2, 3]")

    def test_partial_report_is_accepted(self):
        assert parse_report('{"dailyLogs": []}') == {"dailyLogs": []}


class TestUpdateField:
    def test_replaces_summary_string_without_mutating(self):
        original = {"weeklySummary": ["a", "b", "c"]}
        result = update_field(original, "weeklySummary", 1, None, "X")
        assert result["weeklySummary"] == ["a", "X", "c"]
        assert result["weeklySummary"] is not original["weeklySummary"]
        assert original["weeklySummary"] == ["a", "b", "c"]
        assert result is not original

    def test_summary_index_past_end_pads_with_blanks(self):
        result = update_field({"nextWeekAttention": ["a"]}, "nextWeekAttention", 2, None, "c")
        assert result["nextWeekAttention"] == ["a", "", "c"]

    def test_missing_summary_section_is_created(self):
        result = update_field({}, "weeklySummary", 0, None, "first")
        assert result["weeklySummary"] == ["first"]

    def test_daily_log_content_copy_on_write(self, sample_report):
        first_log = sample_report["dailyLogs"][0]
        result = update_field(sample_report, "dailyLogs", 0, None, "新内容")
        assert result["dailyLogs"][0]["content"] == "新内容"
        assert result["dailyLogs"][0]["day"] == "星期一"
        assert first_log["content"] == "重构登录模块"
        assert result["dailyLogs"] is not sample_report["dailyLogs"]
        assert result["dailyLogs"][1] is sample_report["dailyLogs"][1]

    def test_daily_log_out_of_range_is_noop(self, sample_report):
        result = update_field(sample_report, "dailyLogs", 10, None, "x")
        assert result == sample_report
        assert result is not sample_report

    def test_next_week_plan_content(self, sample_report):
        result = update_field(sample_report, "nextWeekPlan", 1, None, "复盘")
        assert result["nextWeekPlan"][1] == {"day": "星期二", "content": "复盘"}
        assert sample_report["nextWeekPlan"][1]["content"] == "修复压测问题"

    def test_problem_sub_field(self, sample_report):
        result = update_field(sample_report, "problemsAndSolutions", 0, "resolved", "是")
        assert result["problemsAndSolutions"][0]["resolved"] == "是"
        assert result["problemsAndSolutions"][0]["problem"] == "测试环境不稳定"
        assert sample_report["problemsAndSolutions"][0]["resolved"] == "推进中"

    def test_problem_index_past_end_pads_blank_entries(self):
        result = update_field({"problemsAndSolutions": []}, "problemsAndSolutions", 1, "problem", "P2")
        assert result["problemsAndSolutions"] == [
            {"problem": "", "solution": "", "resolved": ""},
            {"problem": "P2", "solution": "", "resolved": ""},
        ]

    def test_problem_unknown_sub_field_raises(self, sample_report):
        with pytest.raises(ReportFieldError):
            update_field(sample_report, "problemsAndSolutions", 0, "owner", "x")

    def test_final_summary_ignores_index(self, sample_report):
        result = update_field(sample_report, "finalSummary", 5, "whatever", "新的总结")
        assert result["finalSummary"] == "新的总结"
        assert sample_report["finalSummary"] == "工作饱和，按时达成目标。"

    def test_negative_index_is_noop(self, sample_report):
        assert update_field(sample_report, "weeklySummary", -1, None, "x") == sample_report

    def test_unknown_section_raises(self, sample_report):
        with pytest.raises(ReportFieldError):
            update_field(sample_report, "attachments", 0, None, "x")

    def test_list_section_without_index_raises(self, sample_report):
        with pytest.raises(ReportFieldError):
            update_field(sample_report, "weeklySummary", None, None, "x")


class TestReadField:
    def test_reads_report_and_meta_values(self, sample_report, sample_meta):
        assert read_field(sample_report, sample_meta, FieldRef("weeklySummary", 0)) == "完成登录模块重构"
        assert read_field(sample_report, sample_meta, FieldRef("dailyLogs", 2)) == "整理接口文档"
        assert read_field(sample_report, sample_meta, FieldRef("problemsAndSolutions", 0, "solution")) == "申请独立环境"
        assert read_field(sample_report, sample_meta, FieldRef("meta", sub_field="name")) == "张三"
        assert read_field(sample_report, sample_meta, FieldRef("finalSummary")) == "工作饱和，按时达成目标。"

    def test_absent_values_read_empty(self, sample_meta):
        assert read_field({}, sample_meta, FieldRef("nextWeekAttention", 2)) == ""
        assert read_field({"problemsAndSolutions": ["junk"]}, sample_meta, FieldRef("problemsAndSolutions", 0, "problem")) == ""


class TestReportDataStore:
    def test_parse_failure_keeps_previous_report(self, report_json, sample_report):
        store = ReportDataStore()
        store.load_text(report_json)
        edited = store.update_field("finalSummary", None, None, "手动修改")
        with pytest.raises(ReportParseError):
            store.load_text("not json at all")
        assert store.report is edited
        assert store.report["finalSummary"] == "手动修改"

    def test_parse_failure_without_previous_report(self):
        store = ReportDataStore()
        with pytest.raises(ReportParseError):
            store.load_text("{oops")
        assert store.report is None

    def test_edit_replaces_whole_object(self, report_json):
        store = ReportDataStore()
        before = store.load_text(report_json)
        after = store.update_field("weeklySummary", 0, None, "X")
        assert after is not before
        assert before["weeklySummary"][0] == "完成登录模块重构"

    def test_update_field_without_report_is_ignored(self):
        store = ReportDataStore()
        assert store.update_field("finalSummary", None, None, "x") is None

    def test_default_meta_has_week_range(self):
        store = ReportDataStore()
        assert store.meta["name"] == "您的姓名"
        assert "→" in store.meta["dateRange"]

    def test_update_meta(self, sample_meta):
        new_meta = update_meta(sample_meta, "role", "架构师")
        assert new_meta["role"] == "架构师"
        assert sample_meta["role"] == "后端工程师"
        with pytest.raises(ReportFieldError):
            update_meta(sample_meta, "salary", "1")


def test_plain_text_summary(sample_report):
    text = plain_text_summary(sample_report)
    assert text.startswith("本周总结:\n完成登录模块重构\n")
    assert "下周计划:\n星期一: 性能压测\n星期二: 修复压测问题" in text
