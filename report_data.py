"""Structured weekly report data and its field-level edits.

The report is the dict returned by the language model::

    {
      "weeklySummary": ["..."],
      "nextWeekAttention": ["..."],
      "dailyLogs": [{"day": "星期一", "date": "10.24", "content": "..."}],
      "problemsAndSolutions": [{"problem": "...", "solution": "...", "resolved": "是"}],
      "nextWeekPlan": [{"day": "星期一", "content": "..."}],
      "finalSummary": "..."
    }

No schema is enforced; readers treat anything absent or oddly typed as empty.
Edits never touch the previous object: each returns a new top-level dict and
copies whichever list and entry it changes.
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from weekly_tasks import get_week_range

logger = logging.getLogger(__name__)

STRING_SECTIONS = ("weeklySummary", "nextWeekAttention")
CONTENT_SECTIONS = ("dailyLogs", "nextWeekPlan")
PROBLEM_SECTION = "problemsAndSolutions"
PROBLEM_FIELDS = ("problem", "solution", "resolved")
SCALAR_SECTION = "finalSummary"
REPORT_SECTIONS = STRING_SECTIONS + CONTENT_SECTIONS + (PROBLEM_SECTION, SCALAR_SECTION)

META_FIELDS = ("name", "role", "dateRange")

_FENCE_START_RE = re.compile(r"^```(?:json)?\s*")
_FENCE_END_RE = re.compile(r"\s*```$")


class ReportParseError(ValueError):
    """The model output is not a JSON object."""


class ReportFieldError(ValueError):
    """Unknown section, sub-field or missing index for an edit."""


@dataclass(frozen=True)
class FieldRef:
    """Address of one editable value: a report section or a header meta field."""

    section: str
    index: Optional[int] = None
    sub_field: Optional[str] = None


def text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def section_list(report: dict, section: str) -> list:
    value = (report or {}).get(section)
    return value if isinstance(value, list) else []


def entry_at(report: dict, section: str, index: int) -> dict:
    """Entry ``index`` of a list-of-objects section, or {} when absent."""
    items = section_list(report, section)
    if 0 <= index < len(items) and isinstance(items[index], dict):
        return items[index]
    return {}


def string_at(report: dict, section: str, index: int) -> str:
    items = section_list(report, section)
    if 0 <= index < len(items):
        return text(items[index])
    return ""


def strip_code_fence(raw: str) -> str:
    s = (raw or "").strip()
    if s.startswith("```"):
        s = _FENCE_START_RE.sub("", s)
        s = _FENCE_END_RE.sub("", s)
    return s


def parse_report(raw_text: str) -> dict:
    """Parse model output into a report dict.

    A markdown code fence around the JSON is removed first. Only
    well-formedness is checked; missing sections are left missing.
    """
    cleaned = strip_code_fence(raw_text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ReportParseError(f"Invalid JSON from model: {e}") from e
    if not isinstance(data, dict):
        raise ReportParseError("Invalid JSON from model: expected an object")
    return data


def update_field(report, section, index=None, sub_field=None, value=""):
    """Return a copy of ``report`` with one value replaced.

    - weeklySummary / nextWeekAttention: string at ``index``; an index past
      the end pads the list with "".
    - dailyLogs / nextWeekPlan: ``content`` of entry ``index``; an index past
      the end leaves the report unchanged.
    - problemsAndSolutions: ``sub_field`` of entry ``index``; an index past
      the end pads with blank entries.
    - finalSummary: the whole string; index and sub_field are ignored.

    A negative index is ignored for every list section.
    """
    if section not in REPORT_SECTIONS:
        raise ReportFieldError(f"Unknown report section: {section}")

    new_report = dict(report or {})
    value = text(value)

    if section == SCALAR_SECTION:
        new_report[section] = value
        return new_report

    if index is None:
        raise ReportFieldError(f"Section {section} needs an index")
    if section == PROBLEM_SECTION and sub_field not in PROBLEM_FIELDS:
        raise ReportFieldError(f"Unknown problem field: {sub_field}")
    if index < 0:
        return new_report

    items = list(section_list(report, section))

    if section in STRING_SECTIONS:
        while len(items) <= index:
            items.append("")
        items[index] = value
    elif section in CONTENT_SECTIONS:
        if index >= len(items):
            return new_report
        entry = dict(items[index]) if isinstance(items[index], dict) else {}
        entry["content"] = value
        items[index] = entry
    else:
        while len(items) <= index:
            items.append({"problem": "", "solution": "", "resolved": ""})
        entry = dict(items[index]) if isinstance(items[index], dict) else {}
        entry[sub_field] = value
        items[index] = entry

    new_report[section] = items
    return new_report


def read_field(report: dict, meta: dict, ref: FieldRef) -> str:
    """Current value addressed by ``ref``; absent values read as ""."""
    if ref.section == "meta":
        return text((meta or {}).get(ref.sub_field))
    if ref.section == SCALAR_SECTION:
        return text((report or {}).get(SCALAR_SECTION))
    if ref.index is None:
        return ""
    if ref.section in STRING_SECTIONS:
        return string_at(report, ref.section, ref.index)
    if ref.section in CONTENT_SECTIONS:
        return text(entry_at(report, ref.section, ref.index).get("content"))
    if ref.section == PROBLEM_SECTION:
        return text(entry_at(report, ref.section, ref.index).get(ref.sub_field))
    return ""


def default_meta(week: Optional[str] = None) -> dict:
    return {"name": "您的姓名", "role": "岗位名称", "dateRange": week or get_week_range()}


def update_meta(meta: dict, key: str, value) -> dict:
    if key not in META_FIELDS:
        raise ReportFieldError(f"Unknown header field: {key}")
    new_meta = dict(meta or {})
    new_meta[key] = text(value)
    return new_meta


def plain_text_summary(report: dict) -> str:
    """Short plain-text version of the report for pasting into chat/email."""
    summary = "\n".join(text(s) for s in section_list(report, "weeklySummary"))
    plan = "\n".join(
        f"{text(p.get('day'))}: {text(p.get('content'))}"
        for p in section_list(report, "nextWeekPlan")
        if isinstance(p, dict)
    )
    return f"本周总结:\n{summary}\n\n下周计划:\n{plan}"


class ReportDataStore:
    """Owns the current report and header fields.

    Every edit swaps in a new object produced by the pure helpers above, so a
    reader holding the old value never sees a half-applied change.
    """

    def __init__(self, report: Optional[dict] = None, meta: Optional[dict] = None):
        self._report = report
        self._meta = meta if meta is not None else default_meta()

    @property
    def report(self) -> Optional[dict]:
        return self._report

    @property
    def meta(self) -> dict:
        return self._meta

    def load_text(self, raw_text: str) -> dict:
        """Replace the report with parsed model output.

        On a parse error the previous report stays in place and the error
        propagates to the caller.
        """
        try:
            parsed = parse_report(raw_text)
        except ReportParseError:
            logger.exception("Failed to parse report JSON; keeping previous report")
            raise
        self._report = parsed
        return parsed

    def update_field(self, section, index=None, sub_field=None, value="") -> Optional[dict]:
        if self._report is None:
            return None
        self._report = update_field(self._report, section, index, sub_field, value)
        return self._report

    def update_meta(self, key: str, value) -> dict:
        self._meta = update_meta(self._meta, key, value)
        return self._meta

    def clear(self) -> None:
        self._report = None
