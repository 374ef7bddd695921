"""Lay the structured report out as the fixed weekly-report table.

The table is a list of ``Row``s; each row holds ``Cell``s whose widths are
fractions of the full table width, so bands with different column splits
(summary block, logs/problems block, plan block) can be stacked. Colors are
not part of the layout: ``apply_theme`` resolves them per cell kind, so a
theme switch never rebuilds rows from the data.
"""
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from report_data import (
    PROBLEM_SECTION,
    FieldRef,
    entry_at,
    read_field,
    section_list,
    string_at,
    text,
)
from report_themes import (
    BODY_BACKGROUND,
    DAY_CELL_BACKGROUND,
    TEXT_BODY,
    TEXT_DARK,
    TEXT_ON_PRIMARY,
    ColorTheme,
)

WEEKDAY_LABELS = ("星期一", "星期二", "星期三", "星期四", "星期五", "星期六", "星期日")
SUMMARY_ROWS = 3

# Cell kinds, from most to least prominent.
TITLE = "title"
HEADER = "header"
SUBHEADER = "subheader"
LABEL = "label"
DAY = "day"
BODY = "body"


@dataclass(frozen=True)
class Cell:
    text: str = ""
    width: float = 1.0
    kind: str = BODY
    align: str = "left"
    bold: bool = False
    font_size: int = 12
    min_lines: int = 1
    field: Optional[FieldRef] = None

    @property
    def editable(self) -> bool:
        return self.field is not None


@dataclass(frozen=True)
class Row:
    cells: Tuple[Cell, ...]
    section: str = ""


@dataclass(frozen=True)
class CellStyle:
    background: str
    border: str
    color: str


def daily_log_rows(report: dict) -> List[dict]:
    """One row per canonical weekday, Monday first.

    Each row takes the first dailyLogs entry whose ``day`` equals or contains
    the label; days without a match get empty content and date.
    """
    logs = section_list(report, "dailyLogs")
    rows = []
    for label in WEEKDAY_LABELS:
        match = None
        for i, log in enumerate(logs):
            day = text(log.get("day")) if isinstance(log, dict) else ""
            if day == label or label in day:
                match = i
                break
        log = logs[match] if match is not None else {}
        rows.append(
            {
                "day": label,
                "date": text(log.get("date")),
                "content": text(log.get("content")),
                "log_index": match,
            }
        )
    return rows


def problem_rows(report: dict) -> List[dict]:
    """Seven rows paired with problemsAndSolutions by position, not by weekday."""
    items = section_list(report, PROBLEM_SECTION)
    rows = []
    for i in range(len(WEEKDAY_LABELS)):
        present = i < len(items) and isinstance(items[i], dict)
        entry = entry_at(report, PROBLEM_SECTION, i)
        rows.append(
            {
                "number": str(i + 1) if present else "",
                "problem": text(entry.get("problem")),
                "solution": text(entry.get("solution")),
                "resolved": text(entry.get("resolved")),
            }
        )
    return rows


def summary_rows(report: dict) -> List[Tuple[str, str]]:
    """Exactly three (summary, attention) pairs; extra items are not shown."""
    return [
        (string_at(report, "weeklySummary", i), string_at(report, "nextWeekAttention", i))
        for i in range(SUMMARY_ROWS)
    ]


def plan_rows(report: dict) -> List[dict]:
    rows = []
    for entry in section_list(report, "nextWeekPlan"):
        entry = entry if isinstance(entry, dict) else {}
        rows.append({"day": text(entry.get("day")), "content": text(entry.get("content"))})
    return rows


def _label(value, width, font_size=12):
    return Cell(value, width, kind=LABEL, align="center", bold=True, font_size=font_size)


def _subheader(value, width):
    return Cell(value, width, kind=SUBHEADER, align="center", bold=True, font_size=14)


def _body(value, width, field=None, min_lines=2, align="left"):
    return Cell(value, width, kind=BODY, align=align, field=field, min_lines=min_lines)


def build_report_table(report: dict, meta: dict) -> List[Row]:
    report = report or {}
    meta = meta or {}
    rows = [
        Row((Cell("工 作 周 报", 1.0, kind=TITLE, align="center", bold=True, font_size=20),), "title"),
        Row(
            (
                Cell("通用工作周报模板", 0.5, kind=HEADER, font_size=14),
                Cell(
                    text(meta.get("dateRange")),
                    0.5,
                    kind=HEADER,
                    align="right",
                    font_size=14,
                    field=FieldRef("meta", sub_field="dateRange"),
                ),
            ),
            "title",
        ),
        Row(
            (
                _label("姓名:", 0.25, 14),
                Cell(text(meta.get("name")), 0.25, kind=LABEL, align="center", font_size=14,
                     field=FieldRef("meta", sub_field="name")),
                _label("职位:", 0.25, 14),
                Cell(text(meta.get("role")), 0.25, kind=LABEL, align="center", font_size=14,
                     field=FieldRef("meta", sub_field="role")),
            ),
            "meta",
        ),
        Row((_subheader("本 周 工 作 总 结", 0.5), _subheader("下 周 工 作 注 意 事 项", 0.5)), "summary"),
        Row(
            (
                _label("任务", 0.1, 14),
                _label("本周完成主要工作", 0.4, 14),
                _label("任务", 0.1, 14),
                _label("下周主要事项", 0.4, 14),
            ),
            "summary",
        ),
    ]

    for i, (summary, attention) in enumerate(summary_rows(report)):
        rows.append(
            Row(
                (
                    Cell(str(i + 1), 0.1, align="center", bold=True, font_size=14),
                    _body(summary, 0.4, FieldRef("weeklySummary", i)),
                    Cell(str(i + 1), 0.1, align="center", bold=True, font_size=14),
                    _body(attention, 0.4, FieldRef("nextWeekAttention", i)),
                ),
                "summary",
            )
        )

    rows.append(
        Row((_subheader("本 周 工 作 记 录", 0.5), _subheader("本周工作中存在问题及建议解决办法", 0.5)), "logs")
    )
    rows.append(
        Row(
            (
                _label("具体时间", 0.1),
                _label("工作内容记录", 0.4),
                _label("编号", 0.05),
                _label("存在问题", 0.225),
                _label("建议办法", 0.15),
                _label("解决?", 0.075),
            ),
            "logs",
        )
    )

    for i, (log, problem) in enumerate(zip(daily_log_rows(report), problem_rows(report))):
        day_text = log["day"] + ("\n" + log["date"] if log["date"] else "")
        log_field = FieldRef("dailyLogs", log["log_index"]) if log["log_index"] is not None else None
        rows.append(
            Row(
                (
                    Cell(day_text, 0.1, kind=DAY, align="center", bold=True),
                    _body(log["content"], 0.4, log_field),
                    Cell(problem["number"], 0.05, align="center"),
                    _body(problem["problem"], 0.225, FieldRef(PROBLEM_SECTION, i, "problem")),
                    _body(problem["solution"], 0.15, FieldRef(PROBLEM_SECTION, i, "solution")),
                    _body(problem["resolved"], 0.075, FieldRef(PROBLEM_SECTION, i, "resolved"),
                          min_lines=1, align="center"),
                ),
                "logs",
            )
        )

    rows.append(Row((_subheader("下 周 工 作 计 划", 1.0),), "plan"))
    rows.append(Row((_label("具体时间", 0.1), _label("工作内容记录", 0.9)), "plan"))
    for i, plan in enumerate(plan_rows(report)):
        rows.append(
            Row(
                (
                    Cell(plan["day"], 0.1, kind=DAY, align="center", bold=True),
                    _body(plan["content"], 0.9, FieldRef("nextWeekPlan", i), min_lines=1),
                ),
                "plan",
            )
        )

    rows.append(
        Row(
            (
                Cell("本周工作总结:", 0.15, kind=LABEL, bold=True),
                Cell(text(report.get("finalSummary")), 0.85, kind=LABEL,
                     field=FieldRef("finalSummary")),
            ),
            "footer",
        )
    )
    return rows


def resolve_cell_style(cell: Cell, theme: ColorTheme) -> CellStyle:
    if cell.kind in (TITLE, HEADER):
        background, color = theme.primary, TEXT_ON_PRIMARY
    elif cell.kind == SUBHEADER:
        background, color = theme.secondary, TEXT_DARK
    elif cell.kind == LABEL:
        background, color = theme.highlight, TEXT_DARK
    elif cell.kind == DAY:
        background, color = DAY_CELL_BACKGROUND, TEXT_DARK
    else:
        background, color = BODY_BACKGROUND, TEXT_BODY
    return CellStyle(background=background, border=theme.border, color=color)


def apply_theme(rows: List[Row], theme: ColorTheme) -> List[List[Tuple[Cell, CellStyle]]]:
    return [[(cell, resolve_cell_style(cell, theme)) for cell in row.cells] for row in rows]


def freeze_layout(rows: List[Row], report: dict, meta: dict) -> List[Row]:
    """Copy of ``rows`` with every editable cell turned into static text.

    The text is read from ``report``/``meta`` as they are now, not from the
    value captured when the rows were built. Size, weight, alignment, color
    and wrapping settings are kept as they were.
    """
    frozen = []
    for row in rows:
        cells = tuple(
            replace(cell, text=read_field(report, meta, cell.field), field=None)
            if cell.field is not None
            else cell
            for cell in row.cells
        )
        frozen.append(Row(cells, row.section))
    return frozen


def report_table_json(rows: List[Row], theme: ColorTheme) -> List[List[dict]]:
    """Styled rows for the browser preview."""
    out = []
    for styled_row in apply_theme(rows, theme):
        out.append(
            [
                {
                    "text": cell.text,
                    "width": cell.width,
                    "kind": cell.kind,
                    "align": cell.align,
                    "bold": cell.bold,
                    "font_size": cell.font_size,
                    "min_lines": cell.min_lines,
                    "field": (
                        {
                            "section": cell.field.section,
                            "index": cell.field.index,
                            "sub_field": cell.field.sub_field,
                        }
                        if cell.field
                        else None
                    ),
                    "background": style.background,
                    "border": style.border,
                    "color": style.color,
                }
                for cell, style in styled_row
            ]
        )
    return out
