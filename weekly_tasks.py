"""Task board for one work week (Monday to Friday).

The board is a plain dict ``{day: [Task, ...]}``. Every operation returns a
new board; the argument is never modified, so callers can swap the whole
value in one assignment.
"""
from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

DAYS_OF_WEEK = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")

TASK_STATUSES = ("pending", "in-progress", "completed")

NEXT_STATUS = {
    "pending": "in-progress",
    "in-progress": "completed",
    "completed": "pending",
}

_EDITABLE_FIELDS = ("content", "status", "category")


def get_week_range(today: Optional[datetime] = None) -> str:
    """Calculate week range (Monday to Friday) for the given date (defaults to today)."""
    today = today or datetime.now()
    monday = today - timedelta(days=today.weekday())
    friday = monday + timedelta(days=4)
    return f"{monday.strftime('%Y-%m-%d')} → {friday.strftime('%Y-%m-%d')}"


class TaskBoardError(ValueError):
    """Unknown day, unknown task id or invalid task field."""


@dataclass(frozen=True)
class Task:
    """A single logged piece of work.

    Fields:
        id: uuid4 string, assigned once on creation.
        content: free text, may be empty.
        status: one of "pending", "in-progress", "completed".
        category: optional free-text tag such as "Dev" or "Meeting".
    """

    id: str
    content: str = ""
    status: str = "completed"
    category: Optional[str] = "Dev"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Task":
        if not isinstance(raw, dict) or not raw.get("id"):
            raise TaskBoardError(f"Invalid task entry: {raw!r}")
        status = raw.get("status", "pending")
        if status not in TASK_STATUSES:
            raise TaskBoardError(f"Invalid task status: {status!r}")
        return cls(
            id=str(raw["id"]),
            content=str(raw.get("content") or ""),
            status=status,
            category=raw.get("category"),
        )


WeekBoard = Dict[str, List[Task]]


def empty_week() -> WeekBoard:
    return {day: [] for day in DAYS_OF_WEEK}


def _check_day(day: str) -> None:
    if day not in DAYS_OF_WEEK:
        raise TaskBoardError(f"Unknown day: {day}")


def _index_of(board: WeekBoard, day: str, task_id: str) -> int:
    _check_day(day)
    for i, task in enumerate(board.get(day, [])):
        if task.id == task_id:
            return i
    raise TaskBoardError(f"Task not found: {task_id}")


def add_task(board: WeekBoard, day: str):
    """Append an empty task to ``day``. Returns (new_board, task)."""
    _check_day(day)
    task = Task(id=str(uuid.uuid4()))
    new_board = dict(board)
    new_board[day] = list(board.get(day, [])) + [task]
    return new_board, task


def update_task(board: WeekBoard, day: str, task_id: str, **changes) -> WeekBoard:
    unknown = set(changes) - set(_EDITABLE_FIELDS)
    if unknown:
        raise TaskBoardError(f"Cannot edit task fields: {', '.join(sorted(unknown))}")
    if "status" in changes and changes["status"] not in TASK_STATUSES:
        raise TaskBoardError(f"Invalid task status: {changes['status']!r}")
    if "content" in changes:
        changes["content"] = str(changes["content"] or "")
    idx = _index_of(board, day, task_id)
    tasks = list(board[day])
    tasks[idx] = replace(tasks[idx], **changes)
    new_board = dict(board)
    new_board[day] = tasks
    return new_board


def cycle_status(board: WeekBoard, day: str, task_id: str) -> WeekBoard:
    """pending -> in-progress -> completed -> pending."""
    idx = _index_of(board, day, task_id)
    current = board[day][idx].status
    return update_task(board, day, task_id, status=NEXT_STATUS[current])


def delete_task(board: WeekBoard, day: str, task_id: str) -> WeekBoard:
    _index_of(board, day, task_id)
    new_board = dict(board)
    new_board[day] = [t for t in board[day] if t.id != task_id]
    return new_board


def find_task(board: WeekBoard, day: str, task_id: str) -> Task:
    return board[day][_index_of(board, day, task_id)]


def has_content(board: WeekBoard) -> bool:
    """True when at least one task has non-blank content."""
    return any(t.content.strip() for tasks in board.values() for t in tasks)


def all_tasks(board: WeekBoard) -> List[Task]:
    return [t for day in DAYS_OF_WEEK for t in board.get(day, [])]


def week_to_dict(board: WeekBoard) -> Dict[str, List[Dict[str, Any]]]:
    return {day: [t.to_dict() for t in board.get(day, [])] for day in DAYS_OF_WEEK}


def week_from_dict(raw: Any) -> WeekBoard:
    """Rebuild a board from its JSON shape; missing days become empty lists."""
    if not isinstance(raw, dict):
        raise TaskBoardError("Week data must be an object keyed by day")
    board = empty_week()
    for day in DAYS_OF_WEEK:
        entries = raw.get(day) or []
        if not isinstance(entries, list):
            raise TaskBoardError(f"Tasks for {day} must be a list")
        board[day] = [Task.from_dict(e) for e in entries]
    return board
