"""Progress numbers for the week board (completion rate, busiest day)."""
from typing import Iterable, Optional, Tuple

from weekly_tasks import DAYS_OF_WEEK, TASK_STATUSES, WeekBoard, all_tasks

STATUS_BADGES = {
    "idle": "待生成",
    "loading": "生成中...",
    "success": "周报已就绪",
    "error": "生成失败",
}


def round_half_up(value: float) -> int:
    return int(value + 0.5)


def busiest_day(counts: Iterable[Tuple[str, int]]) -> Optional[str]:
    """Day with the strictly greatest count; ties keep the earliest day.

    Returns None when every count is zero.
    """
    best, best_count = None, 0
    for day, count in counts:
        if count > best_count:
            best, best_count = day, count
    return best


def week_stats(board: WeekBoard) -> Optional[dict]:
    """Dashboard numbers, or None when the week has no tasks at all."""
    tasks = all_tasks(board)
    total = len(tasks)
    if total == 0:
        return None

    by_status = {s: 0 for s in TASK_STATUSES}
    for t in tasks:
        by_status[t.status] = by_status.get(t.status, 0) + 1

    # Each segment is rounded on its own; the sum may drift from 100.
    percentages = {s: round_half_up(100 * n / total) for s, n in by_status.items()}

    daily_counts = [(day, len(board.get(day, []))) for day in DAYS_OF_WEEK]
    top = busiest_day(daily_counts)

    return {
        "total": total,
        "completed": by_status["completed"],
        "in_progress": by_status["in-progress"],
        "pending": by_status["pending"],
        "completion_rate": round_half_up(100 * by_status["completed"] / total),
        "status_percentages": percentages,
        "daily_counts": [{"day": d, "count": c} for d, c in daily_counts],
        "busiest_day": top,
        "max_tasks": max(c for _, c in daily_counts),
    }


def status_badge(status: str) -> str:
    return STATUS_BADGES.get(status, STATUS_BADGES["idle"])
