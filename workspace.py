"""Everything one user session holds: task board, report, theme, busy flags."""
import threading
from contextlib import contextmanager

import settings
from drafts import DraftStore
from report_data import ReportDataStore
from report_themes import DEFAULT_THEME
from weekly_tasks import empty_week

REPORT_STATUSES = ("idle", "loading", "success", "error")


class BusyError(RuntimeError):
    """The same kind of operation is already running."""


class BusyFlag:
    """Non-blocking guard: a second caller fails instead of waiting."""

    def __init__(self, name: str):
        self.name = name
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def hold(self):
        if not self._lock.acquire(blocking=False):
            raise BusyError(f"{self.name} already in progress")
        try:
            yield
        finally:
            self._lock.release()


class WorkspaceState:
    def __init__(self, draft_store=None):
        self.board = empty_week()
        self.store = ReportDataStore()
        self.theme = DEFAULT_THEME
        self.report_status = "idle"
        self.drafts = draft_store or DraftStore(settings.draft_dir())
        self.generating = BusyFlag("Report generation")
        self.exporting = BusyFlag("Export")
        self.refining = BusyFlag("Task refine")

    def clear(self) -> None:
        self.board = empty_week()
        self.store.clear()
        self.report_status = "idle"
