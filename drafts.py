"""Local persistence of the task board draft.

The whole board is stored as one JSON document under a fixed key. Load and
save replace the whole object; there is no migration or versioning.
"""
import json
import logging
import os
import tempfile
from pathlib import Path

from weekly_tasks import TaskBoardError, WeekBoard, week_from_dict, week_to_dict

logger = logging.getLogger(__name__)

DRAFT_KEY = "weekly_report_draft"


class DraftError(Exception):
    """Draft could not be saved or loaded; in-memory state is untouched."""


class DraftStore:
    def __init__(self, directory, key: str = DRAFT_KEY):
        self.directory = Path(directory)
        self.key = key

    @property
    def path(self) -> Path:
        return self.directory / f"{self.key}.json"

    def exists(self) -> bool:
        return self.path.exists()

    def save(self, board: WeekBoard) -> None:
        """Write the board atomically (temp file + replace)."""
        payload = json.dumps(week_to_dict(board), ensure_ascii=False, indent=2)
        tmp_path = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w",
                suffix=".tmp",
                dir=self.directory,
                delete=False,
                encoding="utf-8",
            ) as tf:
                tmp_path = tf.name
                tf.write(payload)
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as e:
            logger.error("Saving draft to %s failed: %s", self.path, e)
            raise DraftError("保存失败，可能是存储空间不足。") from e
        finally:
            if tmp_path:
                try:
                    os.remove(tmp_path)
                except FileNotFoundError:
                    pass

    def load(self) -> WeekBoard:
        if not self.path.exists():
            raise DraftError("没有找到已保存的草稿。")
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return week_from_dict(raw)
        except (OSError, ValueError, TaskBoardError) as e:
            logger.error("Loading draft from %s failed: %s", self.path, e)
            raise DraftError("草稿文件似乎已损坏。") from e
