from pathlib import Path
import os

from dotenv import load_dotenv

# Load .env so OPENAI_API_KEY is available (e.g. for AI generation)
_env_dir = Path(__file__).resolve().parent
load_dotenv(_env_dir / ".env")
load_dotenv()  # also load from current working directory


def env_bool(name: str, default: bool = False) -> bool:
    v = os.environ.get(name)
    if v is None:
        return default
    v = str(v).strip().lower()
    if v in ("1", "true", "t", "yes", "y", "on"):
        return True
    if v in ("0", "false", "f", "no", "n", "off", ""):
        return False
    return default


def env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def openai_api_key() -> str:
    return os.environ.get("OPENAI_API_KEY", "").strip()


def openai_model() -> str:
    return os.environ.get("WEEKLY_REPORT_MODEL", "").strip() or "gpt-4o-mini"


def ai_timeout_seconds() -> float:
    """Upper bound for one AI call; a hung request becomes a timeout error."""
    return env_float("WEEKLY_REPORT_AI_TIMEOUT", 60.0)


def draft_dir() -> Path:
    """Directory holding the saved task-board draft (WEEKLY_REPORT_DRAFT_DIR in .env)."""
    path = os.environ.get("WEEKLY_REPORT_DRAFT_DIR", "").strip()
    return Path(path) if path else Path.home() / ".weekly_report"


def font_paths():
    """Optional TrueType fonts for the raster export (regular, bold).

    When unset, the exporter looks for an installed CJK font (Noto Sans CJK,
    WenQuanYi, PingFang, SimSun) because the bundled Pillow font has no
    Chinese glyphs.
    """
    regular = os.environ.get("WEEKLY_REPORT_FONT", "").strip() or None
    bold = os.environ.get("WEEKLY_REPORT_FONT_BOLD", "").strip() or None
    return regular, bold


def log_level() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"
