"""Color themes for the report table.

A theme is four hex colors. Custom themes are derived from one primary
color by lightening it toward white.
"""
from dataclasses import asdict, dataclass
from typing import Optional

NEUTRAL_BORDER = "#64748b"

# Text colors for the non-header cells (slate-800 / slate-700).
TEXT_DARK = "#1e293b"
TEXT_BODY = "#334155"
TEXT_ON_PRIMARY = "#ffffff"
DAY_CELL_BACKGROUND = "#f8fafc"
BODY_BACKGROUND = "#ffffff"

SECONDARY_LIGHTEN = 40
HIGHLIGHT_LIGHTEN = 90


@dataclass(frozen=True)
class ColorTheme:
    name: str
    primary: str
    secondary: str
    highlight: str
    border: str

    def to_dict(self) -> dict:
        return asdict(self)


THEMES = (
    ColorTheme("经典绿", "#9bbb59", "#bfdcae", "#e5f0d9", NEUTRAL_BORDER),
    ColorTheme("商务蓝", "#3b82f6", "#93c5fd", "#eff6ff", NEUTRAL_BORDER),
    ColorTheme("活力橙", "#f97316", "#fdba74", "#fff7ed", NEUTRAL_BORDER),
    ColorTheme("简约灰", "#475569", "#94a3b8", "#f1f5f9", "#334155"),
)

DEFAULT_THEME = THEMES[0]


class ThemeError(ValueError):
    pass


def _hex_to_rgb(hex_code: str):
    h = (hex_code or "").strip().lstrip("#")
    if len(h) != 6 or any(c not in "0123456789abcdefABCDEF" for c in h):
        raise ThemeError(f"Not a #rrggbb color: {hex_code!r}")
    return int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16)


def adjust_color_brightness(hex_code: str, percent: float) -> str:
    """Move each channel ``percent``% of the way toward 255 (half-up rounding)."""
    r, g, b = _hex_to_rgb(hex_code)

    def lift(c: int) -> int:
        return int(c + (255 - c) * (percent / 100) + 0.5)

    return "#{:02x}{:02x}{:02x}".format(lift(r), lift(g), lift(b))


def custom_theme(primary: str) -> ColorTheme:
    _hex_to_rgb(primary)
    primary = "#" + primary.strip().lstrip("#").lower()
    return ColorTheme(
        name="Custom",
        primary=primary,
        secondary=adjust_color_brightness(primary, SECONDARY_LIGHTEN),
        highlight=adjust_color_brightness(primary, HIGHLIGHT_LIGHTEN),
        border=NEUTRAL_BORDER,
    )


def find_theme(name: Optional[str]) -> ColorTheme:
    if not name:
        return DEFAULT_THEME
    for theme in THEMES:
        if theme.name == name:
            return theme
    raise ThemeError(f"Unknown theme: {name}")


def theme_from_options(name: Optional[str] = None, primary: Optional[str] = None) -> ColorTheme:
    """A custom primary color wins over a preset name."""
    if primary:
        return custom_theme(primary)
    return find_theme(name)
