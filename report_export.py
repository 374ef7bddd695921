"""Export the themed report table as PDF (raster snapshot) or Word.

PDF export draws the frozen table with Pillow on a fixed A4-wide canvas at
2x scale, saves it as PNG in a temporary work directory and places it as a
single full-width image on one reportlab page. Word export writes the same
frozen rows as python-docx tables.

Output files are written next to their destination and moved into place
only when complete; the temporary work directory is always removed.
"""
import logging
import os
import shutil
import subprocess
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Callable, List, Optional

from PIL import Image, ImageDraw, ImageFont
from docx import Document
from docx.enum.table import WD_TABLE_ALIGNMENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Mm, Pt, RGBColor
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

import settings
from report_layout import Row, apply_theme, freeze_layout
from report_themes import ColorTheme

logger = logging.getLogger(__name__)

PAGE_WIDTH_MM = 210
CSS_PX_PER_MM = 96 / 25.4
LAYOUT_WIDTH_PX = round(PAGE_WIDTH_MM * CSS_PX_PER_MM)  # 794
RASTER_SCALE = 2
PAGE_PADDING_PX = 32
CELL_PADDING_PX = 6
LINE_HEIGHT = 1.4
BORDER_PX = 1

PDF_FILENAME = "work_report.pdf"
DOCX_FILENAME = "work_report.docx"
EXPORT_FAILED_NOTICE = "PDF 生成失败，请重试"

# Checked in order when WEEKLY_REPORT_FONT is unset.
CJK_FONT_CANDIDATES = (
    "/usr/share/fonts/opentype/noto/NotoSansCJK-Regular.ttc",
    "/usr/share/fonts/noto-cjk/NotoSansCJK-Regular.ttc",
    "/usr/share/fonts/google-noto-cjk/NotoSansCJK-Regular.ttc",
    "/usr/share/fonts/truetype/wqy/wqy-microhei.ttc",
    "/usr/share/fonts/truetype/wqy/wqy-zenhei.ttc",
    "/usr/share/fonts/wqy-microhei/wqy-microhei.ttc",
    "/System/Library/Fonts/PingFang.ttc",
    "/System/Library/Fonts/STHeiti Light.ttc",
    "C:/Windows/Fonts/simsun.ttc",
    "C:/Windows/Fonts/msyh.ttc",
)


class ExportError(Exception):
    """Export failed; no output file was written."""


@lru_cache(maxsize=1)
def find_cjk_font() -> Optional[str]:
    """Path of an installed font with Chinese glyphs, or None.

    Known install locations are tried first, then ``fc-list :lang=zh``.
    """
    for path in CJK_FONT_CANDIDATES:
        if os.path.isfile(path):
            return path
    try:
        result = subprocess.run(
            ["fc-list", ":lang=zh", "-f", "%{file}\n"],
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("fc-list unavailable: %s", e)
        result = None
    if result is not None:
        for line in sorted(result.stdout.splitlines()):
            path = line.strip()
            if path and os.path.isfile(path):
                return path
    logger.warning(
        "No font with Chinese glyphs found; Chinese text in the PDF will not be legible. "
        "Install Noto Sans CJK or WenQuanYi, or set WEEKLY_REPORT_FONT."
    )
    return None


@lru_cache(maxsize=32)
def load_font(size_px: int, bold: bool = False):
    """Font for ``size_px``; returns (font, has_real_bold)."""
    regular, bold_path = settings.font_paths()
    if bold and bold_path:
        return ImageFont.truetype(bold_path, size_px), True
    regular = regular or find_cjk_font()
    if regular:
        return ImageFont.truetype(regular, size_px), False
    return ImageFont.load_default(size=size_px), False


def wrap_text(value: str, font, max_width: float) -> List[str]:
    """Break ``value`` into lines no wider than ``max_width``.

    Explicit newlines are kept. Lines break at the last space when there is
    one (Latin text) and between any two characters otherwise (CJK text).
    """
    lines = []
    for paragraph in (value or "").replace("\r\n", "\n").split("\n"):
        current = ""
        for ch in paragraph:
            candidate = current + ch
            if current and font.getlength(candidate) > max_width:
                cut = current.rfind(" ")
                if cut > 0 and ch != " ":
                    lines.append(current[:cut])
                    current = current[cut + 1:] + ch
                else:
                    lines.append(current)
                    current = ch.lstrip()
            else:
                current = candidate
        lines.append(current)
    return lines


def _draw_line(draw, x, y, line, font, fill, fake_bold):
    draw.text((x, y), line, font=font, fill=fill)
    if fake_bold:
        draw.text((x + 1, y), line, font=font, fill=fill)


def rasterize_layout(styled_rows, scale: int = RASTER_SCALE, width_px: int = LAYOUT_WIDTH_PX):
    """Draw themed rows onto a white RGB image ``width_px * scale`` wide.

    Row height grows to fit every wrapped line of its tallest cell.
    """
    pad = PAGE_PADDING_PX * scale
    cell_pad = CELL_PADDING_PX * scale
    border = BORDER_PX * scale
    image_width = width_px * scale
    content_width = image_width - 2 * pad

    laid_out = []
    for styled_row in styled_rows:
        x = pad
        remaining = content_width
        cells = []
        for n, (cell, style) in enumerate(styled_row):
            w = remaining if n == len(styled_row) - 1 else round(content_width * cell.width)
            remaining -= w
            font_px = cell.font_size * scale
            font, real_bold = load_font(font_px, cell.bold)
            line_h = round(font_px * LINE_HEIGHT)
            lines = wrap_text(cell.text, font, max(w - 2 * cell_pad, 1))
            height = max(len(lines), cell.min_lines) * line_h + 2 * cell_pad
            cells.append((x, w, cell, style, font, cell.bold and not real_bold, line_h, lines, height))
            x += w
        laid_out.append((max((c[-1] for c in cells), default=0), cells))

    image_height = sum(h for h, _ in laid_out) + 2 * pad
    image = Image.new("RGB", (image_width, image_height), "#ffffff")
    draw = ImageDraw.Draw(image)

    y = pad
    for row_height, cells in laid_out:
        for x, w, cell, style, font, fake_bold, line_h, lines, _ in cells:
            draw.rectangle(
                [x, y, x + w, y + row_height],
                fill=style.background,
                outline=style.border,
                width=border,
            )
            text_y = y + cell_pad
            for line in lines:
                line_w = font.getlength(line)
                if cell.align == "center":
                    text_x = x + (w - line_w) / 2
                elif cell.align == "right":
                    text_x = x + w - cell_pad - line_w
                else:
                    text_x = x + cell_pad
                _draw_line(draw, text_x, text_y, line, font, style.color, fake_bold)
                text_y += line_h
        y += row_height
    return image


def _write_atomically(dest: Path, write: Callable[[str], None]) -> Path:
    dest = Path(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=".export-", suffix=dest.suffix, dir=dest.parent)
    os.close(fd)
    try:
        write(tmp_path)
        os.replace(tmp_path, dest)
    except BaseException:
        try:
            os.remove(tmp_path)
        except FileNotFoundError:
            pass
        raise
    return dest


def _write_pdf(png_path: str, pixel_size, out_path: str) -> None:
    px_w, px_h = pixel_size
    page_w = PAGE_WIDTH_MM * mm
    img_h = px_h * page_w / px_w
    page_h = max(A4[1], img_h)
    pdf = canvas.Canvas(out_path, pagesize=(page_w, page_h))
    pdf.drawImage(ImageReader(png_path), 0, page_h - img_h, width=page_w, height=img_h)
    pdf.showPage()
    pdf.save()


def export_pdf(
    rows: List[Row],
    report: dict,
    meta: dict,
    theme: ColorTheme,
    dest,
    work_root: Optional[str] = None,
) -> Path:
    """Render ``rows`` with current values to a one-page PDF at ``dest``.

    Raises ExportError on any failure; ``dest`` is then left untouched.
    """
    workdir = tempfile.mkdtemp(prefix="weekly-report-", dir=work_root)
    try:
        frozen = freeze_layout(rows, report, meta)
        image = rasterize_layout(apply_theme(frozen, theme))
        png_path = os.path.join(workdir, "report.png")
        image.save(png_path, "PNG")
        return _write_atomically(dest, lambda out: _write_pdf(png_path, image.size, out))
    except Exception as e:
        logger.exception("PDF generation failed")
        raise ExportError(EXPORT_FAILED_NOTICE) from e
    finally:
        shutil.rmtree(workdir, ignore_errors=True)


def _shade_cell(cell, hex_color: str) -> None:
    shd = OxmlElement("w:shd")
    shd.set(qn("w:val"), "clear")
    shd.set(qn("w:color"), "auto")
    shd.set(qn("w:fill"), hex_color.lstrip("#").upper())
    cell._tc.get_or_add_tcPr().append(shd)


def _set_table_borders(table, hex_color: str) -> None:
    borders = OxmlElement("w:tblBorders")
    for edge in ("top", "left", "bottom", "right", "insideH", "insideV"):
        el = OxmlElement(f"w:{edge}")
        el.set(qn("w:val"), "single")
        el.set(qn("w:sz"), "4")
        el.set(qn("w:space"), "0")
        el.set(qn("w:color"), hex_color.lstrip("#").upper())
        borders.append(el)
    table._tbl.tblPr.insert_element_before(
        borders, "w:shd", "w:tblLayout", "w:tblCellMar", "w:tblLook"
    )


_ALIGN = {
    "left": WD_ALIGN_PARAGRAPH.LEFT,
    "center": WD_ALIGN_PARAGRAPH.CENTER,
    "right": WD_ALIGN_PARAGRAPH.RIGHT,
}


def _bands(styled_rows):
    """Group consecutive rows sharing the same column widths into one table."""
    bands = []
    for styled_row in styled_rows:
        key = tuple(cell.width for cell, _ in styled_row)
        if bands and bands[-1][0] == key:
            bands[-1][1].append(styled_row)
        else:
            bands.append((key, [styled_row]))
    return bands


def _write_docx(styled_rows, border_color: str, out_path: str) -> None:
    doc = Document()
    section = doc.sections[0]
    section.page_width = Mm(210)
    section.page_height = Mm(297)
    for side in ("left_margin", "right_margin", "top_margin", "bottom_margin"):
        setattr(section, side, Mm(12))
    usable_mm = 210 - 2 * 12

    for widths, band_rows in _bands(styled_rows):
        table = doc.add_table(rows=0, cols=len(widths))
        table.alignment = WD_TABLE_ALIGNMENT.CENTER
        table.autofit = False
        _set_table_borders(table, border_color)
        for styled_row in band_rows:
            row_cells = table.add_row().cells
            for doc_cell, (cell, style) in zip(row_cells, styled_row):
                doc_cell.width = Mm(usable_mm * cell.width)
                _shade_cell(doc_cell, style.background)
                para = doc_cell.paragraphs[0]
                para.alignment = _ALIGN.get(cell.align, WD_ALIGN_PARAGRAPH.LEFT)
                run = para.add_run()
                for n, line in enumerate(cell.text.split("\n")):
                    if n:
                        run.add_break()
                    run.add_text(line)
                run.bold = cell.bold
                run.font.size = Pt(cell.font_size * 0.75)
                run.font.color.rgb = RGBColor.from_string(style.color.lstrip("#").upper())

    doc.save(out_path)


def export_docx(rows: List[Row], report: dict, meta: dict, theme: ColorTheme, dest) -> Path:
    try:
        styled = apply_theme(freeze_layout(rows, report, meta), theme)
        return _write_atomically(dest, lambda out: _write_docx(styled, theme.border, out))
    except Exception as e:
        logger.exception("Word generation failed")
        raise ExportError("Word 文档生成失败，请重试") from e
