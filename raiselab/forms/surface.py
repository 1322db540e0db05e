"""
Drawing surface for quotation PDFs.

reportlab draws from the bottom-left in points; quotation layouts are
measured from the top-left in millimetres. PdfSurface does the conversion
so the layout code reads in the same units the page was designed in.

Tables go through platypus Table (wrapOn/drawOn) so cell text wraps and
rows size themselves to their content.
"""

import io
import os
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union
from xml.sax.saxutils import escape

from reportlab.lib.colors import Color, HexColor
from reportlab.lib.enums import TA_CENTER, TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph, Table, TableStyle

from raiselab.core.settings import get_setting

log = logging.getLogger("quote_gen.surface")

PAGE_W_PT, PAGE_H_PT = A4
PAGE_W = PAGE_W_PT / mm   # 210
PAGE_H = PAGE_H_PT / mm   # 297

LINE_HEIGHT_FACTOR = 1.15
PT_TO_MM = 1 / mm

BLACK = HexColor("#000000")
WHITE = HexColor("#FFFFFF")

_ALIGN = {"left": TA_LEFT, "center": TA_CENTER, "right": TA_RIGHT}

# ═══════════════════════════════════════════════════════════════════════════════
# FONTS - Helvetica unless TTFs are configured
# ═══════════════════════════════════════════════════════════════════════════════

_FONTS = {}


def resolve_fonts() -> dict:
    """Map "normal"/"bold" to registered font names. Registers TTFs once."""
    if _FONTS:
        return _FONTS
    fonts = {"normal": "Helvetica", "bold": "Helvetica-Bold"}
    for style, setting, name in (("normal", "font_regular", "QuoteSans"),
                                 ("bold", "font_bold", "QuoteSans-Bold")):
        path = get_setting(setting)
        if not path:
            continue
        if not os.path.exists(path):
            log.warning("Font %s not found at %s - using %s", setting, path, fonts[style])
            continue
        pdfmetrics.registerFont(TTFont(name, path))
        fonts[style] = name
    if fonts["bold"] == "Helvetica-Bold" and fonts["normal"] == "QuoteSans":
        fonts["bold"] = "QuoteSans"
    _FONTS.update(fonts)
    log.debug("Quotation fonts: %s", _FONTS)
    return _FONTS


def reset_fonts():
    _FONTS.clear()


# ═══════════════════════════════════════════════════════════════════════════════
# CURSOR + CELLS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class PageCursor:
    """Where the next draw call lands: page number (1-based) and y in mm from the top."""
    page: int = 1
    y: float = 0.0

    def advance(self, dy: float) -> float:
        self.y += dy
        return self.y


@dataclass
class Cell:
    text: str
    bold: bool = False
    size: float = 9
    halign: str = "left"
    valign: str = "top"
    padding: Optional[float] = None     # mm, overrides the table default
    color: Color = field(default_factory=lambda: BLACK)


# ═══════════════════════════════════════════════════════════════════════════════
# PDF SURFACE
# ═══════════════════════════════════════════════════════════════════════════════

class PdfSurface:
    """A4 portrait canvas addressed in mm from the top-left corner."""

    width = PAGE_W
    height = PAGE_H

    def __init__(self, title: str = "", author: str = ""):
        self._buf = io.BytesIO()
        self.c = canvas.Canvas(self._buf, pagesize=A4)
        if title:
            self.c.setTitle(title)
        if author:
            self.c.setAuthor(author)
        self.fonts = resolve_fonts()
        self.page_count = 1
        self._font = ("normal", 10)
        self._data = None
        self.set_font("normal", 10)

    # ── coordinates ──────────────────────────────────────────────────────────
    def _y(self, top_mm: float) -> float:
        return PAGE_H_PT - top_mm * mm

    # ── pages ────────────────────────────────────────────────────────────────
    def new_page(self):
        self.c.showPage()
        self.page_count += 1
        # showPage resets graphics state
        self.set_font(*self._font)

    # ── state ────────────────────────────────────────────────────────────────
    def set_font(self, style: str, size: float):
        self._font = (style, size)
        self.c.setFont(self.fonts[style], size)

    def set_draw_color(self, color: Color):
        self.c.setStrokeColor(color)

    def set_text_color(self, color: Color):
        self.c.setFillColor(color)

    def set_line_width(self, width_mm: float):
        self.c.setLineWidth(width_mm * mm)

    def has_glyph(self, char: str, style: str = "normal") -> bool:
        """True if the font mapped to ``style`` can draw ``char``.

        Standard Type 1 fonts only cover WinAnsi; embedded TTFs are checked
        against their cmap.
        """
        font = pdfmetrics.getFont(self.fonts[style])
        if isinstance(font, TTFont):
            return ord(char) in font.face.charToGlyph
        try:
            char.encode("cp1252")
        except UnicodeEncodeError:
            return False
        return True

    def line_height(self, size: float = None) -> float:
        """Distance between wrapped lines in mm."""
        size = size if size is not None else self._font[1]
        return size * LINE_HEIGHT_FACTOR * PT_TO_MM

    # ── primitives ───────────────────────────────────────────────────────────
    def rect(self, x: float, y: float, w: float, h: float):
        self.c.rect(x * mm, self._y(y + h), w * mm, h * mm, fill=0, stroke=1)

    def line(self, x1: float, y1: float, x2: float, y2: float):
        self.c.line(x1 * mm, self._y(y1), x2 * mm, self._y(y2))

    def split_text(self, text: str, width: float) -> List[str]:
        """Wrap ``text`` to ``width`` mm in the current font. Always at least one line."""
        style, size = self._font
        lines = simpleSplit(str(text or ""), self.fonts[style], size, width * mm)
        return lines or [""]

    def text(self, x: float, y: float, lines: Union[str, Sequence[str]], align: str = "left"):
        """Draw one line or a block of lines; ``y`` is the first baseline."""
        if isinstance(lines, str):
            lines = lines.split("\n")
        step = self.line_height()
        for i, line in enumerate(lines):
            ry = self._y(y + i * step)
            if align == "right":
                self.c.drawRightString(x * mm, ry, line)
            elif align == "center":
                self.c.drawCentredString(x * mm, ry, line)
            else:
                self.c.drawString(x * mm, ry, line)

    def image(self, data: bytes, x: float, y: float, w: float, h: float):
        img = ImageReader(io.BytesIO(data))
        self.c.drawImage(img, x * mm, self._y(y + h), width=w * mm, height=h * mm, mask="auto")

    # ── tables ───────────────────────────────────────────────────────────────
    def table(self, x: float, y: float, col_widths: Sequence[Optional[float]],
              rows: Sequence[Sequence[Cell]], head: Sequence[str] = None,
              head_fill: Color = None, head_color: Color = WHITE, head_size: float = 9,
              padding: float = 4, grid_color: Color = BLACK, grid_width: float = 0.2,
              avail_width: float = None) -> float:
        """Draw a grid table at (x, y). Returns the y (mm) just below it.

        ``None`` column widths share whatever ``avail_width`` the fixed ones leave.
        """
        avail_width = avail_width if avail_width is not None else self.width - 2 * x
        fixed = sum(w for w in col_widths if w is not None)
        n_auto = sum(1 for w in col_widths if w is None)
        auto_w = (avail_width - fixed) / n_auto if n_auto else 0
        widths = [(w if w is not None else auto_w) * mm for w in col_widths]

        data, commands = [], [
            ("GRID", (0, 0), (-1, -1), grid_width * mm, grid_color),
            ("LEFTPADDING", (0, 0), (-1, -1), padding * mm),
            ("RIGHTPADDING", (0, 0), (-1, -1), padding * mm),
            ("TOPPADDING", (0, 0), (-1, -1), padding * mm),
            ("BOTTOMPADDING", (0, 0), (-1, -1), padding * mm),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ]
        row_offset = 0
        if head:
            data.append([self._paragraph(Cell(h, bold=True, size=head_size, halign="center",
                                              color=head_color)) for h in head])
            commands.append(("VALIGN", (0, 0), (-1, 0), "MIDDLE"))
            if head_fill is not None:
                commands.append(("BACKGROUND", (0, 0), (-1, 0), head_fill))
            row_offset = 1
        for r, row in enumerate(rows, start=row_offset):
            data.append([self._paragraph(cell) for cell in row])
            for col, cell in enumerate(row):
                commands.append(("VALIGN", (col, r), (col, r), cell.valign.upper()))
                if cell.padding is not None:
                    for side in ("LEFTPADDING", "RIGHTPADDING", "TOPPADDING", "BOTTOMPADDING"):
                        commands.append((side, (col, r), (col, r), cell.padding * mm))

        tbl = Table(data, colWidths=widths)
        tbl.setStyle(TableStyle(commands))
        _, h = tbl.wrapOn(self.c, sum(widths), PAGE_H_PT)
        tbl.drawOn(self.c, x * mm, self._y(y) - h)
        # platypus leaves its own font behind
        self.set_font(*self._font)
        return y + h * PT_TO_MM

    def _paragraph(self, cell: Cell) -> Paragraph:
        style = ParagraphStyle(
            "cell",
            fontName=self.fonts["bold" if cell.bold else "normal"],
            fontSize=cell.size,
            leading=cell.size * LINE_HEIGHT_FACTOR,
            alignment=_ALIGN[cell.halign],
            textColor=cell.color,
        )
        markup = "<br/>".join(escape(line) for line in str(cell.text).split("\n"))
        return Paragraph(markup, style)

    # ── output ───────────────────────────────────────────────────────────────
    def getvalue(self) -> bytes:
        """Finish the document and return the PDF bytes. Idempotent."""
        if self._data is None:
            self.c.save()
            self._data = self._buf.getvalue()
        return self._data
