from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from typing import Sequence

from fpdf import FPDF

from .layout import SECTION_TITLE_ADVANCE, Cursor, PageGeometry
from .schemas import ReportMetadata
from .text_normalize import normalize_for_pdf, to_core_font

FONT_FAMILY = "Helvetica"
BLACK = (0, 0, 0)


@dataclass(frozen=True)
class FooterText:
    page: int
    left: str
    center: str
    right: str

    def resolved(self, total_pages: int, alias: str) -> FooterText:
        total = str(total_pages)
        return FooterText(
            page=self.page,
            left=self.left.replace(alias, total),
            center=self.center.replace(alias, total),
            right=self.right.replace(alias, total),
        )


class ReportDocument:
    """One generation's PDF surface.

    The page header banner and the footer are fpdf hooks, so every page break
    redraws the banner and every page gets its footer. ``{pages}`` is written as
    the fpdf page-count alias and only becomes a number when the PDF is output.
    """

    def __init__(self, metadata: ReportMetadata) -> None:
        self.metadata = metadata
        self.styling = metadata.pdf_styling
        self.geometry = PageGeometry.from_styling(self.styling)
        page = self.styling.page
        pdf = FPDF(orientation=page.orientation, unit="mm", format=page.format)
        pdf.alias_nb_pages()
        pdf.set_auto_page_break(auto=False)
        pdf.set_margins(self.geometry.left, self.geometry.top_after_break, self.geometry.width - self.geometry.right_edge)
        self.pdf = pdf
        self.footer_log: list[FooterText] = []

        doc = self

        def header(self: FPDF) -> None:
            doc._draw_banner()

        def footer(self: FPDF) -> None:
            doc._draw_footer()

        pdf.header = header.__get__(pdf, FPDF)
        pdf.footer = footer.__get__(pdf, FPDF)

    @property
    def page(self) -> int:
        return self.pdf.page_no()

    @property
    def page_count_alias(self) -> str:
        return self.pdf.str_alias_nb_pages

    # text primitives

    def set_font(self, size: float, style: str = "") -> None:
        self.pdf.set_font(FONT_FAMILY, style, size)

    def text_width(self, text: str, size: float, style: str = "") -> float:
        self.set_font(size, style)
        return self.pdf.get_string_width(to_core_font(text))

    def measurer(self, size: float, style: str = ""):
        return lambda s: self.text_width(s, size, style)

    def draw_text(
        self,
        x: float,
        y: float,
        text: str,
        *,
        size: float,
        style: str = "",
        color: Sequence[int] = BLACK,
        align: str = "L",
    ) -> None:
        if not text:
            return
        safe = to_core_font(text)
        self.set_font(size, style)
        self.pdf.set_text_color(*color)
        if align == "C":
            x -= self.pdf.get_string_width(safe) / 2
        elif align == "R":
            x -= self.pdf.get_string_width(safe)
        self.pdf.text(x, y, safe)

    def draw_lines(
        self,
        lines: Sequence[str],
        x: float,
        y: float,
        lh: float,
        *,
        size: float,
        style: str = "",
        color: Sequence[int] = BLACK,
    ) -> None:
        for idx, line in enumerate(lines):
            self.draw_text(x, y + idx * lh, line, size=size, style=style, color=color)

    def draw_image(self, data: bytes, x: float, y: float, w: float, h: float) -> None:
        self.pdf.image(BytesIO(data), x=x, y=y, w=w, h=h)

    # pages

    def start(self) -> Cursor:
        """Open page 1 and draw the optional main title; returns the first content cursor."""
        self.pdf.add_page()
        header = self.metadata.header
        if self.styling.header.show_main_title and header.title:
            cx = self.geometry.center_x
            self.draw_text(cx, 35, normalize_for_pdf(header.title).upper(), size=16, style="B", align="C")
            if header.subtitle:
                self.draw_text(cx, 41, normalize_for_pdf(header.subtitle), size=10, align="C")
        return Cursor(page=self.page, y=self.geometry.first_content_y)

    def new_page(self) -> Cursor:
        self.pdf.add_page()
        return Cursor(page=self.page, y=self.geometry.top_after_break)

    def ensure_room(self, cursor: Cursor, height: float) -> Cursor:
        """Break to a new page unless ``height`` fits below ``cursor``.

        A block that is taller than a whole page is placed at the top of the
        current page when the cursor is already there; it overflows instead of
        producing blank pages.
        """
        if self.geometry.fits(cursor.y, height) or cursor.y <= self.geometry.top_after_break:
            return cursor
        return self.new_page()

    def section_title(self, cursor: Cursor, title: str) -> Cursor:
        g = self.geometry
        size = self.styling.sections.header_font_size
        self.draw_text(g.left, cursor.y, normalize_for_pdf(title).upper(), size=size, style="B")
        self.pdf.set_draw_color(*BLACK)
        self.pdf.set_line_width(0.2)
        self.pdf.line(g.left, cursor.y + 1, g.right_edge, cursor.y + 1)
        return cursor.down(SECTION_TITLE_ADVANCE)

    def output(self) -> bytes:
        return bytes(self.pdf.output())

    # hooks

    def _draw_banner(self) -> None:
        cfg = self.styling.header
        header = self.metadata.header
        pdf = self.pdf
        pdf.set_fill_color(*cfg.background_color)
        pdf.rect(0, 0, self.geometry.width, cfg.height, style="F")
        cx = self.geometry.center_x
        if cfg.show_header_title and header.title:
            self.draw_text(cx, 10, normalize_for_pdf(header.title), size=cfg.font_size, style="B", color=cfg.text_color, align="C")
        small = max(1.0, cfg.font_size - 4)
        if header.company_name and header.company_address:
            self.draw_text(cx, 15, normalize_for_pdf(header.company_name), size=small, style="B", color=cfg.text_color, align="C")
            self.draw_text(cx, 18.5, normalize_for_pdf(header.company_address), size=max(1.0, small - 2), color=cfg.text_color, align="C")
        elif header.company_name:
            self.draw_text(cx, 18, normalize_for_pdf(header.company_name), size=small, style="B", color=cfg.text_color, align="C")
        elif header.company_address:
            self.draw_text(cx, 18, normalize_for_pdf(header.company_address), size=max(1.0, small - 2), color=cfg.text_color, align="C")
        pdf.set_text_color(*BLACK)

    def _footer_text(self, template: str) -> str:
        if not template:
            return ""
        out = template.replace("{page}", str(self.page)).replace("{pages}", self.page_count_alias)
        return normalize_for_pdf(out)

    def _draw_footer(self) -> None:
        cfg = self.styling.footer
        g = self.geometry
        entry = FooterText(
            page=self.page,
            left=self._footer_text(cfg.left_text),
            center=self._footer_text(cfg.center_text),
            right=self._footer_text(cfg.right_text),
        )
        self.footer_log.append(entry)
        self.draw_text(g.left, g.footer_y, entry.left, size=cfg.font_size, color=cfg.text_color)
        self.draw_text(g.center_x, g.footer_y, entry.center, size=cfg.font_size, color=cfg.text_color, align="C")
        self.draw_text(g.right_edge, g.footer_y, entry.right, size=cfg.font_size, color=cfg.text_color, align="R")
        self.pdf.set_text_color(*BLACK)
