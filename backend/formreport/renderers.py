from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from markdown_it import MarkdownIt

from .document import BLACK, ReportDocument
from .layout import (
    GRID_ROW_GAP,
    Cursor,
    PageGeometry,
    Placement,
    PT_PER_MM,
    block_height,
    cell_height,
    chunked,
    grid_column_width,
    line_height,
    span_offsets,
    span_widths,
    wrap_text,
)
from .markdown_sanitize import is_table_separator, looks_like_table_row, split_table_row
from .paths import resolve
from .schemas import (
    FormGridContent,
    ImageContent,
    LabelTopGridContent,
    PdfStyling,
    RawTextContent,
    Section,
    TableContent,
    TableStyling,
    TextContent,
)
from .templating import interpolate
from .text_normalize import normalize_for_pdf, normalize_technical
from .values import display_value

_RAW_HEADING_RE = re.compile(r"^(#{1,3}) (.*)$")
_RAW_ORDERED_RE = re.compile(r"^\d+[.)]\s")
_RAW_HEADINGS = {1: (16, 4.0), 2: (14, 3.0), 3: (12, 2.0)}
_RAW_BLANK_ADVANCE = 3.0
_RAW_LINE_GAP = 2.0
_RAW_TABLE_GAP = 6.0
_RAW_ITEM_INDENT = 5.0
BULLET = "\u2022 "

_MD_PARSER: MarkdownIt | None = None


def _get_markdown_parser() -> MarkdownIt:
    global _MD_PARSER
    if _MD_PARSER is None:
        _MD_PARSER = MarkdownIt("commonmark", {"html": False})
    return _MD_PARSER


def inline_plain(text: str) -> str:
    """Drop inline markdown markers (emphasis, code ticks, link targets), keep the words."""
    if not text:
        return ""
    parts: list[str] = []
    for token in _get_markdown_parser().parseInline(text):
        if not token.children:
            parts.append(token.content or "")
            continue
        for child in token.children:
            if child.type in ("text", "code_inline"):
                parts.append(child.content)
            elif child.type in ("softbreak", "hardbreak"):
                parts.append(" ")
            elif child.type == "image":
                parts.append(child.content or "")
    return "".join(parts)


@dataclass
class RenderContext:
    doc: ReportDocument
    section: Section
    data: Any

    @property
    def styling(self) -> PdfStyling:
        return self.doc.styling

    @property
    def geometry(self) -> PageGeometry:
        return self.doc.geometry

    def ensure_room(self, cursor: Cursor, height: float, *, redraw_title: bool = False) -> Cursor:
        moved = self.doc.ensure_room(cursor, height)
        if redraw_title and moved.page != cursor.page and not self.section.hide_header:
            moved = self.doc.section_title(moved, self.section.title)
        return moved


def resolve_rows(content: TableContent | ImageContent, data: Any) -> list[Any]:
    if content.data_path:
        found = resolve(data, content.data_path)
        if isinstance(found, list):
            return found
    return list(content.data or [])


def has_content(content: Any, data: Any) -> bool:
    if isinstance(content, TextContent):
        return bool(interpolate(content.template, data).strip())
    if isinstance(content, RawTextContent):
        return bool((content.template or "").strip())
    # Image sections with no resolved images are skipped like empty tables.
    if isinstance(content, (TableContent, ImageContent)):
        return len(resolve_rows(content, data)) > 0
    if isinstance(content, LabelTopGridContent):
        return any(display_value(item.value, item.type).strip() for item in content.items)
    if isinstance(content, FormGridContent):
        return any(display_value(cell.value, cell.type).strip() for row in content.rows for cell in row)
    return True


# text


def measure_text_block(
    doc: ReportDocument, text: str, width: float, size: float, factor: float, style: str = ""
) -> tuple[list[str], float, float]:
    lines = wrap_text(text, width, doc.measurer(size, style))
    lh = line_height(size, factor)
    return lines, lh, block_height(len(lines), lh)


def render_text(ctx: RenderContext, content: TextContent, cursor: Cursor) -> Placement:
    cfg = ctx.styling.sections
    g = ctx.geometry
    text = interpolate(content.template, ctx.data)
    lines, lh, height = measure_text_block(ctx.doc, text, g.content_width, cfg.content_font_size, cfg.line_spacing)
    cursor = ctx.ensure_room(cursor, height)
    ctx.doc.draw_lines(lines, g.left, cursor.y, lh, size=cfg.content_font_size)
    return Placement(start=cursor, end=cursor.down(height))


# rawtext


@dataclass(frozen=True)
class RawBlock:
    kind: str
    text: str = ""
    level: int = 0
    rows: tuple[tuple[str, ...], ...] = ()


def parse_rawtext(markdown: str | None) -> list[RawBlock]:
    """Classify markdown lines: heading, table run, list item, blank or paragraph."""
    lines = str(markdown or "").replace("\r\n", "\n").replace("\r", "\n").split("\n")
    blocks: list[RawBlock] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        m = _RAW_HEADING_RE.match(line)
        if m:
            blocks.append(RawBlock("heading", m.group(2), level=len(m.group(1))))
            i += 1
            continue
        if line.startswith("|") and looks_like_table_row(line):
            j = i
            rows: list[tuple[str, ...]] = []
            while j < len(lines) and looks_like_table_row(lines[j]):
                if not is_table_separator(lines[j]):
                    cells = split_table_row(lines[j])
                    if cells:
                        rows.append(tuple(cells))
                j += 1
            if len(rows) >= 2:
                blocks.append(RawBlock("table", rows=tuple(rows)))
            else:
                blocks.extend(RawBlock("paragraph", " ".join(r)) for r in rows)
            i = j
            continue
        if line.startswith(("- ", "* ")):
            blocks.append(RawBlock("item", line[2:]))
        elif _RAW_ORDERED_RE.match(line):
            blocks.append(RawBlock("ordered", line))
        elif not line.strip():
            blocks.append(RawBlock("blank"))
        else:
            blocks.append(RawBlock("paragraph", line))
        i += 1
    return blocks


def render_rawtext(ctx: RenderContext, content: RawTextContent, cursor: Cursor) -> Placement:
    cfg = ctx.styling.sections
    g = ctx.geometry
    doc = ctx.doc
    start: Cursor | None = None
    for block in parse_rawtext(content.template):
        if block.kind == "blank":
            cursor = cursor.down(_RAW_BLANK_ADVANCE)
            continue
        if block.kind == "table":
            rows = [[normalize_technical(inline_plain(c)).strip() for c in r] for r in block.rows]
            placed = draw_table(doc, cursor, rows[0], rows[1:], MARKDOWN_TABLE_STYLE)
            start = start or placed.start
            cursor = placed.end.down(_RAW_TABLE_GAP)
            continue

        size, style, gap, indent = cfg.content_font_size, "", _RAW_LINE_GAP, 0.0
        text = normalize_technical(inline_plain(block.text)).strip()
        if block.kind == "heading":
            size, gap = _RAW_HEADINGS[block.level]
            style = "B"
        elif block.kind == "item":
            text, indent = BULLET + text, _RAW_ITEM_INDENT
        elif block.kind == "ordered":
            indent = _RAW_ITEM_INDENT
        if not text:
            continue

        lines, lh, _ = measure_text_block(doc, text, g.content_width - indent, size, cfg.line_spacing, style)
        height = len(lines) * lh
        cursor = ctx.ensure_room(cursor, height)
        start = start or cursor
        doc.draw_lines(lines, g.left + indent, cursor.y, lh, size=size, style=style)
        cursor = cursor.down(height + gap)
    return Placement(start=start or cursor, end=cursor)


# tables


@dataclass(frozen=True)
class TableStyle:
    header_fill: tuple[int, int, int]
    header_text: tuple[int, int, int]
    header_font_size: float
    body_font_size: float
    padding: float
    line_factor: float = 1.15
    border: tuple[int, int, int] = (200, 200, 200)

    @classmethod
    def from_styling(cls, cfg: TableStyling) -> TableStyle:
        return cls(
            header_fill=cfg.header_background,
            header_text=cfg.header_text_color,
            header_font_size=cfg.header_font_size,
            body_font_size=cfg.content_font_size,
            padding=cfg.cell_padding,
        )


MARKDOWN_TABLE_STYLE = TableStyle(
    header_fill=(245, 245, 245),
    header_text=(50, 50, 50),
    header_font_size=9,
    body_font_size=8,
    padding=3,
)


@dataclass
class TableRowLayout:
    cells: list[list[str]]
    height: float


@dataclass
class TableLayout:
    widths: list[float]
    header: TableRowLayout
    rows: list[TableRowLayout]


def column_widths(
    doc: ReportDocument, headers: Sequence[str], rows: Sequence[Sequence[str]], style: TableStyle, available: float
) -> list[float]:
    cols = len(headers)
    if cols == 0:
        return []
    natural = [doc.text_width(h, style.header_font_size, "B") + style.padding * 2 for h in headers]
    for row in rows:
        for idx, cell in enumerate(row[:cols]):
            natural[idx] = max(natural[idx], doc.text_width(cell, style.body_font_size) + style.padding * 2)
    total = sum(natural)
    if total <= 0:
        return [available / cols] * cols
    widths = [w * available / total for w in natural]
    min_width = doc.text_width("W", style.body_font_size) + style.padding * 2
    if min(widths) < min_width:
        return [available / cols] * cols
    return widths


def _row_layout(
    doc: ReportDocument, cells: Sequence[str], widths: Sequence[float], size: float, style: str, table: TableStyle
) -> TableRowLayout:
    lh = line_height(size, table.line_factor)
    measure = doc.measurer(size, style)
    wrapped = [wrap_text(cell, max(1.0, w - table.padding * 2), measure) for cell, w in zip(cells, widths)]
    most = max((len(lines) for lines in wrapped), default=1)
    return TableRowLayout(cells=wrapped, height=block_height(most, lh) + table.padding * 2)


def measure_table(
    doc: ReportDocument, headers: Sequence[str], rows: Sequence[Sequence[str]], style: TableStyle, available: float
) -> TableLayout:
    cols = max([len(headers)] + [len(r) for r in rows])
    headers = list(headers) + [""] * (cols - len(headers))
    padded = [list(r) + [""] * (cols - len(r)) for r in rows]
    widths = column_widths(doc, headers, padded, style, available)
    return TableLayout(
        widths=widths,
        header=_row_layout(doc, headers, widths, style.header_font_size, "B", style),
        rows=[_row_layout(doc, r, widths, style.body_font_size, "", style) for r in padded],
    )


def _draw_table_row(
    doc: ReportDocument, x: float, y: float, widths: Sequence[float], row: TableRowLayout, style: TableStyle, *, header: bool
) -> None:
    pdf = doc.pdf
    size = style.header_font_size if header else style.body_font_size
    lh = line_height(size, style.line_factor)
    baseline = y + style.padding + (size / PT_PER_MM) * 0.85
    pdf.set_draw_color(*style.border)
    pdf.set_line_width(0.1)
    for w, lines in zip(widths, row.cells):
        if header:
            pdf.set_fill_color(*style.header_fill)
            pdf.rect(x, y, w, row.height, style="DF")
        else:
            pdf.rect(x, y, w, row.height, style="D")
        doc.draw_lines(
            lines,
            x + style.padding,
            baseline,
            lh,
            size=size,
            style="B" if header else "",
            color=style.header_text if header else BLACK,
        )
        x += w


def draw_table(
    doc: ReportDocument, cursor: Cursor, headers: Sequence[str], rows: Sequence[Sequence[str]], style: TableStyle
) -> Placement:
    """Draw a header row and body rows; rows that overflow move to a new page under a repeated header."""
    g = doc.geometry
    layout = measure_table(doc, headers, rows, style, g.content_width)
    first_row = layout.rows[0].height if layout.rows else 0.0
    cursor = doc.ensure_room(cursor, layout.header.height + first_row)
    start = cursor
    y = cursor.y
    _draw_table_row(doc, g.left, y, layout.widths, layout.header, style, header=True)
    y += layout.header.height
    for row in layout.rows:
        if not g.fits(y, row.height):
            y = doc.new_page().y
            _draw_table_row(doc, g.left, y, layout.widths, layout.header, style, header=True)
            y += layout.header.height
        _draw_table_row(doc, g.left, y, layout.widths, row, style, header=False)
        y += row.height
    doc.pdf.set_draw_color(*BLACK)
    return Placement(start=start, end=Cursor(page=doc.page, y=y))


def _table_cell(row: Any, key: str, index: int) -> str:
    if isinstance(row, dict):
        return display_value(row.get(key))
    if isinstance(row, (list, tuple)):
        return display_value(row[index]) if index < len(row) else ""
    return display_value(row) if index == 0 else ""


def render_table(ctx: RenderContext, content: TableContent, cursor: Cursor) -> Placement:
    rows = resolve_rows(content, ctx.data)
    columns = [(c.header, c.key) for c in content.columns]
    if not columns and rows and isinstance(rows[0], dict):
        columns = [(str(k), str(k)) for k in rows[0]]
    headers = [normalize_for_pdf(h) for h, _ in columns]
    body = [[_table_cell(row, key, idx) for idx, (_, key) in enumerate(columns)] for row in rows]
    return draw_table(ctx.doc, cursor, headers, body, TableStyle.from_styling(ctx.styling.tables))


# grids


@dataclass(frozen=True)
class GridCell:
    label: str
    value: str
    x: float
    width: float


@dataclass
class MeasuredGridCell:
    cell: GridCell
    label_lines: list[str]
    value_lines: list[str]


def _grid_fonts(content: LabelTopGridContent | FormGridContent, ctx: RenderContext) -> tuple[float, float]:
    base = ctx.styling.sections.content_font_size
    return content.label_font_size or base + 1, content.value_font_size or base


def measure_grid_row(
    ctx: RenderContext, cells: Sequence[GridCell], content: LabelTopGridContent | FormGridContent
) -> tuple[list[MeasuredGridCell], float]:
    """Row height is the tallest cell: padding, bold label, spacing, value, padding."""
    label_fs, value_fs = _grid_fonts(content, ctx)
    factor = ctx.styling.sections.line_spacing
    label_lh, value_lh = line_height(label_fs, factor), line_height(value_fs, factor)
    label_measure = ctx.doc.measurer(label_fs, "B")
    value_measure = ctx.doc.measurer(value_fs)
    measured: list[MeasuredGridCell] = []
    tallest = 0.0
    for cell in cells:
        inner = max(1.0, cell.width - content.cell_padding * 2)
        label_lines = wrap_text(cell.label, inner, label_measure)
        value_lines = wrap_text(cell.value, inner, value_measure)
        measured.append(MeasuredGridCell(cell, label_lines, value_lines))
        h = cell_height(len(label_lines), label_lh, content.label_value_spacing, len(value_lines), value_lh, content.cell_padding)
        tallest = max(tallest, h)
    return measured, tallest


def _render_grid_rows(
    ctx: RenderContext,
    content: LabelTopGridContent | FormGridContent,
    rows: Sequence[Sequence[GridCell]],
    cursor: Cursor,
) -> Placement:
    label_fs, value_fs = _grid_fonts(content, ctx)
    factor = ctx.styling.sections.line_spacing
    label_lh, value_lh = line_height(label_fs, factor), line_height(value_fs, factor)
    start: Cursor | None = None
    for row in rows:
        measured, height = measure_grid_row(ctx, row, content)
        cursor = ctx.ensure_room(cursor, height, redraw_title=True)
        start = start or cursor
        for m in measured:
            x = m.cell.x + content.cell_padding
            y = cursor.y + content.cell_padding
            ctx.doc.draw_lines(m.label_lines, x, y, label_lh, size=label_fs, style="B")
            y += block_height(len(m.label_lines), label_lh) + content.label_value_spacing
            ctx.doc.draw_lines(m.value_lines, x, y, value_lh, size=value_fs)
        cursor = cursor.down(height + GRID_ROW_GAP)
    return Placement(start=start or cursor, end=cursor)


def label_grid_rows(content: LabelTopGridContent, left: float, available: float) -> list[list[GridCell]]:
    width = grid_column_width(available, content.columns_count, content.gap)
    cells = [
        (normalize_for_pdf(item.label), display_value(item.value, item.type)) for item in content.items
    ]
    rows: list[list[GridCell]] = []
    for chunk in chunked(cells, content.columns_count):
        rows.append(
            [
                GridCell(label=label, value=value, x=left + ci * (width + content.gap), width=width)
                for ci, (label, value) in enumerate(chunk)
            ]
        )
    return rows


def form_grid_rows(content: FormGridContent, left: float, available: float) -> list[list[GridCell]]:
    rows: list[list[GridCell]] = []
    for row in content.rows:
        if not row:
            continue
        widths = span_widths(available, [cell.span for cell in row], content.gap)
        xs = span_offsets(left, widths, content.gap)
        rows.append(
            [
                GridCell(
                    label=normalize_for_pdf(cell.label),
                    value=display_value(cell.value, cell.type),
                    x=x,
                    width=w,
                )
                for cell, x, w in zip(row, xs, widths)
            ]
        )
    return rows


def render_label_top_grid(ctx: RenderContext, content: LabelTopGridContent, cursor: Cursor) -> Placement:
    g = ctx.geometry
    return _render_grid_rows(ctx, content, label_grid_rows(content, g.left, g.content_width), cursor)


def render_form_grid(ctx: RenderContext, content: FormGridContent, cursor: Cursor) -> Placement:
    g = ctx.geometry
    return _render_grid_rows(ctx, content, form_grid_rows(content, g.left, g.content_width), cursor)


Renderer = Callable[[RenderContext, Any, Cursor], Placement]

# Image sections are rendered asynchronously by image_grid; unknown content has no body.
RENDERERS: dict[type, Renderer] = {
    TextContent: render_text,
    RawTextContent: render_rawtext,
    TableContent: render_table,
    LabelTopGridContent: render_label_top_grid,
    FormGridContent: render_form_grid,
}
