from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Iterator, Sequence

from .schemas import PdfStyling

PT_PER_MM = 72 / 25.4

PAGE_SIZES = {
    "a4": (210.0, 297.0),
    "letter": (215.9, 279.4),
    "legal": (215.9, 355.6),
}

TOP_AFTER_BREAK = 30.0
FIRST_CONTENT_Y = 45.0
BOTTOM_RESERVE = 25.0
FOOTER_OFFSET = 12.0
DEFAULT_MARGIN = 15.0

SECTION_TITLE_ADVANCE = 8.0
SECTION_GAP = 6.0
GRID_ROW_GAP = 4.0
SPAN_UNITS = 24

IMAGE_GRID_COLUMNS = 2
IMAGE_GRID_ROWS = 3
IMAGE_CELL_HEIGHT = 60.0
IMAGE_GAP = 5.0
IMAGE_CHUNK_ADVANCE = 10.0


@dataclass(frozen=True)
class Cursor:
    page: int
    y: float

    def down(self, dy: float) -> Cursor:
        return replace(self, y=self.y + dy)


@dataclass(frozen=True)
class Placement:
    """Where a block started (after any page break it forced) and where the next block goes."""

    start: Cursor
    end: Cursor


@dataclass(frozen=True)
class PageGeometry:
    width: float
    height: float
    left: float = DEFAULT_MARGIN
    right: float | None = None
    top_after_break: float = TOP_AFTER_BREAK
    first_content_y: float = FIRST_CONTENT_Y

    @classmethod
    def from_styling(cls, styling: PdfStyling) -> PageGeometry:
        width, height = PAGE_SIZES.get(styling.page.format, PAGE_SIZES["a4"])
        if styling.page.orientation == "landscape":
            width, height = height, width
        margins = styling.sections.margins
        return cls(width=width, height=height, left=margins.left, right=margins.right)

    @property
    def right_edge(self) -> float:
        return self.right if self.right is not None else self.width - DEFAULT_MARGIN

    @property
    def content_width(self) -> float:
        return max(1.0, self.right_edge - self.left)

    @property
    def content_bottom(self) -> float:
        return self.height - BOTTOM_RESERVE

    @property
    def footer_y(self) -> float:
        return self.height - FOOTER_OFFSET

    @property
    def center_x(self) -> float:
        return self.width / 2

    def fits(self, y: float, height: float) -> bool:
        return y + height <= self.content_bottom


def line_height(font_size: float, factor: float = 1.4) -> float:
    return factor * font_size / PT_PER_MM


def block_height(line_count: int, lh: float) -> float:
    return max(lh, line_count * lh)


def _break_word(word: str, width: float, measure: Callable[[str], float]) -> list[str]:
    pieces: list[str] = []
    cur = ""
    for ch in word:
        if cur and measure(cur + ch) > width:
            pieces.append(cur)
            cur = ch
        else:
            cur += ch
    if cur:
        pieces.append(cur)
    return pieces


def wrap_text(text: str, width: float, measure: Callable[[str], float]) -> list[str]:
    """Greedy word wrap; words wider than the line are split by character."""
    lines: list[str] = []
    for paragraph in str(text or "").split("\n"):
        words = paragraph.split()
        if not words:
            lines.append("")
            continue
        cur = ""
        for word in words:
            candidate = f"{cur} {word}" if cur else word
            if measure(candidate) <= width:
                cur = candidate
                continue
            if cur:
                lines.append(cur)
                cur = ""
            if measure(word) <= width:
                cur = word
                continue
            pieces = _break_word(word, width, measure)
            lines.extend(pieces[:-1])
            cur = pieces[-1] if pieces else ""
        lines.append(cur)
    return lines


def grid_column_width(available: float, columns: int, gap: float) -> float:
    columns = max(1, int(columns))
    return (available - gap * (columns - 1)) / columns


def clamp_span(span: Any) -> int:
    # Missing or zero spans take the full row; negatives clamp to one unit.
    try:
        value = float(span)
    except (TypeError, ValueError):
        return SPAN_UNITS
    if value == 0:
        return SPAN_UNITS
    return max(1, min(SPAN_UNITS, int(round(value))))


def span_widths(available: float, spans: Sequence[Any], gap: float) -> list[float]:
    if not spans:
        return []
    usable = available - gap * (len(spans) - 1)
    return [usable * clamp_span(s) / SPAN_UNITS for s in spans]


def span_offsets(left: float, widths: Sequence[float], gap: float) -> list[float]:
    xs: list[float] = []
    x = left
    for w in widths:
        xs.append(x)
        x += w + gap
    return xs


def cell_height(label_lines: int, label_lh: float, spacing: float, value_lines: int, value_lh: float, padding: float) -> float:
    return padding + block_height(label_lines, label_lh) + spacing + block_height(value_lines, value_lh) + padding


def chunked(items: Sequence[Any], size: int) -> Iterator[list[Any]]:
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


def image_cell_width(content_width: float) -> float:
    return (content_width - IMAGE_GAP * (IMAGE_GRID_COLUMNS - 1)) / IMAGE_GRID_COLUMNS


def image_grid_height() -> float:
    return IMAGE_GRID_ROWS * IMAGE_CELL_HEIGHT + (IMAGE_GRID_ROWS - 1) * IMAGE_GAP


def image_grid_slots(left: float, top: float, content_width: float) -> list[tuple[float, float, float, float]]:
    """Cell rectangles ``(x, y, w, h)`` of one chunk, row-major."""
    w = image_cell_width(content_width)
    slots = []
    for idx in range(IMAGE_GRID_COLUMNS * IMAGE_GRID_ROWS):
        row, col = divmod(idx, IMAGE_GRID_COLUMNS)
        x = left + col * (w + IMAGE_GAP)
        y = top + row * (IMAGE_CELL_HEIGHT + IMAGE_GAP)
        slots.append((x, y, w, IMAGE_CELL_HEIGHT))
    return slots
