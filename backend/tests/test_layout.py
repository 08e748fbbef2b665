"""Tests for layout math."""

import pytest

from formreport.layout import (
    Cursor,
    PageGeometry,
    block_height,
    cell_height,
    chunked,
    clamp_span,
    grid_column_width,
    image_grid_height,
    image_grid_slots,
    line_height,
    span_offsets,
    span_widths,
    wrap_text,
)
from formreport.schemas import PdfStyling


class TestSpanMath:
    """Tests for formGrid span widths."""

    def test_half_spans(self):
        """Should give two half-width cells less half a gap each."""
        widths = span_widths(180, [12, 12], 4)
        assert widths == pytest.approx([180 / 2 - 4 / 2] * 2)

    def test_quarter_and_three_quarter(self):
        """Should keep the 1:3 ratio of the spans."""
        a, b = span_widths(180, [6, 18], 4)
        assert b / a == pytest.approx(3)

    def test_offsets(self):
        """Should place each cell after the previous width plus the gap."""
        assert span_offsets(15, [88, 88], 4) == [15, 107]

    def test_empty_row(self):
        """Should return no widths for no cells."""
        assert span_widths(180, [], 4) == []

    @pytest.mark.parametrize(
        "span, expected",
        [(None, 24), (0, 24), ("x", 24), (-3, 1), (30, 24), (12.4, 12), ("6", 6)],
    )
    def test_clamp_span(self, span, expected):
        """Should default, round and clamp spans into 1..24."""
        assert clamp_span(span) == expected


class TestWrapText:
    """Tests for wrap_text with a character-count measure."""

    def test_greedy_words(self):
        """Should fill each line with as many words as fit."""
        assert wrap_text("aaa bbb ccc", 7, len) == ["aaa bbb", "ccc"]

    def test_long_word_is_broken(self):
        """Should split a word wider than the line by character."""
        assert wrap_text("abcdefghij", 4, len) == ["abcd", "efgh", "ij"]
        assert wrap_text("ab abcdefgh", 4, len) == ["ab", "abcd", "efgh"]

    def test_blank_lines_are_kept(self):
        """Should keep empty paragraphs as empty lines."""
        assert wrap_text("a\n\nb", 10, len) == ["a", "", "b"]
        assert wrap_text("", 10, len) == [""]


class TestHeights:
    """Tests for line and block heights."""

    def test_line_height(self):
        """Should convert points to millimetres with the spacing factor."""
        assert line_height(10) == pytest.approx(1.4 * 10 * 25.4 / 72)
        assert line_height(10, 1.0) == pytest.approx(10 * 25.4 / 72)

    def test_block_height_has_one_line_minimum(self):
        """Should reserve at least one line."""
        assert block_height(0, 5) == 5
        assert block_height(3, 5) == 15

    def test_cell_height(self):
        """Should add padding, label, spacing and value heights."""
        assert cell_height(1, 4, 2, 2, 3, 2) == 16

    def test_grid_column_width(self):
        """Should divide the width left after gaps."""
        assert grid_column_width(180, 4, 4) == 42
        assert grid_column_width(180, 0, 4) == 180


class TestPageGeometry:
    """Tests for PageGeometry."""

    def test_a4_defaults(self):
        """Should derive content bounds from an A4 portrait page."""
        geo = PageGeometry.from_styling(PdfStyling())
        assert (geo.width, geo.height) == (210, 297)
        assert geo.content_width == 180
        assert geo.content_bottom == 272
        assert geo.footer_y == 285
        assert geo.center_x == 105

    def test_letter_landscape(self):
        """Should swap dimensions for landscape pages."""
        styling = PdfStyling.model_validate({"page": {"format": "Letter", "orientation": "LANDSCAPE"}})
        geo = PageGeometry.from_styling(styling)
        assert geo.width == pytest.approx(279.4)
        assert geo.height == pytest.approx(215.9)
        assert geo.content_width == pytest.approx(249.4)

    def test_custom_margins(self):
        """Should use the configured left margin and right edge."""
        styling = PdfStyling.model_validate({"sections": {"margins": {"left": 20, "right": 190}}})
        assert PageGeometry.from_styling(styling).content_width == 170

    def test_fits(self):
        """Should allow blocks that end exactly on the content bottom."""
        geo = PageGeometry(width=210, height=297)
        assert geo.fits(247, 25)
        assert not geo.fits(248, 25)


class TestImageGrid:
    """Tests for the fixed image grid."""

    def test_slots(self):
        """Should lay out six cells in two columns and three rows."""
        slots = image_grid_slots(15, 50, 180)
        assert len(slots) == 6
        assert slots[0] == (15, 50, 87.5, 60)
        assert slots[1][0] == pytest.approx(107.5)
        assert slots[2][1] == pytest.approx(115)
        assert slots[5][:2] == pytest.approx((107.5, 180))

    def test_grid_height(self):
        """Should span three rows and two gaps."""
        assert image_grid_height() == 190

    def test_chunked(self):
        """Should split into full chunks plus a remainder."""
        assert list(chunked(list(range(7)), 6)) == [[0, 1, 2, 3, 4, 5], [6]]
        assert list(chunked([], 6)) == []


class TestCursor:
    """Tests for Cursor."""

    def test_down_returns_new_cursor(self):
        """Should not mutate the original cursor."""
        cur = Cursor(1, 40)
        assert cur.down(5) == Cursor(1, 45)
        assert cur == Cursor(1, 40)
