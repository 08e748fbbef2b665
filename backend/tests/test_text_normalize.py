"""Tests for text normalization."""

import pytest

from formreport.text_normalize import normalize_for_pdf, normalize_technical, to_core_font


SAMPLES = [
    "",
    "plain ascii",
    "  padded\t\ttext  ",
    "a\u00a0b\u202fc\u2009d",
    "en\u2013em\u2014minus\u2212hyphen\u2011",
    "\u201cquoted\u201d and \u2018single\u2019 \u201elow\u201c",
    "wait\u2026",
    "line1\r\nline2\rline3\n",
    "\ufb01ligature and \uff21 fullwidth",
    "mixed \t \u00a0 \u2009 spaces",
    "caf\u00e9 \u00bd \u2192 \u00b2",
]


class TestNormalizeForPdf:
    """Tests for normalize_for_pdf."""

    def test_spaces(self):
        """Should map space variants to a plain space."""
        assert normalize_for_pdf("a\u00a0b\u202fc\u2007d\u2008e\u2009f\u200ag") == "a b c d e f g"

    def test_dashes(self):
        """Should map dash variants to hyphen-minus."""
        assert normalize_for_pdf("1\u20102\u20113\u20124\u20135\u20146\u22127") == "1-2-3-4-5-6-7"

    def test_quotes_and_ellipsis(self):
        """Should map curly and low quotes and the ellipsis to ASCII."""
        assert normalize_for_pdf("\u201cHi\u201d \u2018x\u2019 \u201ay\u201e\u2026") == "\"Hi\" 'x' 'y\"..."

    def test_whitespace_and_newlines(self):
        """Should collapse space runs, unify newlines and trim."""
        assert normalize_for_pdf("  a \t b\r\nc\rd  ") == "a b\nc\nd"

    def test_nfkc(self):
        """Should apply compatibility composition."""
        assert normalize_for_pdf("\ufb01") == "fi"

    def test_none_and_empty(self):
        """Should return an empty string for empty input."""
        assert normalize_for_pdf(None) == ""
        assert normalize_for_pdf("") == ""

    @pytest.mark.parametrize("text", SAMPLES)
    def test_idempotent(self, text):
        """Should give the same result when applied twice."""
        once = normalize_for_pdf(text)
        assert normalize_for_pdf(once) == once


class TestNormalizeTechnical:
    """Tests for normalize_technical."""

    def test_arrows_and_operators(self):
        """Should spell out arrows and comparison operators."""
        assert normalize_technical("a\u2192b") == "a -> b"
        assert normalize_technical("x \u2264 y \u2265 z \u2260 w \u2248 v") == "x <= y >= z != w ~= v"

    def test_fractions_superscripts_currency(self):
        """Should replace fractions, superscripts and currency symbols."""
        assert normalize_technical("\u00bd \u00bc \u00be") == "1/2 1/4 3/4"
        assert normalize_technical("m\u00b2 m\u00b3") == "m^2 m^3"
        assert normalize_technical("5\u20ac 3\u00a3 9\u00a5") == "5EUR 3GBP 9JPY"
        assert normalize_technical("20\u00b0C \u00b11 2\u00d73 6\u00f72") == "20degC +/-1 2x3 6/2"

    def test_accents_stripped(self):
        """Should reduce accented Latin letters to their base letter."""
        assert normalize_technical("caf\u00e9 \u00c0 la cr\u00e8me \u00f1 \u00c7") == "cafe A la creme n C"

    def test_general_punctuation_becomes_space(self):
        """Should turn general punctuation block characters into spaces."""
        assert normalize_technical("a\u2022b") == "a b"

    def test_invisible_characters_removed(self):
        """Should drop the byte order mark."""
        assert normalize_technical("\ufeffstart") == "start"


class TestToCoreFont:
    """Tests for to_core_font."""

    def test_latin1_passes(self):
        """Should keep Latin-1 text unchanged."""
        assert to_core_font("Caf\u00e9 \u00a3") == "Caf\u00e9 \u00a3"

    def test_bullet_becomes_middle_dot(self):
        """Should map the bullet glyph to a middle dot."""
        assert to_core_font("\u2022 item") == "\u00b7 item"

    def test_unmappable_becomes_question_mark(self):
        """Should replace glyphs outside Latin-1."""
        assert to_core_font("\u4e2d") == "?"
