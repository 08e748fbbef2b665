from __future__ import annotations

import re
import unicodedata

# Built-in PDF fonts only cover a fixed glyph set; anything outside it renders
# as a missing-glyph box or throws off string-width measurement.
_PDF_REPLACEMENTS = {
    "\u00a0": " ",
    "\u202f": " ",
    "\u2007": " ",
    "\u2008": " ",
    "\u2009": " ",
    "\u200a": " ",
    "\u2010": "-",
    "\u2011": "-",
    "\u2012": "-",
    "\u2013": "-",
    "\u2014": "-",
    "\u2212": "-",
    "\u2018": "'",
    "\u2019": "'",
    "\u201a": "'",
    "\u201c": "\"",
    "\u201d": "\"",
    "\u201e": "\"",
    "\u2026": "...",
}
_PDF_TRANSLATION = str.maketrans(_PDF_REPLACEMENTS)

# Formula and notation symbols that show up in generated analysis text.
_TECHNICAL_REPLACEMENTS = {
    "\u2192": " -> ",
    "\u2190": " <- ",
    "\u2191": " ^ ",
    "\u2193": " v ",
    "\u2018": "'",
    "\u2019": "'",
    "\u201c": "\"",
    "\u201d": "\"",
    "\u2013": "-",
    "\u2014": "-",
    "\u2026": "...",
    "\u00b0": "deg",
    "\u00b1": "+/-",
    "\u00d7": "x",
    "\u00f7": "/",
    "\u2264": "<=",
    "\u2265": ">=",
    "\u2260": "!=",
    "\u2248": "~=",
    "\u00bd": "1/2",
    "\u00bc": "1/4",
    "\u00be": "3/4",
    "\u00b2": "^2",
    "\u00b3": "^3",
    "\u00b9": "^1",
    "\u20ac": "EUR",
    "\u00a3": "GBP",
    "\u00a5": "JPY",
}
_TECHNICAL_TRANSLATION = str.maketrans(_TECHNICAL_REPLACEMENTS)

# Draw-time fallbacks for glyphs the core fonts lack.
_CORE_FONT_REPLACEMENTS = {
    "\u2022": "\u00b7",
    "\u200b": "",
    "\u2015": "-",
    "\u2190": "<-",
    "\u2192": "->",
    "\u21d2": "=>",
}
_CORE_FONT_TRANSLATION = str.maketrans(_CORE_FONT_REPLACEMENTS)

_SPACE_RUN_RE = re.compile(r"[ \t]+")
_GENERAL_PUNCT_RE = re.compile("[\u2000-\u206f\u2e00-\u2e7f\u3000-\u303f]")
_INVISIBLE_RE = re.compile("[\ufeff\ufffe\uffff]")


def _normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def normalize_for_pdf(text: str | None) -> str:
    if not text:
        return ""
    out = unicodedata.normalize("NFKC", str(text))
    out = out.translate(_PDF_TRANSLATION)
    out = _SPACE_RUN_RE.sub(" ", out)
    return _normalize_newlines(out).strip()


def _strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    kept = [ch for ch in decomposed if not unicodedata.combining(ch)]
    return unicodedata.normalize("NFC", "".join(kept))


def normalize_technical(text: str | None) -> str:
    """Aggressive substitution for markdown lines drawn with a minimal font."""
    if not text:
        return ""
    out = _normalize_newlines(str(text))
    out = out.translate(_TECHNICAL_TRANSLATION)
    out = _strip_accents(out)
    out = _GENERAL_PUNCT_RE.sub(" ", out)
    out = _INVISIBLE_RE.sub("", out)
    return _SPACE_RUN_RE.sub(" ", out)


def to_core_font(text: str | None) -> str:
    """Encode text for the Latin-1 core fonts; unmappable glyphs become '?'."""
    if not text:
        return ""
    cleaned = str(text).translate(_CORE_FONT_TRANSLATION)
    cleaned = cleaned.translate(_PDF_TRANSLATION)
    return cleaned.encode("latin-1", "replace").decode("latin-1")
