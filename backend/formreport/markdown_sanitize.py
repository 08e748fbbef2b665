from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from .text_normalize import normalize_for_pdf

_TABLE_RE = re.compile(r"\|(.+)\|\n\|[-\s|:]+\|\n((?:\|.+\|\n?)*)")
_TABLE_PLACEHOLDER = "[TABLE_PLACEHOLDER]"
_HEADING_RE = re.compile(r"^[ \t]*#{1,6}[ \t]+", re.MULTILINE)
_BOLD_RE = re.compile(r"\*\*(.*?)\*\*")
_ITALIC_RE = re.compile(r"\*(.*?)\*")
_CODE_RE = re.compile(r"`(.*?)`")
_LINK_RE = re.compile(r"\[(.*?)\]\(.*?\)")
_LIST_RE = re.compile(r"^[ \t]*[-*+][ \t]+", re.MULTILINE)
_BLANK_RUN_RE = re.compile(r"\n{3,}")
_KEY_RE = re.compile(r"[^a-z0-9]")
_SEPARATOR_CELL_RE = re.compile(r":?-{3,}:?")


@dataclass
class ExtractedTable:
    columns: list[dict[str, str]] = field(default_factory=list)
    data: list[dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"columns": self.columns, "data": self.data}


@dataclass
class SanitizedMarkdown:
    text: str
    tables: list[ExtractedTable] = field(default_factory=list)


def column_key(header: str) -> str:
    return _KEY_RE.sub("_", header.lower())


def split_table_row(line: str) -> list[str]:
    raw = line.strip().strip("|")
    if not raw:
        return []
    return [c.strip() for c in raw.split("|")]


def is_table_separator(line: str) -> bool:
    raw = line.strip()
    if not raw or "|" not in raw:
        return False
    cells = [c.strip() for c in raw.strip("|").split("|")]
    if not cells:
        return False
    for cell in cells:
        if not cell:
            return False
        if not _SEPARATOR_CELL_RE.fullmatch(cell):
            return False
    return True


def looks_like_table_row(line: str) -> bool:
    raw = line.strip()
    if "|" not in raw:
        return False
    if raw.startswith("|") or raw.endswith("|"):
        return True
    return raw.count("|") >= 2


def _parse_table(header_row: str, body: str) -> ExtractedTable | None:
    headers = [normalize_for_pdf(h) for h in split_table_row(header_row)]
    if not any(headers):
        return None
    rows = []
    for line in body.strip().split("\n"):
        cells = split_table_row(line)
        if cells:
            rows.append(cells)
    if not rows:
        return None
    columns = [{"header": h, "key": column_key(h)} for h in headers]
    data = []
    for cells in rows:
        record: dict[str, str] = {}
        for idx, col in enumerate(columns):
            record[col["key"]] = normalize_for_pdf(cells[idx] if idx < len(cells) else "")
        data.append(record)
    return ExtractedTable(columns=columns, data=data)


def _strip_markdown(text: str) -> str:
    out = _HEADING_RE.sub("", text)
    out = _LIST_RE.sub("\u2022 ", out)
    out = _BOLD_RE.sub(r"\1", out)
    out = _ITALIC_RE.sub(r"\1", out)
    out = _CODE_RE.sub(r"\1", out)
    out = _LINK_RE.sub(r"\1", out)
    out = out.replace(_TABLE_PLACEHOLDER, "")
    return _BLANK_RUN_RE.sub("\n\n", out)


def sanitize_markdown(markdown: str | None) -> SanitizedMarkdown:
    """Flatten markdown to plain prose, pulling pipe tables out as data.

    Each table becomes ``{columns: [{header, key}], data: [{key: cell}]}``;
    unmatched fragments are left in the text as-is.
    """
    if not markdown:
        return SanitizedMarkdown(text="", tables=[])
    source = str(markdown).replace("\r\n", "\n").replace("\r", "\n")
    tables: list[ExtractedTable] = []
    text = source
    for match in _TABLE_RE.finditer(source):
        table = _parse_table(match.group(1), match.group(2))
        if table is not None:
            tables.append(table)
        text = text.replace(match.group(0), f"\n{_TABLE_PLACEHOLDER}\n", 1)
    return SanitizedMarkdown(text=normalize_for_pdf(_strip_markdown(text)), tables=tables)
