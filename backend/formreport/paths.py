from __future__ import annotations

import re
from typing import Any

_QUOTED_INDEX_RE = re.compile(r"""\[\s*(["'])(.*?)\1\s*\]""")
_NUMERIC_INDEX_RE = re.compile(r"\[\s*(\d+)\s*\]")
_DIGITS_RE = re.compile(r"^\d+$")


def path_parts(path: str) -> list[str]:
    """Split ``a.b[0]["c d"]`` into ``["a", "b", "0", "c d"]``."""
    text = _QUOTED_INDEX_RE.sub(r".\2", str(path))
    text = _NUMERIC_INDEX_RE.sub(r".\1", text)
    return [p for p in text.split(".") if p]


def _step(cur: Any, part: str) -> Any:
    if _DIGITS_RE.match(part):
        idx = int(part)
        if isinstance(cur, (list, tuple)):
            return cur[idx] if idx < len(cur) else None
        if isinstance(cur, dict):
            if part in cur:
                return cur[part]
            return cur.get(idx)
        return None
    if isinstance(cur, dict):
        return cur.get(part)
    return None


def resolve(root: Any, path: str | None) -> Any:
    """Resolve a dotted/bracketed path against nested dicts and lists.

    Returns None for an empty path, a None root, or any segment that does not
    exist. Never raises.
    """
    if root is None or not path:
        return None
    cur = root
    for part in path_parts(path):
        if cur is None:
            return None
        cur = _step(cur, part)
    return cur
