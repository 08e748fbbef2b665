from __future__ import annotations

import json
import re
from typing import Any

from .paths import resolve
from .text_normalize import normalize_for_pdf

_TOKEN_RE = re.compile(r"\{\{\s*([a-zA-Z0-9_.\-\[\]\"']+)\s*\}\}")


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def interpolate(template: str | None, data: Any) -> str:
    if not template:
        return ""
    out = _TOKEN_RE.sub(lambda m: _stringify(resolve(data, m.group(1))), str(template))
    return normalize_for_pdf(out)
