from __future__ import annotations

import json
import re
from datetime import date, datetime
from typing import Any

from .text_normalize import normalize_for_pdf

# Order matters: the first populated property wins.
_DISPLAY_KEYS = (
    "label",
    "text",
    "display",
    "displayName",
    "name",
    "title",
    "value",
    "description",
)
_NUMBER_RE = re.compile(r"^-?\d+(?:\.\d+)?$")


def _signature_text(value: dict[str, Any]) -> str:
    signed_by = value.get("signedBy") or "Unknown"
    stamp = value.get("timestamp") or "Unknown time"
    return f"Digitally signed by: {signed_by} on {stamp}"


def _single_value(item: Any) -> str:
    if item is None:
        return ""
    if isinstance(item, bool):
        return "Yes" if item else "No"
    if isinstance(item, str):
        return normalize_for_pdf(item)
    if isinstance(item, (int, float)):
        return str(item)
    if isinstance(item, datetime):
        return item.isoformat(sep=" ", timespec="minutes")
    if isinstance(item, date):
        return item.isoformat()
    if not isinstance(item, dict):
        return ""

    if item.get("dataURL"):
        return _signature_text(item)
    for key in _DISPLAY_KEYS:
        val = item.get(key)
        if isinstance(val, str):
            return normalize_for_pdf(val)
        if isinstance(val, (int, float)) and not isinstance(val, bool):
            return str(val)
    if item.get("id") is not None:
        return normalize_for_pdf(str(item["id"]))
    if isinstance(item.get("data"), dict):
        return _single_value(item["data"])
    if len(item) == 1:
        return _single_value(next(iter(item.values())))
    if 0 < len(item) <= 3:
        pairs = [f"{k}: {v}" for k, v in item.items() if v is not None and not isinstance(v, (dict, list))]
        if pairs:
            return ", ".join(pairs)
    return ""


def _format_typed(text: str, field_type: str | None) -> str:
    if not text or not field_type:
        return text
    if field_type == "currency" and _NUMBER_RE.match(text):
        amount = float(text)
        sign = "-" if amount < 0 else ""
        return f"{sign}${abs(amount):,.2f}"
    if field_type == "percentage" and _NUMBER_RE.match(text):
        return f"{text}%"
    if field_type == "phone":
        digits = re.sub(r"\D", "", text)
        if len(digits) == 10:
            return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    return text


def display_value(value: Any, field_type: str | None = None) -> str:
    """Render a form value as report text instead of a raw repr.

    Lists join their items with commas, dicts use their most display-like
    property, signature payloads become a signed-by line.
    """
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        parts = [_single_value(v) for v in value]
        text = ", ".join(p for p in parts if p)
    elif isinstance(value, dict) or isinstance(value, (str, bool, int, float, date)):
        text = _single_value(value)
    else:
        try:
            text = json.dumps(value, default=str)
        except (TypeError, ValueError):
            text = ""
    return normalize_for_pdf(_format_typed(text, field_type))
