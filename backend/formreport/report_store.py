from __future__ import annotations

import json
import re
import secrets
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path

from .config import REPORTS_DIR

_REPORT_ID_RE = re.compile(r"^[a-f0-9]{16}$")


class ReportStoreError(RuntimeError):
    pass


@dataclass(frozen=True)
class StoredReport:
    report_id: str
    pages: int
    size: int
    created_at: str
    title: str | None = None


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _safe_resolve(base: Path, rel: str) -> Path | None:
    candidate = (base / rel).resolve()
    if not candidate.is_relative_to(base.resolve()):
        return None
    return candidate


class ReportStore:
    """Rendered PDFs on disk, one ``<id>.pdf`` plus a ``<id>.json`` sidecar each."""

    def __init__(self, root: Path = REPORTS_DIR) -> None:
        self.root = Path(root)

    def _paths(self, report_id: str) -> tuple[Path, Path]:
        if not _REPORT_ID_RE.match(str(report_id or "")):
            raise ReportStoreError(f"Invalid report id: {report_id!r}")
        pdf_path = _safe_resolve(self.root, f"{report_id}.pdf")
        meta_path = _safe_resolve(self.root, f"{report_id}.json")
        if pdf_path is None or meta_path is None:
            raise ReportStoreError(f"Invalid report id: {report_id!r}")
        return pdf_path, meta_path

    def save(self, pdf: bytes, *, pages: int, title: str | None = None) -> StoredReport:
        report_id = secrets.token_hex(8)
        pdf_path, meta_path = self._paths(report_id)
        record = StoredReport(report_id=report_id, pages=pages, size=len(pdf), created_at=_utc_now(), title=title)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            pdf_path.write_bytes(pdf)
            meta_path.write_text(json.dumps(asdict(record), indent=2), encoding="utf-8")
        except OSError as e:
            raise ReportStoreError(f"Failed to store report: {e}") from e
        return record

    def pdf_path(self, report_id: str) -> Path:
        pdf_path, _ = self._paths(report_id)
        if not pdf_path.is_file():
            raise ReportStoreError(f"Report not found: {report_id}")
        return pdf_path

    def load(self, report_id: str) -> StoredReport:
        _, meta_path = self._paths(report_id)
        try:
            raw = json.loads(meta_path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise ReportStoreError(f"Report not found: {report_id}") from e
        except (OSError, json.JSONDecodeError) as e:
            raise ReportStoreError(f"Corrupt report record: {report_id}") from e
        return StoredReport(
            report_id=str(raw.get("report_id") or report_id),
            pages=int(raw.get("pages") or 0),
            size=int(raw.get("size") or 0),
            created_at=str(raw.get("created_at") or ""),
            title=raw.get("title"),
        )
