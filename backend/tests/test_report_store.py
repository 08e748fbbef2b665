"""Tests for the on-disk report store."""

import json

import pytest

from formreport.report_store import ReportStore, ReportStoreError, _safe_resolve


class TestReportStore:
    """Tests for ReportStore."""

    def test_save_and_load(self, reports_dir):
        """Should write the PDF and a metadata sidecar."""
        store = ReportStore(reports_dir)

        record = store.save(b"%PDF-1.4 test", pages=3, title="Inspection")

        assert len(record.report_id) == 16
        assert store.pdf_path(record.report_id).read_bytes() == b"%PDF-1.4 test"
        loaded = store.load(record.report_id)
        assert loaded == record
        sidecar = json.loads((reports_dir / f"{record.report_id}.json").read_text(encoding="utf-8"))
        assert sidecar["pages"] == 3
        assert sidecar["size"] == len(b"%PDF-1.4 test")

    def test_creates_root(self, tmp_path):
        """Should create the reports directory on first save."""
        store = ReportStore(tmp_path / "nested" / "reports")
        record = store.save(b"%PDF", pages=1)
        assert store.pdf_path(record.report_id).is_file()

    def test_unique_ids(self, reports_dir):
        """Should give every saved report its own id."""
        store = ReportStore(reports_dir)
        ids = {store.save(b"%PDF", pages=1).report_id for _ in range(5)}
        assert len(ids) == 5

    @pytest.mark.parametrize("report_id", ["", "../etc/passwd", "ABCDEF0123456789", "abc", "0123456789abcdef0"])
    def test_invalid_ids(self, reports_dir, report_id):
        """Should reject ids that are not 16 lowercase hex characters."""
        with pytest.raises(ReportStoreError):
            ReportStore(reports_dir).pdf_path(report_id)

    def test_missing_report(self, reports_dir):
        """Should raise for a well-formed id with no files."""
        store = ReportStore(reports_dir)
        with pytest.raises(ReportStoreError, match="not found"):
            store.pdf_path("0123456789abcdef")
        with pytest.raises(ReportStoreError, match="not found"):
            store.load("0123456789abcdef")

    def test_corrupt_sidecar(self, reports_dir):
        """Should raise when the sidecar is not JSON."""
        (reports_dir / "0123456789abcdef.json").write_text("{oops", encoding="utf-8")
        with pytest.raises(ReportStoreError, match="Corrupt"):
            ReportStore(reports_dir).load("0123456789abcdef")


class TestSafeResolve:
    """Tests for report path containment."""

    def test_sibling_prefix_rejected(self, tmp_path):
        """Should reject paths in a sibling directory that shares the root's name prefix."""
        root = tmp_path / "reports"
        root.mkdir()
        assert _safe_resolve(root, "../reports-evil/x.pdf") is None
        assert _safe_resolve(root, "0123456789abcdef.pdf") == (root / "0123456789abcdef.pdf").resolve()
