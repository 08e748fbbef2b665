"""Tests for the render_report command line tool."""

import json

import render_report


METADATA = {
    "header": {"title": "CLI"},
    "sections": [
        {"id": "a", "title": "A", "includeInPdf": True, "content": {"type": "text", "template": "Hi {{who}}"}},
        {"id": "b", "title": "B", "includeInPdf": True, "content": {"type": "table", "data": []}},
    ],
}


class TestRender:
    """Tests for rendering from JSON files."""

    def test_writes_pdf(self, tmp_path, capsys):
        """Should write the PDF and summarize it on stderr."""
        meta = tmp_path / "meta.json"
        data = tmp_path / "data.json"
        out = tmp_path / "out" / "report.pdf"
        meta.write_text(json.dumps(METADATA), encoding="utf-8")
        data.write_text(json.dumps({"who": "Ann"}), encoding="utf-8")

        code = render_report.main(["--metadata", str(meta), "--data", str(data), "--out", str(out)])

        assert code == 0
        assert out.read_bytes().startswith(b"%PDF")
        assert "1 skipped" in capsys.readouterr().err

    def test_missing_inputs(self, tmp_path):
        """Should return 2 for missing files or arguments."""
        assert render_report.main([]) == 2
        assert render_report.main(["--metadata", str(tmp_path / "nope.json")]) == 2

    def test_invalid_json(self, tmp_path):
        """Should return 2 for unreadable JSON."""
        meta = tmp_path / "meta.json"
        meta.write_text("{not json", encoding="utf-8")
        assert render_report.main(["--metadata", str(meta)]) == 2

    def test_invalid_metadata(self, tmp_path, capsys):
        """Should return 1 when the metadata does not validate."""
        meta = tmp_path / "meta.json"
        meta.write_text(json.dumps({"sections": "nope"}), encoding="utf-8")
        assert render_report.main(["--metadata", str(meta), "--out", str(tmp_path / "r.pdf")]) == 1
        assert "Report generation failed" in capsys.readouterr().err


class TestSanitize:
    """Tests for --sanitize."""

    def test_prints_json(self, tmp_path, capsys):
        """Should print flattened text and tables as JSON."""
        md = tmp_path / "notes.md"
        md.write_text("# Notes\n\n| A |\n|---|\n| 1 |\n", encoding="utf-8")

        assert render_report.main(["--sanitize", str(md)]) == 0

        payload = json.loads(capsys.readouterr().out)
        assert payload["text"] == "Notes"
        assert payload["tables"][0]["data"] == [{"a": "1"}]
