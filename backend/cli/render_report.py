from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from formreport.generator import ReportGenerationError, render_report_sync
from formreport.markdown_sanitize import sanitize_markdown


def log(msg: str) -> None:
    print(msg, file=sys.stderr)


def read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8-sig"))


def render(metadata_path: Path, data_path: Path | None, out_path: Path, image_base: Path | None) -> int:
    if not metadata_path.is_file():
        log(f"Metadata file not found: {metadata_path}")
        return 2
    if data_path is not None and not data_path.is_file():
        log(f"Data file not found: {data_path}")
        return 2
    try:
        metadata = read_json(metadata_path)
        gadget_data = read_json(data_path) if data_path is not None else {}
    except json.JSONDecodeError as e:
        log(f"Invalid JSON: {e}")
        return 2

    try:
        result = render_report_sync(metadata, gadget_data, image_base_dir=image_base or metadata_path.parent)
    except ReportGenerationError as e:
        log(f"Report generation failed: {e}")
        return 1

    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(result.pdf)
    log(f"Wrote {out_path} ({result.pages} page(s), {len(result.sections)} section(s), {len(result.skipped)} skipped)")
    return 0


def sanitize(path: Path) -> int:
    if not path.is_file():
        log(f"Markdown file not found: {path}")
        return 2
    out = sanitize_markdown(path.read_text(encoding="utf-8-sig", errors="ignore"))
    payload = {"text": out.text, "tables": [t.to_dict() for t in out.tables]}
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Render a form report PDF from layout metadata and form data.")
    ap.add_argument("--metadata", type=Path, help="Report metadata JSON (header, pdfStyling, sections)")
    ap.add_argument("--data", type=Path, default=None, help="Resolved form data JSON (gadgetData)")
    ap.add_argument("--out", type=Path, default=Path("report.pdf"), help="Output PDF path")
    ap.add_argument("--image-base", type=Path, default=None, help="Base directory for relative image paths")
    ap.add_argument("--sanitize", type=Path, default=None, help="Print a markdown file as flattened text + tables JSON")
    args = ap.parse_args(argv)

    if args.sanitize is not None:
        return sanitize(args.sanitize)
    if args.metadata is None:
        log("Either --metadata or --sanitize is required")
        return 2
    return render(args.metadata, args.data, args.out, args.image_base)


if __name__ == "__main__":
    raise SystemExit(main())
