from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse

from .config import CHUNK_TIMEOUT_S, IMAGE_TIMEOUT_S, REPORTS_DIR
from .generator import RenderResult, ReportGenerationError, generate_report
from .logging_utils import get_logger
from .markdown_sanitize import sanitize_markdown
from .report_store import ReportStore, ReportStoreError
from .schemas import (
    GenerateReportRequest,
    SanitizedTable,
    SanitizeRequest,
    SanitizeResponse,
    StoredReportResponse,
    TableColumn,
)

log = get_logger(__name__)

app = FastAPI(title="formreport-backend")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

report_store = ReportStore(REPORTS_DIR)


async def _render(req: GenerateReportRequest) -> RenderResult:
    try:
        # Request bodies are untrusted; never read images from the server disk.
        return await generate_report(req.metadata, req.gadget_data, allow_local_images=False)
    except ReportGenerationError as e:
        log.exception("Report generation error")
        raise HTTPException(status_code=500, detail="Report generation failed") from e


@app.get("/health")
def health() -> dict[str, Any]:
    return {
        "status": "ok",
        "reports_dir": str(report_store.root),
        "image_timeout_s": IMAGE_TIMEOUT_S,
        "chunk_timeout_s": CHUNK_TIMEOUT_S,
    }


@app.post("/reports/pdf")
async def render_pdf(req: GenerateReportRequest) -> Response:
    result = await _render(req)
    return Response(
        content=result.pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": 'inline; filename="report.pdf"',
            "X-Report-Pages": str(result.pages),
        },
    )


@app.post("/reports", response_model=StoredReportResponse)
async def create_report(req: GenerateReportRequest) -> StoredReportResponse:
    result = await _render(req)
    try:
        stored = report_store.save(result.pdf, pages=result.pages, title=req.metadata.header.title)
    except ReportStoreError as e:
        log.exception("Report store error")
        raise HTTPException(status_code=500, detail=str(e)) from e
    return StoredReportResponse(report_id=stored.report_id, url=f"/reports/{stored.report_id}", pages=stored.pages)


@app.get("/reports/{report_id}")
def get_report(report_id: str) -> FileResponse:
    try:
        path = report_store.pdf_path(report_id)
    except ReportStoreError as e:
        raise HTTPException(status_code=404, detail="Report not found") from e
    return FileResponse(
        str(path),
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{report_id}.pdf"'},
    )


@app.post("/markdown/sanitize", response_model=SanitizeResponse)
def sanitize(req: SanitizeRequest) -> SanitizeResponse:
    out = sanitize_markdown(req.markdown)
    tables = [
        SanitizedTable(columns=[TableColumn(**c) for c in t.columns], data=t.data) for t in out.tables
    ]
    return SanitizeResponse(text=out.text, tables=tables)
