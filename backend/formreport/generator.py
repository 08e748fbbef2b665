from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .config import CHUNK_TIMEOUT_S, IMAGE_TIMEOUT_S
from .document import FooterText, ReportDocument
from .image_grid import ImageCell, render_image_grid
from .images import ImageLoader, ImageSource
from .layout import SECTION_GAP, Cursor, Placement
from .logging_utils import get_logger
from .renderers import RENDERERS, RenderContext, has_content
from .schemas import ImageContent, ReportMetadata, Section, UnknownContent

log = get_logger(__name__)


class ReportGenerationError(RuntimeError):
    pass


@dataclass(frozen=True)
class SectionPlacement:
    section_id: str
    title: str
    header_drawn: bool
    start: Cursor
    end: Cursor


@dataclass
class RenderResult:
    pdf: bytes
    pages: int
    cursor: Cursor
    sections: list[SectionPlacement] = field(default_factory=list)
    images: list[ImageCell] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    footers: list[FooterText] = field(default_factory=list)

    @property
    def order(self) -> list[str]:
        return [s.section_id for s in self.sections]


def coerce_metadata(metadata: ReportMetadata | dict[str, Any]) -> ReportMetadata:
    if isinstance(metadata, ReportMetadata):
        return metadata
    return ReportMetadata.model_validate(metadata or {})


def ordered_sections(metadata: ReportMetadata) -> list[Section]:
    """Sections flagged for the PDF, by ``order``; ties keep their list order."""
    included = [s for s in metadata.sections if s.include_in_pdf is True]
    return sorted(included, key=lambda s: s.order)


class ReportGenerator:
    def __init__(
        self,
        metadata: ReportMetadata,
        gadget_data: dict[str, Any] | None,
        *,
        image_loader: ImageSource,
        image_timeout_s: float = IMAGE_TIMEOUT_S,
        chunk_timeout_s: float = CHUNK_TIMEOUT_S,
    ) -> None:
        self.metadata = metadata
        self.data = gadget_data or {}
        self.image_loader = image_loader
        self.image_timeout_s = image_timeout_s
        self.chunk_timeout_s = chunk_timeout_s
        self.doc = ReportDocument(metadata)
        self.placements: list[SectionPlacement] = []
        self.image_cells: list[ImageCell] = []
        self.skipped: list[str] = []

    async def _render_body(self, ctx: RenderContext, cursor: Cursor) -> Placement:
        content = ctx.section.content
        if isinstance(content, ImageContent):
            return await render_image_grid(
                ctx,
                content,
                cursor,
                self.image_loader,
                image_timeout_s=self.image_timeout_s,
                chunk_timeout_s=self.chunk_timeout_s,
                cells=self.image_cells,
            )
        if isinstance(content, UnknownContent):
            log.warning(
                "Section %r has unsupported content type %r; drawing its title only",
                ctx.section.id,
                content.declared_type,
            )
            return Placement(start=cursor, end=cursor)
        renderer = RENDERERS[type(content)]
        return renderer(ctx, content, cursor)

    async def _render_section(self, section: Section, cursor: Cursor) -> Cursor:
        g = self.doc.geometry
        if cursor.y > g.content_bottom:
            cursor = self.doc.new_page()
        header_drawn = not section.hide_header
        if header_drawn:
            cursor = self.doc.section_title(cursor, section.title)
        ctx = RenderContext(doc=self.doc, section=section, data=self.data)
        placed = await self._render_body(ctx, cursor)
        self.placements.append(
            SectionPlacement(
                section_id=section.id,
                title=section.title,
                header_drawn=header_drawn,
                start=placed.start,
                end=placed.end,
            )
        )
        return placed.end.down(SECTION_GAP)

    async def run(self) -> RenderResult:
        cursor = self.doc.start()
        for section in ordered_sections(self.metadata):
            if not has_content(section.content, self.data):
                log.debug("Skipping empty section %r", section.id)
                self.skipped.append(section.id)
                continue
            cursor = await self._render_section(section, cursor)

        pages = self.doc.page
        pdf_bytes = self.doc.output()
        alias = self.doc.page_count_alias
        return RenderResult(
            pdf=pdf_bytes,
            pages=pages,
            cursor=cursor,
            sections=self.placements,
            images=self.image_cells,
            skipped=self.skipped,
            footers=[f.resolved(pages, alias) for f in self.doc.footer_log],
        )


async def generate_report(
    metadata: ReportMetadata | dict[str, Any],
    gadget_data: dict[str, Any] | None = None,
    *,
    image_loader: ImageSource | None = None,
    image_base_dir: Path | None = None,
    allow_local_images: bool = True,
    image_timeout_s: float = IMAGE_TIMEOUT_S,
    chunk_timeout_s: float = CHUNK_TIMEOUT_S,
) -> RenderResult:
    """Render a report PDF from layout metadata and resolved form data.

    Path and template misses, empty sections and broken images degrade
    quietly. Anything else that goes wrong while building the document is
    raised as a single ``ReportGenerationError``; no partial PDF is returned.
    When no ``image_loader`` is given, one is created for this call (relative
    image paths resolve under ``image_base_dir``) and closed afterwards.
    ``allow_local_images=False`` limits that loader to data and http(s) sources.
    """
    try:
        meta = coerce_metadata(metadata)
    except ValidationError as e:
        raise ReportGenerationError(f"Invalid report metadata: {e.error_count()} error(s)") from e

    owned = ImageLoader(base_dir=image_base_dir, allow_local=allow_local_images) if image_loader is None else None
    loader: ImageSource = image_loader or owned
    try:
        generator = ReportGenerator(
            meta,
            gadget_data,
            image_loader=loader,
            image_timeout_s=image_timeout_s,
            chunk_timeout_s=chunk_timeout_s,
        )
        result = await generator.run()
    except ReportGenerationError:
        raise
    except Exception as e:
        log.exception("Report generation failed")
        raise ReportGenerationError(f"Report generation failed: {type(e).__name__}: {e}") from e
    finally:
        if owned is not None:
            await owned.aclose()
    log.info("Rendered report: %d page(s), %d section(s)", result.pages, len(result.sections))
    return result


async def render_report_pdf(
    metadata: ReportMetadata | dict[str, Any],
    gadget_data: dict[str, Any] | None = None,
    **kwargs: Any,
) -> bytes:
    result = await generate_report(metadata, gadget_data, **kwargs)
    return result.pdf


def render_report_sync(
    metadata: ReportMetadata | dict[str, Any],
    gadget_data: dict[str, Any] | None = None,
    **kwargs: Any,
) -> RenderResult:
    return asyncio.run(generate_report(metadata, gadget_data, **kwargs))
