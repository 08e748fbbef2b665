from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Sequence

from .config import CHUNK_TIMEOUT_S, IMAGE_TIMEOUT_S
from .images import ImageSource, compose_cell_image, image_source
from .layout import (
    IMAGE_CHUNK_ADVANCE,
    IMAGE_GRID_COLUMNS,
    IMAGE_GRID_ROWS,
    Cursor,
    Placement,
    chunked,
    image_grid_height,
    image_grid_slots,
)
from .logging_utils import get_logger
from .renderers import RenderContext, resolve_rows
from .schemas import ImageContent

log = get_logger(__name__)

CHUNK_SIZE = IMAGE_GRID_COLUMNS * IMAGE_GRID_ROWS


@dataclass(frozen=True)
class ImageCell:
    section_id: str
    chunk: int
    slot: int
    page: int
    x: float
    y: float
    width: float
    height: float
    src: str
    drawn: bool


@dataclass(frozen=True)
class _CellJob:
    slot: int
    src: str
    rect: tuple[float, float, float, float]


async def _load_cell(
    loader: ImageSource,
    job: _CellJob,
    content: ImageContent,
    ctx: RenderContext,
    image_timeout_s: float,
) -> bytes | None:
    """Load and composite one cell; any failure becomes a blank cell."""
    if not job.src:
        return None
    cfg = ctx.styling.images
    _, _, w, h = job.rect
    try:
        data = await asyncio.wait_for(loader.load(job.src), timeout=image_timeout_s)
        return await asyncio.to_thread(
            compose_cell_image,
            data,
            w,
            h,
            dpi=cfg.dpi,
            fit=content.fit or cfg.fit,
            background=cfg.background_color,
            fmt=content.format or cfg.format,
            quality=content.quality or cfg.quality,
        )
    except asyncio.TimeoutError:
        log.warning("Image load timed out after %.1fs: %s", image_timeout_s, job.src[:120])
    except Exception as e:
        log.warning("Image skipped (%s): %s", e, job.src[:120])
    return None


async def _settle_chunk(
    jobs: Sequence[_CellJob],
    loader: ImageSource,
    content: ImageContent,
    ctx: RenderContext,
    image_timeout_s: float,
    chunk_timeout_s: float,
) -> dict[int, bytes]:
    tasks = {
        asyncio.create_task(_load_cell(loader, job, content, ctx, image_timeout_s)): job.slot for job in jobs
    }
    if not tasks:
        return {}
    done, pending = await asyncio.wait(tasks, timeout=chunk_timeout_s)
    for task in pending:
        task.cancel()
    if pending:
        log.warning("Image chunk timed out after %.1fs; %d cell(s) left blank", chunk_timeout_s, len(pending))
        await asyncio.gather(*pending, return_exceptions=True)
    results: dict[int, bytes] = {}
    for task in done:
        data = task.result()
        if data:
            results[tasks[task]] = data
    return results


async def render_image_grid(
    ctx: RenderContext,
    content: ImageContent,
    cursor: Cursor,
    loader: ImageSource,
    *,
    image_timeout_s: float = IMAGE_TIMEOUT_S,
    chunk_timeout_s: float = CHUNK_TIMEOUT_S,
    cells: list[ImageCell] | None = None,
) -> Placement:
    """Lay images out in 2x3 chunks; each chunk loads concurrently and is placed once settled.

    Chunks run one after another because each one's position depends on where
    the previous one ended. Cells whose image fails or times out stay blank.
    """
    g = ctx.geometry
    items: list[Any] = resolve_rows(content, ctx.data)
    grid_height = image_grid_height()
    start: Cursor | None = None
    for chunk_index, chunk in enumerate(chunked(items, CHUNK_SIZE)):
        cursor = ctx.ensure_room(cursor, grid_height)
        start = start or cursor
        slots = image_grid_slots(g.left, cursor.y, g.content_width)
        jobs = [_CellJob(slot=i, src=image_source(item), rect=slots[i]) for i, item in enumerate(chunk)]
        loaded = await _settle_chunk(jobs, loader, content, ctx, image_timeout_s, chunk_timeout_s)
        for job in jobs:
            x, y, w, h = job.rect
            data = loaded.get(job.slot)
            if data:
                ctx.doc.draw_image(data, x, y, w, h)
            if cells is not None:
                cells.append(
                    ImageCell(
                        section_id=ctx.section.id,
                        chunk=chunk_index,
                        slot=job.slot,
                        page=cursor.page,
                        x=x,
                        y=y,
                        width=w,
                        height=h,
                        src=job.src,
                        drawn=bool(data),
                    )
                )
        cursor = cursor.down(grid_height + IMAGE_CHUNK_ADVANCE)
    return Placement(start=start or cursor, end=cursor)
