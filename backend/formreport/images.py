from __future__ import annotations

import asyncio
import base64
import binascii
from io import BytesIO
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import unquote, unquote_to_bytes, urlparse

import httpx
from PIL import Image, ImageOps

from .config import IMAGE_MAX_BYTES, IMAGE_TIMEOUT_S
from .layout import PT_PER_MM


class ImageLoadError(RuntimeError):
    pass


class ImageSource(Protocol):
    async def load(self, src: str) -> bytes: ...


def image_source(item: Any) -> str:
    if isinstance(item, str):
        return item.strip()
    if isinstance(item, dict):
        return str(item.get("url") or item.get("src") or "").strip()
    return ""


def _decode_data_url(src: str) -> bytes:
    head, sep, payload = src.partition(",")
    if not sep:
        raise ImageLoadError("Malformed data URL")
    try:
        if head.endswith(";base64"):
            return base64.b64decode(payload, validate=False)
        return unquote_to_bytes(payload)
    except (binascii.Error, ValueError) as e:
        raise ImageLoadError(f"Malformed data URL: {e}") from e


def _safe_resolve(base: Path, rel: str) -> Path | None:
    candidate = (base / rel).resolve()
    if not candidate.is_relative_to(base.resolve()):
        return None
    return candidate


async def _read_limited(resp: httpx.Response, max_bytes: int) -> bytes:
    buf = bytearray()
    async for chunk in resp.aiter_bytes():
        if not chunk:
            continue
        if len(buf) + len(chunk) > max_bytes:
            raise ImageLoadError(f"Image exceeds {max_bytes} bytes")
        buf.extend(chunk)
    return bytes(buf)


class ImageLoader:
    """Fetches image bytes for image sections.

    Handles ``data:`` URLs, http(s) URLs and local files (plain paths or
    ``file://``). Relative paths resolve under ``base_dir`` when one is given.
    With ``allow_local=False`` only ``data:`` and http(s) sources load.
    The http client is created on first use and closed by ``aclose``.
    """

    def __init__(
        self,
        *,
        timeout_s: float = IMAGE_TIMEOUT_S,
        max_bytes: int = IMAGE_MAX_BYTES,
        base_dir: Path | None = None,
        client: httpx.AsyncClient | None = None,
        allow_local: bool = True,
    ) -> None:
        self.timeout_s = timeout_s
        self.max_bytes = max_bytes
        self.base_dir = base_dir
        self.allow_local = allow_local
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> ImageLoader:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True, timeout=httpx.Timeout(self.timeout_s))
        return self._client

    async def load(self, src: str) -> bytes:
        raw = str(src or "").strip()
        if not raw:
            raise ImageLoadError("Empty image source")
        low = raw.lower()
        if low.startswith("data:"):
            data = _decode_data_url(raw)
        elif low.startswith(("http://", "https://")):
            data = await self._fetch(raw)
        elif not self.allow_local:
            raise ImageLoadError(f"Local image sources are disabled: {raw[:120]}")
        else:
            data = await self._read_file(raw)
        if not data:
            raise ImageLoadError("Image source is empty")
        if len(data) > self.max_bytes:
            raise ImageLoadError(f"Image exceeds {self.max_bytes} bytes")
        return data

    async def _fetch(self, url: str) -> bytes:
        headers = {"user-agent": "formreport/0.1 (+local)", "accept": "image/*,*/*;q=0.5"}
        try:
            async with self._get_client().stream("GET", url, headers=headers) as resp:
                if resp.status_code >= 400:
                    raise ImageLoadError(f"Image fetch failed ({resp.status_code}): {url}")
                return await _read_limited(resp, self.max_bytes)
        except (httpx.TimeoutException, httpx.HTTPError) as e:
            raise ImageLoadError(f"Image fetch failed: {type(e).__name__}: {e}") from e

    def _local_path(self, src: str) -> Path:
        if src.lower().startswith("file://"):
            return Path(unquote(urlparse(src).path))
        path = Path(src)
        if path.is_absolute() or self.base_dir is None:
            return path
        resolved = _safe_resolve(self.base_dir, src)
        if resolved is None:
            raise ImageLoadError(f"Image path escapes base dir: {src}")
        return resolved

    async def _read_file(self, src: str) -> bytes:
        path = self._local_path(src)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise ImageLoadError(f"Image read failed: {path}: {e}") from e


def pixels_for(mm: float, dpi: float) -> int:
    return max(1, round(mm * PT_PER_MM / 72 * dpi))


def compose_cell_image(
    data: bytes,
    width_mm: float,
    height_mm: float,
    *,
    dpi: float = 180,
    fit: str = "cover",
    background: tuple[int, int, int] = (255, 255, 255),
    fmt: str = "JPEG",
    quality: float = 0.92,
) -> bytes:
    """Draw ``data`` onto a background canvas sized to the cell and re-encode it.

    ``contain`` letterboxes, ``cover`` scales to fill and crops the overflow
    evenly, ``stretch`` ignores the aspect ratio.
    """
    px_w = pixels_for(width_mm, dpi)
    px_h = pixels_for(height_mm, dpi)
    with Image.open(BytesIO(data)) as opened:
        src = ImageOps.exif_transpose(opened)
        src = src.convert("RGBA")
    iw, ih = src.size
    if iw <= 0 or ih <= 0:
        raise ImageLoadError("Image has no pixels")

    canvas = Image.new("RGB", (px_w, px_h), tuple(background))
    if fit == "stretch":
        placed = src.resize((px_w, px_h), Image.Resampling.LANCZOS)
        canvas.paste(placed, (0, 0), placed)
    else:
        scale = min(px_w / iw, px_h / ih) if fit == "contain" else max(px_w / iw, px_h / ih)
        dw, dh = max(1, round(iw * scale)), max(1, round(ih * scale))
        placed = src.resize((dw, dh), Image.Resampling.LANCZOS)
        if fit != "contain":
            left, top = (dw - px_w) // 2, (dh - px_h) // 2
            placed = placed.crop((left, top, left + px_w, top + px_h))
            dw, dh = placed.size
        canvas.paste(placed, ((px_w - dw) // 2, (px_h - dh) // 2), placed)

    out = BytesIO()
    if fmt == "PNG":
        canvas.save(out, format="PNG")
    else:
        canvas.save(out, format="JPEG", quality=max(1, min(95, round(quality * 100))))
    return out.getvalue()
