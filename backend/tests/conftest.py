"""Shared fixtures for formreport tests."""

import asyncio
from io import BytesIO

import pytest
from PIL import Image

from formreport.images import ImageLoadError


def make_png(size=(40, 30), color=(200, 30, 30)) -> bytes:
    out = BytesIO()
    Image.new("RGB", size, color).save(out, format="PNG")
    return out.getvalue()


class FakeLoader:
    """Image loader double: fixed bytes, optional per-source delays and failures."""

    def __init__(self, data: bytes, delays=None, failures=()):
        self.data = data
        self.delays = dict(delays or {})
        self.failures = set(failures)
        self.calls = []

    async def load(self, src: str) -> bytes:
        self.calls.append(src)
        if src in self.failures:
            raise ImageLoadError(f"cannot load {src}")
        delay = self.delays.get(src, self.delays.get("*", 0))
        if delay:
            await asyncio.sleep(delay)
        return self.data


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def fake_loader(png_bytes):
    def _make(delays=None, failures=()):
        return FakeLoader(png_bytes, delays=delays, failures=failures)

    return _make


@pytest.fixture
def reports_dir(tmp_path):
    path = tmp_path / "reports"
    path.mkdir()
    return path
