from __future__ import annotations

import os
from pathlib import Path


def _repo_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


REPO_ROOT = _repo_root()

REPORTS_DIR = Path(os.getenv("FORMREPORT_REPORTS_DIR", str(REPO_ROOT / "backend" / "data" / "reports")))

# Per-image load timeout and the bound on one whole image-grid chunk.
IMAGE_TIMEOUT_S = _env_float("FORMREPORT_IMAGE_TIMEOUT_S", 3.0)
CHUNK_TIMEOUT_S = _env_float("FORMREPORT_CHUNK_TIMEOUT_S", 5.0)
IMAGE_MAX_BYTES = int(_env_float("FORMREPORT_IMAGE_MAX_BYTES", 10_000_000))

LOG_LEVEL = os.getenv("FORMREPORT_LOG_LEVEL", "INFO").upper()
