from __future__ import annotations

import logging
import os
import shutil
import time
from pathlib import Path

logger = logging.getLogger(__name__)


def _upload_root() -> Path:
    env_root = os.getenv("PERSONA_IMPORT_UPLOAD_DIR")
    if env_root:
        return Path(env_root).expanduser().resolve()
    return Path(__file__).resolve().parents[2] / "uploads" / "imports"


def ensure_upload_root() -> Path:
    """Ensure the upload directory exists and return it."""

    root = _upload_root()
    root.mkdir(parents=True, exist_ok=True)
    return root


def save_upload(filename: str, source) -> Path:
    """Persist an uploaded dataset under a collision-free name."""

    safe_name = Path(filename).name
    target = ensure_upload_root() / f"{time.time_ns()}-{safe_name}"
    with target.open("wb") as buffer:
        shutil.copyfileobj(source, buffer)
    return target


def discard_upload(path: Path) -> None:
    """Delete an uploaded dataset once nothing needs it any more."""

    try:
        Path(path).unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("unable to remove upload %s: %s", path, exc)
