"""Abstraction over object storage for uploads (local fs implementation)."""

from __future__ import annotations

import logging
import shutil
import uuid
from pathlib import Path
from typing import BinaryIO

from order_importer.core.config import get_settings

logger = logging.getLogger(__name__)


def _uploads_dir() -> Path:
    path = Path(get_settings().uploads_dir).resolve()
    path.mkdir(parents=True, exist_ok=True)
    return path


def save_upload(
    file_obj: BinaryIO, original_name: str | None = None, stem: str | None = None
) -> Path:
    """Persist an uploaded export to local disk and return the absolute path."""
    suffix = Path(original_name or "upload.csv").suffix or ".csv"
    target_path = (_uploads_dir() / f"{stem or uuid.uuid4()}{suffix}").resolve()
    file_obj.seek(0)
    with target_path.open("wb") as destination:
        shutil.copyfileobj(file_obj, destination)
    return target_path


def read_upload(uri: str | Path) -> bytes:
    return Path(uri).resolve().read_bytes()


def delete_upload(uri: str | Path) -> None:
    """Remove an upload once its rows are staged."""
    path = Path(uri)
    if not path.is_absolute():
        path = path.resolve()
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Could not delete upload {path}: {e}")
