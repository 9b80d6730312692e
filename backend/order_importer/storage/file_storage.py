"""File storage that supports both the local filesystem and Redis for separate instances.

The API and the Celery workers may run on different machines, so uploads are
written to local disk and mirrored into Redis; a job's ``file_path`` is either
an absolute path or ``redis:<job_id>``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO

from redis.exceptions import RedisError

from order_importer.core.config import get_settings
from order_importer.services.errors import FileLoadError
from order_importer.storage.s3_client import delete_upload, read_upload
from order_importer.utils.redis_client import create_redis_client

logger = logging.getLogger(__name__)

FILE_STORAGE_PREFIX = "files:upload:"
REDIS_REF_PREFIX = "redis:"
# Keep uploads around long enough for a failed Start to be retried
FILE_STORAGE_TTL = 7 * 86400  # seconds
MAX_REDIS_FILE_SIZE = 100 * 1024 * 1024


def _binary_client():
    return create_redis_client(get_settings().redis_url, decode_responses=False)


def redis_ref(job_id: str) -> str:
    return f"{REDIS_REF_PREFIX}{job_id}"


def store_file_in_redis(file_obj: BinaryIO, job_id: str) -> bool:
    """Store file content in Redis for worker access across separate instances.

    Returns:
        True if successfully stored, False otherwise
    """
    try:
        file_obj.seek(0)
        file_content = file_obj.read()

        if len(file_content) > MAX_REDIS_FILE_SIZE:
            logger.warning(
                f"File too large for Redis storage ({len(file_content)} bytes), "
                f"will use local filesystem only"
            )
            return False

        client = _binary_client()
        client.set(f"{FILE_STORAGE_PREFIX}{job_id}", file_content, ex=FILE_STORAGE_TTL)
        client.close()

        logger.info(f"Stored file in Redis for job {job_id} ({len(file_content)} bytes)")
        return True
    except RedisError as e:
        logger.warning(f"Failed to store file in Redis: {e}, will use local filesystem")
        return False


def get_file_from_redis(job_id: str) -> bytes | None:
    """Retrieve file content from Redis, or None if it is missing or Redis is down."""
    try:
        client = _binary_client()
        content = client.get(f"{FILE_STORAGE_PREFIX}{job_id}")
        client.close()
    except RedisError as e:
        logger.warning(f"Failed to retrieve file from Redis: {e}")
        return None

    if content:
        logger.info(f"Retrieved file from Redis for job {job_id} ({len(content)} bytes)")
    return content


def delete_file_from_redis(job_id: str) -> None:
    try:
        client = _binary_client()
        client.delete(f"{FILE_STORAGE_PREFIX}{job_id}")
        client.close()
        logger.info(f"Deleted file from Redis for job {job_id}")
    except RedisError as e:
        logger.warning(f"Failed to delete file from Redis: {e}")


def load_upload(file_ref: str) -> bytes:
    """Read a job's upload from local disk, falling back to the Redis mirror.

    Raises:
        FileLoadError: if neither location has the file
    """
    if file_ref.startswith(REDIS_REF_PREFIX):
        job_id = file_ref[len(REDIS_REF_PREFIX):]
        content = get_file_from_redis(job_id)
        if content is None:
            raise FileLoadError(
                f"File not found in Redis for job {job_id}; it may have expired"
            )
        return content

    try:
        return read_upload(file_ref)
    except OSError as e:
        # the worker may be on another instance; uploads are mirrored under the job id
        job_id = Path(file_ref).stem
        logger.warning(f"Local file not readable ({e}), trying Redis fallback")
        content = get_file_from_redis(job_id)
        if content is None:
            raise FileLoadError(f"Upload not found: {file_ref}") from e
        return content


def discard_upload(file_ref: str, job_id: str) -> None:
    """Drop the local file and the Redis mirror of a job's upload."""
    if not file_ref.startswith(REDIS_REF_PREFIX):
        delete_upload(file_ref)
    delete_file_from_redis(job_id)
