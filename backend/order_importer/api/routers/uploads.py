"""Endpoints for order-export upload orchestration and tracking."""

from __future__ import annotations

import logging
from io import BytesIO
from typing import Callable

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    UploadFile,
    status,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from order_importer.api.dependencies.db import get_session
from order_importer.api.dependencies.tasks import get_start_enqueuer
from order_importer.api.routers.job_helpers import serialize_job
from order_importer.api.schemas.job import JobStatus
from order_importer.db.models.import_job import ImportJob
from order_importer.services.progress_tracker import fetch_progress, publish_progress
from order_importer.storage.file_storage import redis_ref, store_file_in_redis
from order_importer.storage.s3_client import save_upload

logger = logging.getLogger(__name__)

router = APIRouter()

ALLOWED_SUFFIXES = (".csv", ".tsv", ".txt")


@router.post(
    "/",
    summary="Upload an order export and start an import job",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=JobStatus,
)
async def enqueue_import(
    file: UploadFile = File(...),
    company_id: str = Form(..., min_length=1),
    db: Session = Depends(get_session),
    enqueue_start: Callable[[str], None] = Depends(get_start_enqueuer),
) -> JobStatus:
    """Persist the upload, create a pending job and enqueue its Start phase."""
    if not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Filename is required",
        )
    if not file.filename.lower().endswith(ALLOWED_SUFFIXES):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV/TSV exports are supported",
        )

    try:
        job = ImportJob(
            company_id=company_id,
            file_path="pending",
            original_filename=file.filename,
            status="pending",
        )
        db.add(job)
        db.flush()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(f"Database error creating import job: {exc}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create import job",
        ) from exc

    content = await file.read()
    if not content:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is empty",
        )

    # local copy for same-instance workers, Redis mirror for separate instances
    staged_path = None
    try:
        staged_path = save_upload(BytesIO(content), file.filename, stem=job.id)
    except OSError as exc:
        logger.warning(f"Failed to save upload locally: {exc}, will use Redis only")
    redis_stored = store_file_in_redis(BytesIO(content), job.id)

    if staged_path is not None:
        job.file_path = str(staged_path)
    elif redis_stored:
        job.file_path = redis_ref(job.id)
    else:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to store uploaded file",
        )

    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(f"Database error saving import job: {exc}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create import job",
        ) from exc

    publish_progress(job.id, 0.0, "Queued", status="pending", meta={})
    try:
        enqueue_start(job.id)
    except Exception as exc:
        logger.error(f"Error enqueueing start task for job {job.id}: {exc}", exc_info=True)
        job.status = "failed"
        job.error_message = "Failed to enqueue import"
        db.commit()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to start import process",
        ) from exc

    logger.info(f"Created import job {job.id} for {file.filename} (company {company_id})")
    return serialize_job(job, progress_payload={"progress": 0.0, "status": "pending"})


@router.get(
    "/{job_id}/status",
    summary="Check import progress",
    response_model=JobStatus,
)
async def get_import_status(
    job_id: str,
    db: Session = Depends(get_session),
) -> JobStatus:
    """Expose latest processing stats to power UI progress bars."""
    try:
        job = db.get(ImportJob, job_id)
    except SQLAlchemyError as exc:
        logger.error(f"Database error fetching job status {job_id}: {exc}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve job status",
        ) from exc
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return serialize_job(job, progress_payload=fetch_progress(job_id))
