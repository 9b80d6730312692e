"""Import job tracking endpoints: listing, status, row errors and manual resume."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from order_importer.api.dependencies.db import get_session
from order_importer.api.dependencies.tasks import get_scheduler
from order_importer.api.routers.job_helpers import serialize_job
from order_importer.api.schemas.job import JobRowError, JobStatus, ResumeResponse
from order_importer.core.config import get_settings
from order_importer.db.models.import_job import JOB_STATUSES, ImportJob
from order_importer.db.models.import_job_error import ImportJobError
from order_importer.services.batch_processor import process_next_batch
from order_importer.services.errors import JobNotFoundError
from order_importer.services.pipeline import ContinuationScheduler, PipelineContext
from order_importer.services.progress_tracker import fetch_progress, publish_progress

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/",
    summary="List import jobs",
    response_model=list[JobStatus],
)
async def list_jobs(
    limit: int = Query(50, ge=1, le=500, description="Maximum number of jobs to return"),
    status: str | None = Query(None, description="Filter by status (pending, running, completed, failed)"),
    company_id: str | None = Query(None, description="Filter by owning company"),
    db: Session = Depends(get_session),
) -> list[JobStatus]:
    """Return jobs newest first, each merged with its latest progress snapshot."""
    if status and status not in JOB_STATUSES:
        raise HTTPException(status_code=400, detail=f"Unknown status: {status}")

    query = select(ImportJob)
    if status:
        query = query.where(ImportJob.status == status)
    if company_id:
        query = query.where(ImportJob.company_id == company_id)
    query = query.order_by(ImportJob.created_at.desc()).limit(limit)

    try:
        jobs = db.scalars(query).all()
    except SQLAlchemyError as e:
        logger.error(f"Database error listing jobs: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to retrieve jobs") from e

    return [serialize_job(job, fetch_progress(job.id)) for job in jobs]


@router.get(
    "/{job_id}",
    summary="Fetch job metadata and latest progress",
    response_model=JobStatus,
)
async def get_job(
    job_id: str,
    db: Session = Depends(get_session),
) -> JobStatus:
    job = db.get(ImportJob, job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return serialize_job(job, fetch_progress(job_id))


@router.get(
    "/{job_id}/errors",
    summary="Rows that failed to import",
    response_model=list[JobRowError],
)
async def list_job_errors(
    job_id: str,
    limit: int = Query(500, ge=1, le=5000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_session),
) -> list[JobRowError]:
    """Raw content and message of each failed row, for manual correction and re-import."""
    if not db.get(ImportJob, job_id):
        raise HTTPException(status_code=404, detail="Job not found")
    errors = db.scalars(
        select(ImportJobError)
        .where(ImportJobError.job_id == job_id)
        .order_by(ImportJobError.row_number, ImportJobError.id)
        .offset(offset)
        .limit(limit)
    ).all()
    return [JobRowError.model_validate(error) for error in errors]


@router.post(
    "/{job_id}/resume",
    summary="Run one processing step for a job now",
    response_model=ResumeResponse,
)
def resume_job(
    job_id: str,
    db: Session = Depends(get_session),
    scheduler: ContinuationScheduler = Depends(get_scheduler),
) -> ResumeResponse:
    """Manual trigger for a stalled job; further steps chain through the task queue."""
    ctx = PipelineContext(
        session=db,
        settings=get_settings(),
        scheduler=scheduler,
        publish_progress=publish_progress,
    )
    try:
        result = process_next_batch(ctx, job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail="Job not found") from e
    return ResumeResponse(**result.to_dict())
