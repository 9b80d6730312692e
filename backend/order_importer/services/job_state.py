"""Job lifecycle transitions and progress counters.

Every mutation here is a single conditional UPDATE or an atomic increment so
overlapping invocations for the same job never lose counts.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.orm import Session

from order_importer.db.models.import_job import ImportJob
from order_importer.db.models.import_job_error import ImportJobError
from order_importer.db.models.staging_row import StagingRow
from order_importer.services.errors import JobNotFoundError

logger = logging.getLogger(__name__)

STARTABLE_STATUSES = ("pending", "failed")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_job(session: Session, job_id: str) -> ImportJob:
    job = session.get(ImportJob, job_id)
    if job is None:
        raise JobNotFoundError(job_id)
    return job


def mark_running(session: Session, job_id: str) -> bool:
    """Claim a job for the Start phase.

    Pending and failed jobs are claimable, and so is a running job whose rows
    were never staged (a Start that died before its staging commit). Returns
    False once the rows are staged or the job finished.
    """
    result = session.execute(
        update(ImportJob)
        .where(
            ImportJob.id == job_id,
            or_(
                ImportJob.status.in_(STARTABLE_STATUSES),
                and_(ImportJob.status == "running", ImportJob.staged_at.is_(None)),
            ),
        )
        .values(status="running", started_at=utcnow(), error_message=None)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def mark_failed(session: Session, job_id: str, message: str) -> None:
    session.execute(
        update(ImportJob)
        .where(ImportJob.id == job_id)
        .values(status="failed", error_message=message, completed_at=utcnow())
        .execution_options(synchronize_session=False)
    )


def mark_completed(session: Session, job_id: str) -> bool:
    """Move a running, fully staged job to completed; a no-op otherwise."""
    result = session.execute(
        update(ImportJob)
        .where(
            ImportJob.id == job_id,
            ImportJob.status == "running",
            ImportJob.staged_at.is_not(None),
        )
        .values(status="completed", completed_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount:
        logger.info(f"Import job {job_id} completed")
    return result.rowcount == 1


def record_detection(
    session: Session,
    job_id: str,
    *,
    marketplace: str,
    total_rows: int,
    meta: dict[str, Any],
) -> None:
    session.execute(
        update(ImportJob)
        .where(ImportJob.id == job_id)
        .values(marketplace=marketplace, total_rows=total_rows, meta=meta, staged_at=utcnow())
        .execution_options(synchronize_session=False)
    )


def increment_progress(session: Session, job_id: str, processed: int, failed: int = 0) -> None:
    """Atomic ``processed_rows += processed`` (and ``failed_rows``)."""
    if not processed and not failed:
        return
    session.execute(
        update(ImportJob)
        .where(ImportJob.id == job_id)
        .values(
            processed_rows=ImportJob.processed_rows + processed,
            failed_rows=ImportJob.failed_rows + failed,
        )
        .execution_options(synchronize_session=False)
    )


def count_unprocessed(session: Session, job_id: str) -> int:
    return session.scalar(
        select(func.count())
        .select_from(StagingRow)
        .where(StagingRow.job_id == job_id, StagingRow.processed.is_(False))
    )


def record_errors(session: Session, errors: list[ImportJobError]) -> None:
    if errors:
        session.add_all(errors)
