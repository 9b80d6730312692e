"""Resumable processing of staged rows in bounded, self-chaining batches.

One call to ``process_next_batch`` is one short invocation: claim up to N
unprocessed rows, run the upsert cascade for each, bump the job counters and
either schedule the next invocation or finalize the job. Nothing is kept in
memory between invocations; the staging ``processed`` flags and the job
counters are the whole state.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field

from celery.exceptions import SoftTimeLimitExceeded
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from order_importer.db.models.import_job_error import ImportJobError
from order_importer.db.models.staging_row import StagingRow
from order_importer.services import job_state
from order_importer.services.pipeline import PipelineContext
from order_importer.services.upsert_cascade import CascadeResult, apply_staging_row

logger = logging.getLogger(__name__)


@dataclass
class RowOutcome:
    staging_row_id: int
    row_number: int | None
    result: CascadeResult | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchResult:
    job_id: str
    status: str
    claimed: int = 0
    succeeded: int = 0
    failed: int = 0
    remaining: int = 0
    continued: bool = False
    created: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "job_id": self.job_id,
            "status": self.status,
            "claimed": self.claimed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "remaining": self.remaining,
            "continued": self.continued,
            "created": dict(self.created),
        }


def claim_batch(session: Session, job_id: str, limit: int) -> list[StagingRow]:
    """Lock up to ``limit`` unprocessed rows; rows locked by a concurrent invocation are skipped."""
    stmt = (
        select(StagingRow)
        .where(StagingRow.job_id == job_id, StagingRow.processed.is_(False))
        .order_by(StagingRow.id)
        .limit(limit)
        .with_for_update(skip_locked=True)
    )
    return list(session.scalars(stmt))


def process_row(session: Session, row: StagingRow) -> RowOutcome:
    """Apply one row inside a savepoint so its failure leaves the batch intact."""
    outcome = RowOutcome(staging_row_id=row.id, row_number=row.row_number)
    try:
        with session.begin_nested():
            outcome.result = apply_staging_row(session, row)
    except SoftTimeLimitExceeded:
        # the step as a whole ran out of time; the row itself is fine
        raise
    except SQLAlchemyError as e:
        outcome.error = f"{type(e).__name__}: {getattr(e, 'orig', None) or e}"
    except Exception as e:
        logger.warning(f"Unexpected error on staging row {row.id}: {e}", exc_info=True)
        outcome.error = f"{type(e).__name__}: {e}"
    return outcome


def _mark_processed(session: Session, row_ids: list[int]) -> None:
    session.execute(
        update(StagingRow)
        .where(StagingRow.id.in_(row_ids))
        .values(processed=True, processed_at=job_state.utcnow())
        .execution_options(synchronize_session=False)
    )


def _error_records(rows: list[StagingRow], outcomes: list[RowOutcome]) -> list[ImportJobError]:
    errors = []
    for row, outcome in zip(rows, outcomes):
        if outcome.ok:
            continue
        errors.append(
            ImportJobError(
                job_id=row.job_id,
                company_id=row.company_id,
                staging_row_id=row.id,
                row_number=row.row_number,
                raw_row=row.raw_data,
                message=outcome.error,
            )
        )
    return errors


def _finish(ctx: PipelineContext, result: BatchResult) -> BatchResult:
    """Finalize or chain, based on what is still unprocessed."""
    session = ctx.session
    result.remaining = job_state.count_unprocessed(session, result.job_id)
    if result.remaining == 0:
        job_state.mark_completed(session, result.job_id)
        session.commit()
        result.status = "completed"
    else:
        ctx.scheduler.schedule(result.job_id)
        result.continued = True
        result.status = "running"
    return result


def process_next_batch(ctx: PipelineContext, job_id: str) -> BatchResult:
    """Run one resumable step for ``job_id``.

    Safe to call any number of times: a job that is not running, or whose
    rows are not staged yet, is left alone; a job whose rows are all
    processed only gets the completion check.
    """
    session = ctx.session
    job = job_state.get_job(session, job_id)
    if job.status != "running":
        logger.info(f"Skipping batch for job {job_id}: status is {job.status}")
        return BatchResult(job_id=job_id, status=job.status)
    if job.staged_at is None:
        # Start still owns the job; it schedules the first step once rows are committed
        logger.info(f"Skipping batch for job {job_id}: rows are not staged yet")
        return BatchResult(job_id=job_id, status=job.status)

    batch_size = ctx.settings.process_batch_size
    rows = claim_batch(session, job_id, batch_size)
    result = BatchResult(job_id=job_id, status="running", claimed=len(rows))

    if not rows:
        result.remaining = job_state.count_unprocessed(session, job_id)
        if result.remaining == 0:
            job_state.mark_completed(session, job_id)
            result.status = "completed"
        # otherwise the rows are locked by another invocation that will finish them
        session.commit()
        return result

    outcomes = [process_row(session, row) for row in rows]

    created: Counter[str] = Counter()
    for outcome in outcomes:
        if outcome.ok:
            result.succeeded += 1
            created.update(name for name, was_new in outcome.result.created.items() if was_new)
        else:
            result.failed += 1
    result.created = dict(created)

    _mark_processed(session, [row.id for row in rows])
    job_state.increment_progress(session, job_id, processed=len(rows), failed=result.failed)
    job_state.record_errors(session, _error_records(rows, outcomes))
    session.commit()

    logger.info(
        f"Job {job_id}: processed batch of {len(rows)} rows "
        f"({result.succeeded} ok, {result.failed} failed)"
    )

    result = _finish(ctx, result)
    _publish(ctx, job_id, result)
    return result


def _publish(ctx: PipelineContext, job_id: str, result: BatchResult) -> None:
    job = job_state.get_job(ctx.session, job_id)
    total = job.total_rows or 0
    progress = job.processed_rows / total if total else 1.0
    ctx.publish_progress(
        job_id,
        progress,
        message=f"Processed {job.processed_rows}/{total} rows",
        status=result.status,
        meta={
            "processed": job.processed_rows,
            "failed": job.failed_rows,
            "total": total,
            "created": result.created,
        },
    )
