"""Shared helpers for shaping job responses."""
from __future__ import annotations

from order_importer.api.schemas.job import JobStatus
from order_importer.db.models.import_job import ImportJob

TERMINAL_STATUSES = ("completed", "failed")


def serialize_job(job: ImportJob, progress_payload: dict | None) -> JobStatus:
    """Combine DB state + cached progress snapshot into a response schema.

    The job row wins for terminal states, since a snapshot can lag behind
    the final resume step.
    """
    progress_payload = progress_payload or {}

    processed = job.processed_rows or 0
    total = job.total_rows or 0
    if job.status == "completed":
        calculated_progress = 1.0
    elif total:
        calculated_progress = processed / total
    else:
        calculated_progress = progress_payload.get("progress")

    message = progress_payload.get("message")
    if not message or job.status in TERMINAL_STATUSES:
        total_display = total if total else "?"
        message = f"Processed {processed}/{total_display} rows"
        if job.failed_rows:
            message += f" ({job.failed_rows} failed)"

    return JobStatus(
        id=job.id,
        company_id=job.company_id,
        status=job.status,
        marketplace=job.marketplace,
        progress=calculated_progress,
        message=message,
        total_rows=job.total_rows,
        processed_rows=job.processed_rows,
        failed_rows=job.failed_rows,
        error_message=job.error_message,
        started_at=job.started_at or job.created_at,
        completed_at=job.completed_at,
        meta=job.meta or progress_payload.get("meta") or {},
    )
