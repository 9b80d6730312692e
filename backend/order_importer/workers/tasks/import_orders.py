"""Celery tasks for the two pipeline entry points: start and resume.

Both take only ``job_id``. The resume task re-enqueues itself through
``CeleryContinuationScheduler`` until the job's staging rows are drained,
so each invocation stays inside the task time limit regardless of file size.
"""

from __future__ import annotations

import logging

from celery.exceptions import SoftTimeLimitExceeded

from order_importer.core.config import get_settings
from order_importer.db.models.import_job import ImportJob
from order_importer.db.session import get_fresh_session
from order_importer.services.batch_processor import process_next_batch
from order_importer.services.errors import JobNotFoundError
from order_importer.services.pipeline import PipelineContext
from order_importer.services.progress_tracker import publish_progress
from order_importer.services.start_import import start_import
from order_importer.storage.file_storage import discard_upload, load_upload
from order_importer.workers.celery_app import IMPORTS_QUEUE, celery_app

logger = logging.getLogger(__name__)


class CeleryContinuationScheduler:
    """Fire-and-forget enqueue of the next resume step."""

    def __init__(self, countdown: int = 0):
        self.countdown = countdown

    def schedule(self, job_id: str) -> None:
        resume_import_task.apply_async(
            args=(job_id,),
            queue=IMPORTS_QUEUE,
            countdown=self.countdown or None,
        )
        logger.debug(f"Scheduled resume step for job {job_id}")


def _context(session) -> PipelineContext:
    settings = get_settings()
    return PipelineContext(
        session=session,
        settings=settings,
        scheduler=CeleryContinuationScheduler(settings.continuation_countdown),
        publish_progress=publish_progress,
    )


@celery_app.task(bind=True, name="order_importer.workers.tasks.start_import")
def start_import_task(self, job_id: str) -> dict:
    """Decode, parse, detect and stage the job's upload, then chain the first resume step."""
    session = get_fresh_session()
    try:
        result = start_import(_context(session), job_id, load_upload)
        if result.started:
            # staged rows carry every raw line from here on
            discard_upload(session.get(ImportJob, job_id).file_path, job_id)
        return result.to_dict()
    except JobNotFoundError:
        logger.error(f"Start requested for unknown job {job_id}")
        return {"job_id": job_id, "started": False, "error": "job not found"}
    finally:
        session.close()


@celery_app.task(bind=True, name="order_importer.workers.tasks.resume_import")
def resume_import_task(self, job_id: str) -> dict:
    """Process one batch of staged rows; chains itself while rows remain."""
    session = get_fresh_session()
    try:
        return process_next_batch(_context(session), job_id).to_dict()
    except JobNotFoundError:
        logger.error(f"Resume requested for unknown job {job_id}")
        return {"job_id": job_id, "status": "missing"}
    except SoftTimeLimitExceeded:
        # the uncommitted batch rolls back and its rows stay unprocessed
        session.rollback()
        logger.warning(f"Resume step for job {job_id} hit the soft time limit, rescheduling")
        _context(session).scheduler.schedule(job_id)
        return {"job_id": job_id, "status": "running", "continued": True}
    except Exception:
        session.rollback()
        logger.error(f"Resume step failed for job {job_id}", exc_info=True)
        raise
    finally:
        session.close()
