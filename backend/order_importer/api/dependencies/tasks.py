"""Task-queue dependencies, overridable in tests."""

from __future__ import annotations

from typing import Callable

from order_importer.services.pipeline import ContinuationScheduler


def get_start_enqueuer() -> Callable[[str], None]:
    """Return a callable that enqueues the Start phase for a job id."""
    from order_importer.workers.tasks.import_orders import start_import_task
    from order_importer.workers.celery_app import IMPORTS_QUEUE

    def enqueue(job_id: str) -> None:
        start_import_task.apply_async(args=(job_id,), queue=IMPORTS_QUEUE)

    return enqueue


def get_scheduler() -> ContinuationScheduler:
    from order_importer.core.config import get_settings
    from order_importer.workers.tasks.import_orders import CeleryContinuationScheduler

    return CeleryContinuationScheduler(get_settings().continuation_countdown)
