"""Explicit dependencies shared by the Start phase and the batch processor."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from sqlalchemy.orm import Session

from order_importer.core.config import Settings

ProgressPublisher = Callable[..., None]


class ContinuationScheduler(Protocol):
    """Arrange for ``process_next_batch`` to run again for a job.

    Implementations must not wait for the continuation; duplicate
    schedules for the same job are allowed.
    """

    def schedule(self, job_id: str) -> None: ...


def _no_progress(*args: Any, **kwargs: Any) -> None:
    return None


@dataclass
class PipelineContext:
    session: Session
    settings: Settings
    scheduler: ContinuationScheduler
    publish_progress: ProgressPublisher = field(default=_no_progress)
