"""Pytest fixtures and configuration."""

import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
# nothing listens here; progress publishing must tolerate that
os.environ["REDIS_URL"] = "redis://127.0.0.1:6399/0"
os.environ["UPLOADS_DIR"] = tempfile.mkdtemp(prefix="order-importer-uploads-")

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import order_importer.db.models  # noqa: F401
from order_importer.core.config import Settings
from order_importer.db.base import Base
from order_importer.db.models import ImportJob
from order_importer.services.batch_processor import process_next_batch
from order_importer.services.pipeline import PipelineContext

COMPANY_ID = "company-1"

SHOPEE_CSV = (
    "Order ID,Tracking Number,Model Name,Product Name,Quantity,Buyer Name,Recipient Address\n"
    'ORD1, TRK1, "XL", "Camisa Polo", 2, "Maria", "Rua X, 123"\n'
    'ORD2,TRK2,"Azul/M","Camiseta Básica",1,"João","Av. Brasil, 500 - Centro"\n'
    'ORD3,,"Tamanho Único","Boné Trucker",3,"Ana","Rua Y, 9"\n'
)


class RecordingScheduler:
    """Continuation scheduler that records job ids instead of enqueueing."""

    def __init__(self):
        self.scheduled: list[str] = []

    def schedule(self, job_id: str) -> None:
        self.scheduled.append(job_id)


@pytest.fixture
def engine():
    """In-memory SQLite with working SAVEPOINTs (pysqlite needs explicit BEGIN)."""
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def settings():
    return Settings(staging_batch_size=1000, process_batch_size=500)


@pytest.fixture
def scheduler():
    return RecordingScheduler()


@pytest.fixture
def ctx(session, settings, scheduler):
    return PipelineContext(session=session, settings=settings, scheduler=scheduler)


@pytest.fixture
def make_job(session):
    """Create a pending job for the test company."""

    def _make(
        file_path: str = "/uploads/orders.csv", status: str = "pending", staged_at=None
    ) -> ImportJob:
        job = ImportJob(
            company_id=COMPANY_ID, file_path=file_path, status=status, staged_at=staged_at
        )
        session.add(job)
        session.commit()
        return job

    return _make


def drain(ctx: PipelineContext, job_id: str, max_steps: int = 1000) -> int:
    """Run every scheduled continuation until none are pending; return steps run."""
    steps = 0
    while ctx.scheduler.scheduled:
        ctx.scheduler.scheduled.pop(0)
        process_next_batch(ctx, job_id)
        steps += 1
        if steps >= max_steps:
            raise AssertionError("batch processor did not terminate")
    return steps


@pytest.fixture
def run_until_idle():
    return drain


@pytest.fixture
def shopee_csv() -> bytes:
    return SHOPEE_CSV.encode("utf-8")


@pytest.fixture
def company_id() -> str:
    return COMPANY_ID
