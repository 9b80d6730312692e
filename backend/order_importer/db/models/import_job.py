"""Track order-export import jobs for polling and audit."""

import uuid

from sqlalchemy import Column, Integer, String, Text
from sqlalchemy.sql import func
from sqlalchemy.types import DateTime

from order_importer.db.base import Base, JSONType

JOB_STATUSES = ("pending", "running", "completed", "failed")


class ImportJob(Base):
    __tablename__ = "import_jobs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    company_id = Column(String(36), nullable=False, index=True)
    status = Column(String(32), nullable=False, default="pending")
    file_path = Column(Text, nullable=False)
    original_filename = Column(String(255))
    marketplace = Column(String(32))
    total_rows = Column(Integer, nullable=False, default=0)
    processed_rows = Column(Integer, nullable=False, default=0)
    failed_rows = Column(Integer, nullable=False, default=0)
    error_message = Column(Text)
    meta = Column(JSONType)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    started_at = Column(DateTime(timezone=True))
    # set in the same commit as the staged rows; NULL while Start has not finished
    staged_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
