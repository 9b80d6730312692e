"""Row-level failures recorded while processing staging rows."""

from sqlalchemy import Column, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func
from sqlalchemy.types import DateTime

from order_importer.db.base import Base, JSONType


class ImportJobError(Base):
    __tablename__ = "import_job_errors"

    id = Column(Integer, primary_key=True)
    job_id = Column(String(36), ForeignKey("import_jobs.id"), nullable=False, index=True)
    company_id = Column(String(36), nullable=False)
    staging_row_id = Column(Integer)
    row_number = Column(Integer)
    raw_row = Column(JSONType)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
