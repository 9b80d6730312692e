"""Mapped order lines waiting for the upsert cascade."""

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.types import DateTime

from order_importer.db.base import Base, JSONType


class StagingRow(Base):
    __tablename__ = "marketplace_order_lines_staging"

    id = Column(Integer, primary_key=True)
    job_id = Column(String(36), ForeignKey("import_jobs.id"), nullable=False)
    company_id = Column(String(36), nullable=False)
    marketplace = Column(String(32), nullable=False)
    row_number = Column(Integer)
    external_order_id = Column(String(128), nullable=False)
    tracking_code = Column(String(128))
    item_name = Column(Text)
    variation = Column(Text)
    sku = Column(String(128))
    qty = Column(Integer, nullable=False, default=1)
    buyer_name = Column(String(255))
    address = Column(Text)
    attributes = Column(JSONType)
    raw_data = Column(JSONType, nullable=False)
    content_hash = Column(String(64), nullable=False)
    processed = Column(Boolean, nullable=False, default=False)
    processed_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("job_id", "content_hash", name="uq_staging_job_hash"),
        Index("ix_staging_job_processed", "job_id", "processed"),
    )
