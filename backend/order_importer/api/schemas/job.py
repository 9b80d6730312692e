"""Async job status payloads."""

from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class JobStatus(BaseModel):
    id: str
    company_id: str
    type: str = Field("import_orders", description="Job kind shown in dashboards")
    status: str = Field(..., description="pending|running|failed|completed")
    marketplace: str | None = Field(None, description="shopee|mercadolivre|shein|unknown once detected")
    progress: float | None = Field(None, description="0-1 range for UI progress bars")
    message: str | None = None
    total_rows: int | None = None
    processed_rows: int | None = None
    failed_rows: int | None = None
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    meta: dict | None = None


class JobRowError(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    job_id: str
    company_id: str
    row_number: int | None = None
    raw_row: dict | None = None
    message: str
    created_at: datetime | None = None


class ResumeResponse(BaseModel):
    job_id: str
    status: str
    claimed: int = 0
    succeeded: int = 0
    failed: int = 0
    remaining: int = 0
    continued: bool = False
    created: dict[str, int] = Field(default_factory=dict)
