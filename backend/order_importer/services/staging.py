"""Write mapped rows to staging, deduplicated by a content hash of the raw row."""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from typing import Any, Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from order_importer.db.models.staging_row import StagingRow
from order_importer.parsers.mappers import NormalizedRow
from order_importer.services.upsert_cascade import dialect_insert
from order_importer.utils.batching import chunked

logger = logging.getLogger(__name__)


@dataclass
class StagedLine:
    row_number: int
    raw: dict[str, str]
    normalized: NormalizedRow


def content_hash(raw_row: dict[str, Any]) -> str:
    """SHA-256 hex of the raw row serialized compactly in header order."""
    payload = json.dumps(raw_row, ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def build_staging_values(
    line: StagedLine, *, job_id: str, company_id: str, marketplace: str
) -> dict[str, Any]:
    row = line.normalized
    return {
        "job_id": job_id,
        "company_id": company_id,
        "marketplace": marketplace,
        "row_number": line.row_number,
        "external_order_id": row.external_order_id,
        "tracking_code": row.tracking_code or None,
        "item_name": row.product_name,
        "variation": row.variant_name or None,
        "sku": row.sku or None,
        "qty": row.qty,
        "buyer_name": row.customer_name or None,
        "address": row.address_summary or None,
        "attributes": row.attributes,
        "raw_data": line.raw,
        "content_hash": content_hash(line.raw),
        "processed": False,
    }


def write_staging_rows(
    session: Session,
    lines: Iterable[StagedLine],
    *,
    job_id: str,
    company_id: str,
    marketplace: str,
    batch_size: int = 1000,
) -> int:
    """Insert-or-ignore staging rows keyed by (job_id, content_hash).

    Returns the number of rows actually inserted; rows already staged for the
    job (a retried Start, or identical lines in the file) are skipped.
    """
    insert = dialect_insert(session)
    table = StagingRow.__table__
    inserted = 0

    for batch_number, batch in enumerate(chunked(lines, batch_size), start=1):
        values = [
            build_staging_values(
                line, job_id=job_id, company_id=company_id, marketplace=marketplace
            )
            for line in batch
        ]
        stmt = (
            insert(table)
            .values(values)
            .on_conflict_do_nothing(index_elements=["job_id", "content_hash"])
            .returning(table.c.id)
        )
        batch_inserted = len(session.execute(stmt).all())
        inserted += batch_inserted
        logger.debug(
            f"Staging batch {batch_number} for job {job_id}: "
            f"{batch_inserted}/{len(batch)} new rows"
        )

    return inserted


def count_staged(session: Session, job_id: str) -> int:
    return session.scalar(
        select(func.count()).select_from(StagingRow).where(StagingRow.job_id == job_id)
    )
