"""Start phase: load the export, detect its layout and stage every mapped row."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from order_importer.parsers.csv_text import ParsedCSV, parse_csv_text
from order_importer.parsers.decoding import decode_bytes
from order_importer.parsers.mappers import RowMapper
from order_importer.parsers.marketplace import Marketplace, detect_marketplace
from order_importer.services import job_state
from order_importer.services.errors import EmptyFileError
from order_importer.services.pipeline import PipelineContext
from order_importer.services.staging import StagedLine, count_staged, write_staging_rows

logger = logging.getLogger(__name__)

FileLoader = Callable[[str], bytes]


@dataclass
class StartResult:
    job_id: str
    started: bool
    marketplace: str | None = None
    parsed_rows: int = 0
    skipped_rows: int = 0
    staged_rows: int = 0
    total_rows: int = 0

    def to_dict(self) -> dict:
        return {
            "job_id": self.job_id,
            "started": self.started,
            "marketplace": self.marketplace,
            "parsed_rows": self.parsed_rows,
            "skipped_rows": self.skipped_rows,
            "staged_rows": self.staged_rows,
            "total_rows": self.total_rows,
        }


def map_rows(parsed: ParsedCSV, marketplace: Marketplace) -> tuple[list[StagedLine], int]:
    """Map every parsed row; rows without an order id are dropped and counted."""
    mapper = RowMapper(marketplace, parsed.headers)
    lines: list[StagedLine] = []
    skipped = 0
    for row_number, raw in enumerate(parsed.rows, start=1):
        normalized = mapper.map_row(raw)
        if normalized is None:
            skipped += 1
            continue
        lines.append(StagedLine(row_number=row_number, raw=raw, normalized=normalized))
    return lines, skipped


def start_import(ctx: PipelineContext, job_id: str, load_file: FileLoader) -> StartResult:
    """Stage the job's file and hand off to the batch processor.

    Pending and failed jobs are started, as is a running job whose staging
    never committed (a redelivered Start after a crash). Once rows are
    staged, or the job finished, this is a no-op. Re-running re-stages
    nothing that was already staged.
    """
    session = ctx.session
    job = job_state.get_job(session, job_id)
    company_id = job.company_id
    file_path = job.file_path

    if not job_state.mark_running(session, job_id):
        session.rollback()
        logger.info(f"Job {job_id} already started or finished (status={job.status}), skipping")
        return StartResult(job_id=job_id, started=False)
    session.commit()

    try:
        decoded = decode_bytes(load_file(file_path))
        parsed = parse_csv_text(decoded.text)
        if not parsed.headers:
            raise EmptyFileError("CSV file appears to be empty or has no header row")

        marketplace = detect_marketplace(parsed.headers)
        if marketplace is Marketplace.UNKNOWN:
            logger.warning(
                f"Job {job_id}: unrecognized export layout, using generic column aliases. "
                f"Headers: {parsed.headers}"
            )

        lines, skipped = map_rows(parsed, marketplace)
        staged = write_staging_rows(
            session,
            lines,
            job_id=job_id,
            company_id=company_id,
            marketplace=marketplace.value,
            batch_size=ctx.settings.staging_batch_size,
        )
        total = count_staged(session, job_id)
        job_state.record_detection(
            session,
            job_id,
            marketplace=marketplace.value,
            total_rows=total,
            meta={
                "encoding": decoded.encoding,
                "delimiter": parsed.delimiter,
                "headers": parsed.headers,
                "parsed_rows": len(parsed.rows),
                "skipped_rows": skipped,
            },
        )
        if total == 0:
            job_state.mark_completed(session, job_id)
        session.commit()
    except Exception as exc:
        session.rollback()
        logger.error(f"Start phase failed for job {job_id}: {exc}", exc_info=True)
        job_state.mark_failed(session, job_id, str(exc))
        session.commit()
        ctx.publish_progress(job_id, 0.0, message="Import failed", status="failed", meta={"error": str(exc)})
        raise

    result = StartResult(
        job_id=job_id,
        started=True,
        marketplace=marketplace.value,
        parsed_rows=len(parsed.rows),
        skipped_rows=skipped,
        staged_rows=staged,
        total_rows=total,
    )
    logger.info(
        f"Job {job_id}: detected {marketplace.value}, staged {staged} new rows "
        f"({total} total, {skipped} without order id)"
    )

    ctx.publish_progress(
        job_id,
        0.0 if total else 1.0,
        message=f"Staged {total} rows",
        status="running" if total else "completed",
        meta={"processed": 0, "total": total, "marketplace": marketplace.value},
    )
    if total:
        ctx.scheduler.schedule(job_id)
    return result
