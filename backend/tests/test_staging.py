"""Tests for hash-deduplicated staging writes."""

from sqlalchemy import select

from order_importer.db.models import StagingRow
from order_importer.parsers.mappers import map_row
from order_importer.parsers.marketplace import Marketplace
from order_importer.services.staging import (
    StagedLine,
    build_staging_values,
    content_hash,
    count_staged,
    write_staging_rows,
)
from order_importer.utils.batching import chunked

HEADERS = ["Order ID", "Tracking Number", "Model Name", "Product Name", "Quantity"]


def line(row_number, order_id, model="M", qty="1"):
    raw = {
        "Order ID": order_id,
        "Tracking Number": f"TRK-{order_id}",
        "Model Name": model,
        "Product Name": "Camiseta",
        "Quantity": qty,
    }
    return StagedLine(
        row_number=row_number,
        raw=raw,
        normalized=map_row(raw, HEADERS, Marketplace.SHOPEE),
    )


class TestContentHash:
    def test_same_content_same_hash(self):
        assert content_hash({"a": "1", "b": "2"}) == content_hash({"a": "1", "b": "2"})

    def test_is_sha256_hex(self):
        digest = content_hash({"a": "1"})
        assert len(digest) == 64
        int(digest, 16)

    def test_any_cell_change_changes_hash(self):
        assert content_hash({"a": "1", "b": "2"}) != content_hash({"a": "1", "b": "3"})

    def test_non_ascii_is_hashed_as_text(self):
        assert content_hash({"nome": "João"}) != content_hash({"nome": "Joao"})


class TestChunked:
    def test_splits_with_remainder(self):
        assert list(chunked(range(7), 3)) == [[0, 1, 2], [3, 4, 5], [6]]

    def test_empty(self):
        assert list(chunked([], 3)) == []


class TestBuildStagingValues:
    def test_values_carry_normalized_fields(self):
        values = build_staging_values(
            line(4, "ORD9", model="XL", qty="2"),
            job_id="job-1",
            company_id="company-1",
            marketplace="shopee",
        )
        assert values["row_number"] == 4
        assert values["external_order_id"] == "ORD9"
        assert values["tracking_code"] == "TRK-ORD9"
        assert values["variation"] == "XL"
        assert values["qty"] == 2
        assert values["attributes"] == {"size": "GG"}
        assert values["processed"] is False
        assert values["content_hash"] == content_hash(values["raw_data"])


class TestWriteStagingRows:
    def test_inserts_and_counts(self, session, make_job, company_id):
        job = make_job()
        inserted = write_staging_rows(
            session,
            [line(1, "A"), line(2, "B"), line(3, "C")],
            job_id=job.id,
            company_id=company_id,
            marketplace="shopee",
            batch_size=2,
        )
        session.commit()
        assert inserted == 3
        assert count_staged(session, job.id) == 3

    def test_identical_lines_are_staged_once(self, session, make_job, company_id):
        job = make_job()
        inserted = write_staging_rows(
            session,
            [line(1, "A"), line(2, "A"), line(3, "B")],
            job_id=job.id,
            company_id=company_id,
            marketplace="shopee",
        )
        assert inserted == 2
        assert count_staged(session, job.id) == 2

    def test_restaging_same_file_inserts_nothing(self, session, make_job, company_id):
        job = make_job()
        lines = [line(1, "A"), line(2, "B")]
        kwargs = dict(job_id=job.id, company_id=company_id, marketplace="shopee")
        assert write_staging_rows(session, lines, **kwargs) == 2
        assert write_staging_rows(session, lines, **kwargs) == 0
        assert count_staged(session, job.id) == 2

    def test_same_content_in_another_job_is_staged(self, session, make_job, company_id):
        first, second = make_job(), make_job()
        lines = [line(1, "A")]
        write_staging_rows(session, lines, job_id=first.id, company_id=company_id, marketplace="shopee")
        inserted = write_staging_rows(
            session, lines, job_id=second.id, company_id=company_id, marketplace="shopee"
        )
        assert inserted == 1

    def test_rows_start_unprocessed(self, session, make_job, company_id):
        job = make_job()
        write_staging_rows(
            session, [line(7, "A")], job_id=job.id, company_id=company_id, marketplace="shopee"
        )
        session.commit()
        row = session.scalars(select(StagingRow).where(StagingRow.job_id == job.id)).one()
        assert row.processed is False
        assert row.row_number == 7
        assert row.raw_data["Order ID"] == "A"
