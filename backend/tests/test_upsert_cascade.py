"""Tests for the idempotent order/catalog/package upsert cascade."""

import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from order_importer.db.models import (
    Order,
    OrderItem,
    Package,
    PackageItem,
    Product,
    ProductVariant,
    StagingRow,
)
from order_importer.services.upsert_cascade import apply_staging_row, dialect_insert, upsert


def count(session, model):
    return session.scalar(select(func.count()).select_from(model))


@pytest.fixture
def staging_row(session, make_job, company_id):
    """Build a staging row for the test job; nothing is flushed until used."""
    job = make_job()

    def _make(**overrides):
        values = dict(
            job_id=job.id,
            company_id=company_id,
            marketplace="shopee",
            row_number=1,
            external_order_id="ORD1",
            tracking_code="TRK1",
            item_name="Camisa Polo",
            variation="XL",
            sku="camisa-polo-xl-abc123",
            qty=2,
            buyer_name="Maria",
            address="Rua X, 123",
            attributes={"size": "GG"},
            raw_data={"Order ID": "ORD1"},
            content_hash=uuid.uuid4().hex,
            processed=False,
        )
        values.update(overrides)
        row = StagingRow(**values)
        session.add(row)
        session.flush()
        return row

    return _make


class TestUpsert:
    def test_inserted_flag_comes_from_database(self, session, company_id):
        values = {"company_id": company_id, "name": "Camisa Polo", "base_sku": None}
        first = upsert(session, Product, values, conflict_columns=("company_id", "name"))
        second = upsert(session, Product, values, conflict_columns=("company_id", "name"))
        assert first.inserted is True
        assert second.inserted is False
        assert first.id == second.id
        assert count(session, Product) == 1

    def test_update_columns_overwrite_existing(self, session, company_id):
        key = ("company_id", "marketplace", "external_order_id")
        base = {
            "company_id": company_id,
            "marketplace": "shopee",
            "external_order_id": "ORD1",
            "status": "received",
        }
        first = upsert(session, Order, {**base, "customer_name": "Maria"}, key, ("customer_name",))
        second = upsert(session, Order, {**base, "customer_name": "Maria S."}, key, ("customer_name",))
        assert second.id == first.id
        assert second.inserted is False
        name = session.scalar(select(Order.customer_name).where(Order.id == first.id))
        assert name == "Maria S."

    def test_dialect_insert_matches_bind(self, session):
        from sqlalchemy.dialects.sqlite import insert as sqlite_insert

        assert dialect_insert(session) is sqlite_insert


class TestApplyStagingRow:
    def test_creates_full_chain(self, session, staging_row, company_id):
        result = apply_staging_row(session, staging_row())

        assert result.created == {
            "order": True,
            "product": True,
            "variant": True,
            "order_item": True,
            "package": True,
            "package_item": True,
        }
        order = session.get(Order, result.order_id)
        assert order.external_order_id == "ORD1"
        assert order.customer_name == "Maria"
        variant = session.get(ProductVariant, result.variant_id)
        assert variant.attributes == {"size": "GG"}
        assert variant.variant_name == "XL"
        item = session.scalars(select(OrderItem)).one()
        assert item.qty == 2
        package = session.get(Package, result.package_id)
        assert package.scan_code == "TRK1"
        assert package.order_id == order.id
        assert session.scalars(select(PackageItem)).one().qty == 2

    def test_replay_creates_nothing(self, session, staging_row):
        row = staging_row()
        first = apply_staging_row(session, row)
        second = apply_staging_row(session, row)

        assert not any(second.created.values())
        assert second.order_id == first.order_id
        assert second.variant_id == first.variant_id
        assert second.package_id == first.package_id
        for model in (Order, Product, ProductVariant, OrderItem, Package, PackageItem):
            assert count(session, model) == 1

    def test_same_variant_twice_in_order_keeps_last_qty(self, session, staging_row):
        apply_staging_row(session, staging_row(qty=2))
        apply_staging_row(session, staging_row(qty=5))
        assert session.scalars(select(OrderItem.qty)).one() == 5

    def test_rows_without_tracking_have_no_package(self, session, staging_row):
        result = apply_staging_row(session, staging_row(tracking_code=None))
        assert result.package_id is None
        assert "package" not in result.created
        assert count(session, Package) == 0

    def test_existing_package_keeps_its_order(self, session, staging_row):
        first = apply_staging_row(session, staging_row())
        second = apply_staging_row(session, staging_row(external_order_id="ORD2"))
        assert second.package_id == first.package_id
        assert session.get(Package, first.package_id).order_id == first.order_id
        assert count(session, PackageItem) == 1

    def test_missing_item_name_uses_placeholder(self, session, staging_row):
        result = apply_staging_row(session, staging_row(item_name=None))
        variant = session.get(ProductVariant, result.variant_id)
        assert session.get(Product, variant.product_id).name == "Produto sem nome"

    def test_variant_without_sku_is_resolved_by_name(self, session, staging_row):
        first = apply_staging_row(session, staging_row(sku=None))
        second = apply_staging_row(session, staging_row(sku=None, external_order_id="ORD2"))
        assert first.created["variant"] is True
        assert second.created["variant"] is False
        assert second.variant_id == first.variant_id
        assert count(session, ProductVariant) == 1

    def test_variant_without_sku_or_name(self, session, staging_row):
        first = apply_staging_row(session, staging_row(sku=None, variation=None))
        second = apply_staging_row(session, staging_row(sku=None, variation=None, qty=3))
        assert second.variant_id == first.variant_id

    def test_companies_are_isolated(self, session, staging_row):
        apply_staging_row(session, staging_row())
        apply_staging_row(session, staging_row(company_id="company-2"))
        assert count(session, Order) == 2
        assert count(session, Package) == 2

    def test_invalid_quantity_raises(self, session, staging_row):
        row = staging_row(qty=-1)
        with pytest.raises(IntegrityError):
            with session.begin_nested():
                apply_staging_row(session, row)
        assert count(session, Order) == 0
