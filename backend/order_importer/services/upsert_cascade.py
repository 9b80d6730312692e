"""Idempotent writes of one staging row into orders, catalog and packages.

Each entity is written through ``upsert`` keyed by its natural unique
constraint, so replaying a row (a retried batch, a re-imported file) finds
the existing records instead of duplicating them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from order_importer.db.models.order import Order, OrderItem
from order_importer.db.models.package import Package, PackageItem
from order_importer.db.models.product import Product, ProductVariant
from order_importer.db.models.staging_row import StagingRow
from order_importer.parsers.mappers import DEFAULT_PRODUCT_NAME
from order_importer.services.errors import UnsupportedDialectError

logger = logging.getLogger(__name__)

_INSERTS = {"postgresql": pg_insert, "sqlite": sqlite_insert}


def dialect_insert(session: Session):
    """The ``insert`` construct with ON CONFLICT support for the bound database."""
    dialect = session.get_bind().dialect.name
    try:
        return _INSERTS[dialect]
    except KeyError:
        raise UnsupportedDialectError(dialect) from None


@dataclass(frozen=True)
class UpsertResult:
    id: int
    inserted: bool


def upsert(
    session: Session,
    model: Any,
    values: dict[str, Any],
    conflict_columns: Iterable[str],
    update_columns: Iterable[str] = (),
) -> UpsertResult:
    """Insert ``values`` or resolve the row already holding its natural key.

    ``inserted`` is reported by the database (RETURNING on the insert), not
    inferred from timestamps. On conflict, ``update_columns`` are overwritten
    with the new values; with no update columns the existing row is kept as is.
    """
    table = model.__table__
    conflict_columns = list(conflict_columns)
    update_columns = list(update_columns)

    stmt = (
        dialect_insert(session)(table)
        .values(**values)
        .on_conflict_do_nothing(index_elements=conflict_columns)
        .returning(table.c.id)
    )
    new_id = session.execute(stmt).scalar_one_or_none()
    if new_id is not None:
        return UpsertResult(new_id, True)

    key = [table.c[name] == values[name] for name in conflict_columns]
    if update_columns:
        existing = (
            update(table)
            .where(*key)
            .values({name: values[name] for name in update_columns})
            .returning(table.c.id)
        )
    else:
        existing = select(table.c.id).where(*key)
    return UpsertResult(session.execute(existing).scalar_one(), False)


@dataclass
class CascadeResult:
    order_id: int
    variant_id: int
    package_id: int | None = None
    created: dict[str, bool] = field(default_factory=dict)


def _resolve_variant(
    session: Session, row: StagingRow, product_id: int
) -> UpsertResult:
    values = {
        "company_id": row.company_id,
        "product_id": product_id,
        "variant_name": row.variation,
        "sku": row.sku,
        "attributes": row.attributes or {},
    }
    if row.sku:
        return upsert(
            session,
            ProductVariant,
            values,
            conflict_columns=("company_id", "sku"),
            update_columns=("product_id", "variant_name", "attributes"),
        )

    # no natural key without a SKU: look up by product + name, create if absent
    table = ProductVariant.__table__
    name_match = (
        table.c.variant_name.is_(None)
        if row.variation is None
        else table.c.variant_name == row.variation
    )
    existing_id = session.execute(
        select(table.c.id)
        .where(
            table.c.company_id == row.company_id,
            table.c.product_id == product_id,
            name_match,
        )
        .order_by(table.c.id)
        .limit(1)
    ).scalar_one_or_none()
    if existing_id is not None:
        return UpsertResult(existing_id, False)

    new_id = session.execute(
        dialect_insert(session)(table).values(**values).returning(table.c.id)
    ).scalar_one()
    return UpsertResult(new_id, True)


def apply_staging_row(session: Session, row: StagingRow) -> CascadeResult:
    """Run Order → Product → Variant → OrderItem → Package → PackageItem for one row.

    Raises on any failed write; the caller decides how to isolate it.
    """
    company_id = row.company_id

    order = upsert(
        session,
        Order,
        {
            "company_id": company_id,
            "marketplace": row.marketplace,
            "external_order_id": row.external_order_id,
            "customer_name": row.buyer_name,
            "address_summary": row.address,
            "status": "received",
        },
        conflict_columns=("company_id", "marketplace", "external_order_id"),
        update_columns=("customer_name", "address_summary"),
    )

    product = upsert(
        session,
        Product,
        {
            "company_id": company_id,
            "name": row.item_name or DEFAULT_PRODUCT_NAME,
            "base_sku": None,
        },
        conflict_columns=("company_id", "name"),
    )

    variant = _resolve_variant(session, row, product.id)

    item = upsert(
        session,
        OrderItem,
        {
            "company_id": company_id,
            "order_id": order.id,
            "variant_id": variant.id,
            "qty": row.qty,
        },
        conflict_columns=("order_id", "variant_id"),
        update_columns=("qty",),
    )

    result = CascadeResult(
        order_id=order.id,
        variant_id=variant.id,
        created={
            "order": order.inserted,
            "product": product.inserted,
            "variant": variant.inserted,
            "order_item": item.inserted,
        },
    )

    scan_code = row.tracking_code
    if not scan_code:
        return result

    # an existing package keeps its order link and status
    package = upsert(
        session,
        Package,
        {
            "company_id": company_id,
            "order_id": order.id,
            "package_number": 1,
            "scan_code": scan_code,
            "tracking_code": row.tracking_code,
            "status": "packed",
        },
        conflict_columns=("company_id", "scan_code"),
    )
    package_item = upsert(
        session,
        PackageItem,
        {
            "company_id": company_id,
            "package_id": package.id,
            "variant_id": variant.id,
            "qty": row.qty,
        },
        conflict_columns=("package_id", "variant_id"),
        update_columns=("qty",),
    )

    result.package_id = package.id
    result.created["package"] = package.inserted
    result.created["package_item"] = package_item.inserted
    return result
