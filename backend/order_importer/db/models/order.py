"""SQLAlchemy models for marketplace orders and their line items."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.types import DateTime

from order_importer.db.base import Base


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    company_id = Column(String(36), nullable=False)
    marketplace = Column(String(32), nullable=False)
    external_order_id = Column(String(128), nullable=False)
    customer_name = Column(String(255))
    address_summary = Column(Text)
    status = Column(String(32), nullable=False, default="received")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint(
            "company_id", "marketplace", "external_order_id", name="uq_orders_external"
        ),
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    company_id = Column(String(36), nullable=False)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    variant_id = Column(Integer, ForeignKey("product_variants.id"), nullable=False)
    qty = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("order_id", "variant_id", name="uq_order_items_variant"),
        CheckConstraint("qty > 0", name="ck_order_items_qty_positive"),
    )
