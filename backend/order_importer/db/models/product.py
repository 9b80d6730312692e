"""SQLAlchemy models for catalog products and their sellable variants."""

from sqlalchemy import Column, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.types import DateTime

from order_importer.db.base import Base, JSONType


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    company_id = Column(String(36), nullable=False)
    name = Column(String(255), nullable=False)
    base_sku = Column(String(128))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (UniqueConstraint("company_id", "name", name="uq_products_name"),)


class ProductVariant(Base):
    __tablename__ = "product_variants"

    id = Column(Integer, primary_key=True)
    company_id = Column(String(36), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    variant_name = Column(String(255))
    sku = Column(String(128))
    attributes = Column(JSONType)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # NULL skus never collide, so SKU-less variants are resolved by name instead
    __table_args__ = (
        UniqueConstraint("company_id", "sku", name="uq_variants_sku"),
        Index("ix_variants_product_name", "company_id", "product_id", "variant_name"),
    )
