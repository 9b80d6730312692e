"""SQLAlchemy models for shippable packages identified by a scan code."""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.types import DateTime

from order_importer.db.base import Base


class Package(Base):
    __tablename__ = "packages"

    id = Column(Integer, primary_key=True)
    company_id = Column(String(36), nullable=False)
    order_id = Column(Integer, ForeignKey("orders.id"))
    package_number = Column(Integer, nullable=False, default=1)
    scan_code = Column(String(128), nullable=False)
    tracking_code = Column(String(128))
    status = Column(String(32), nullable=False, default="packed")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("company_id", "scan_code", name="uq_packages_scan_code"),
    )


class PackageItem(Base):
    __tablename__ = "package_items"

    id = Column(Integer, primary_key=True)
    company_id = Column(String(36), nullable=False)
    package_id = Column(Integer, ForeignKey("packages.id"), nullable=False)
    variant_id = Column(Integer, ForeignKey("product_variants.id"), nullable=False)
    qty = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("package_id", "variant_id", name="uq_package_items_variant"),
        CheckConstraint("qty > 0", name="ck_package_items_qty_positive"),
    )
