"""Database models package."""
from order_importer.db.models.import_job import ImportJob
from order_importer.db.models.import_job_error import ImportJobError
from order_importer.db.models.order import Order, OrderItem
from order_importer.db.models.package import Package, PackageItem
from order_importer.db.models.product import Product, ProductVariant
from order_importer.db.models.staging_row import StagingRow

__all__ = [
    "ImportJob",
    "ImportJobError",
    "Order",
    "OrderItem",
    "Package",
    "PackageItem",
    "Product",
    "ProductVariant",
    "StagingRow",
]
