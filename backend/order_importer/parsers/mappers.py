"""Per-marketplace column aliases and the normalized row they map into."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from order_importer.parsers.csv_text import find_header
from order_importer.parsers.marketplace import Marketplace
from order_importer.parsers.sizes import extract_size, generate_stable_sku

DEFAULT_PRODUCT_NAME = "Produto sem nome"
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass
class NormalizedRow:
    external_order_id: str
    tracking_code: str
    scan_code: str
    customer_name: str
    address_summary: str
    product_name: str
    variant_name: str
    sku: str
    qty: int
    attributes: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class VendorLayout:
    """Header aliases per logical field; the first matching column in file order wins."""

    order_id: tuple[str, ...]
    tracking: tuple[str, ...]
    buyer_name: tuple[str, ...]
    product_name: tuple[str, ...]
    variation: tuple[str, ...]
    quantity: tuple[str, ...]
    address: tuple[str, ...]
    sku: tuple[str, ...] = ()
    # Shopee exports carry no usable seller SKU column
    trust_vendor_sku: bool = True


SHOPEE_LAYOUT = VendorLayout(
    order_id=("Order ID", "OrderID", "Order Id"),
    tracking=("Tracking Number", "TrackingNumber", "AWB Number"),
    buyer_name=("Buyer Name", "Buyer Username", "Recipient Name"),
    product_name=("Product Name", "Product Name(s)", "Item Name"),
    variation=("Model Name", "Variation Name", "Variation"),
    quantity=("Quantity", "Qty", "Amount"),
    address=(
        "Recipient Address",
        "Delivery Address",
        "Recipient Full Address",
        "Shipping Address",
    ),
    trust_vendor_sku=False,
)

MERCADOLIVRE_LAYOUT = VendorLayout(
    order_id=("Order ID", "Order No", "Order Number"),
    tracking=(
        "Logistics Tracking Number",
        "Tracking Number",
        "Tracking No",
        "Waybill Number",
        "AWB No",
    ),
    buyer_name=("Buyer Login Name", "Buyer Name", "Buyer Alias", "Customer Name"),
    product_name=("Product Name", "Subject", "Item Name", "Title"),
    variation=("Product Attributes", "Variation", "SKU Attributes", "Sku Attributes"),
    quantity=("Quantity", "Ordered Quantity", "Qty"),
    address=("Shipping Address", "Address", "Delivery Address", "Ship To Address"),
    sku=("SKU", "SKU ID", "Product SKU"),
)

SHEIN_LAYOUT = VendorLayout(
    order_id=("Order Number", "Order No", "Order ID"),
    tracking=("Tracking Number", "Tracking", "Waybill", "Express Number"),
    buyer_name=("Customer Name", "Buyer Name", "Recipient Name"),
    product_name=("Product Name", "Item Name", "Product Name(s)", "Goods Name"),
    variation=("Variation", "Colour/Size", "Variant", "Style", "Attributes"),
    quantity=("Quantity", "Qty", "Amount", "Ordered Quantity"),
    address=("Shipping Address", "Address", "Delivery Address"),
    sku=("SKU", "Item SKU", "Product SKU"),
)


def _union(*alias_lists: tuple[str, ...]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for aliases in alias_lists:
        for alias in aliases:
            seen.setdefault(alias, None)
    return tuple(seen)


_VENDOR_LAYOUTS = (SHOPEE_LAYOUT, MERCADOLIVRE_LAYOUT, SHEIN_LAYOUT)

# Best guess for exports no detection rule recognized
GENERIC_LAYOUT = VendorLayout(
    order_id=_union(*(layout.order_id for layout in _VENDOR_LAYOUTS)),
    tracking=_union(*(layout.tracking for layout in _VENDOR_LAYOUTS)),
    buyer_name=_union(*(layout.buyer_name for layout in _VENDOR_LAYOUTS)),
    product_name=_union(*(layout.product_name for layout in _VENDOR_LAYOUTS)),
    variation=_union(*(layout.variation for layout in _VENDOR_LAYOUTS)),
    quantity=_union(*(layout.quantity for layout in _VENDOR_LAYOUTS)),
    address=_union(*(layout.address for layout in _VENDOR_LAYOUTS)),
    sku=_union(*(layout.sku for layout in _VENDOR_LAYOUTS)),
)

LAYOUTS: dict[Marketplace, VendorLayout] = {
    Marketplace.SHOPEE: SHOPEE_LAYOUT,
    Marketplace.MERCADOLIVRE: MERCADOLIVRE_LAYOUT,
    Marketplace.SHEIN: SHEIN_LAYOUT,
    Marketplace.UNKNOWN: GENERIC_LAYOUT,
}


def parse_quantity(value: str | None) -> int:
    """Leading integer of ``value``; 1 when missing, unparseable or zero."""
    match = _LEADING_INT.match(value or "")
    if not match:
        return 1
    return int(match.group(1)) or 1


class RowMapper:
    """Resolve a layout's aliases against one file's headers, then map rows."""

    def __init__(self, marketplace: Marketplace, headers: list[str]):
        self.marketplace = marketplace
        self.layout = LAYOUTS[marketplace]
        self.headers = headers
        self._columns: dict[str, str | None] = {
            name: find_header(headers, getattr(self.layout, name))
            for name in (
                "order_id",
                "tracking",
                "buyer_name",
                "product_name",
                "variation",
                "quantity",
                "address",
                "sku",
            )
        }

    def _get(self, row: dict[str, Any], name: str) -> str:
        header = self._columns[name]
        if not header:
            return ""
        return (row.get(header) or "").strip()

    def map_row(self, row: dict[str, Any]) -> NormalizedRow | None:
        """Return the normalized row, or None when the row has no order id."""
        order_id = self._get(row, "order_id")
        if not order_id:
            return None

        tracking = self._get(row, "tracking")
        product_name = self._get(row, "product_name")
        variation = self._get(row, "variation")
        vendor_sku = self._get(row, "sku") if self.layout.trust_vendor_sku else ""

        variant_name = variation or vendor_sku
        size = extract_size(variant_name) or extract_size(product_name)
        attributes = {"size": size} if size else {}

        return NormalizedRow(
            external_order_id=order_id,
            tracking_code=tracking,
            scan_code=tracking,
            customer_name=self._get(row, "buyer_name"),
            address_summary=self._get(row, "address"),
            product_name=product_name or DEFAULT_PRODUCT_NAME,
            variant_name=variant_name,
            sku=vendor_sku or generate_stable_sku(product_name, variation),
            qty=parse_quantity(self._get(row, "quantity")),
            attributes=attributes,
        )


def map_row(
    row: dict[str, Any], headers: list[str], marketplace: Marketplace
) -> NormalizedRow | None:
    """Convenience wrapper for one-off rows; prefer ``RowMapper`` for whole files."""
    return RowMapper(marketplace, headers).map_row(row)
