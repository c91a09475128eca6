"""Static reference data: distributor registry and product catalog."""

from __future__ import annotations

from returns_review.schemas import Distributor, Product

DEFAULT_DISTRIBUTORS: tuple[Distributor, ...] = (
    Distributor(id="D001", name="East China Pharma Distribution Center", avg_return_rate=0.015),
    Distributor(id="D002", name="Northern Kangjian Pharma Channel", avg_return_rate=0.04),
    Distributor(id="D003", name="Minsheng Chain Pharmacy", avg_return_rate=0.07),
    Distributor(id="D004", name="Kangning Franchise Pharmacy", avg_return_rate=0.095),
)

DEFAULT_PRODUCTS: tuple[Product, ...] = (
    Product(code="MED-001", name="Ibuprofen SR Capsules (0.3g x 24)"),
    Product(code="MED-002", name="Amoxicillin Capsules (0.25g x 24)"),
    Product(code="MED-003", name="Vitamin C Chewable Tablets (100mg x 100)"),
    Product(code="MED-004", name="Compound Cold Relief Granules (10g x 9)"),
    Product(code="MED-005", name="Artificial Tears Eye Drops (0.4ml x 30)"),
    Product(code="MED-006", name="Surgical Face Masks (individually wrapped, 50)"),
)


def default_distributors() -> list[Distributor]:
    return list(DEFAULT_DISTRIBUTORS)


def default_products() -> list[Product]:
    return list(DEFAULT_PRODUCTS)

