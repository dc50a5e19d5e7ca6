"""
Shared test data.

- SAMPLE_PRODUCTS: small catalog
- FIXED_NOW / fixed_clock: deterministic export date (2026-10-19)
- new_entry: entry payload with defaults
"""

from datetime import datetime

from inventory_loss.store import NewEntry, Product, UnitType

FIXED_NOW = datetime(2026, 10, 19, 9, 30, 0)
FIXED_DAY = "20261019"

SAMPLE_PRODUCTS = [
    Product(
        code="7891234567890",
        name="Arroz 5kg",
        unit_type=UnitType.COUNT,
        regular_price=25.99,
        club_price=22.99,
    ),
    Product(
        code="7891234567891",
        name="Feijão 1kg",
        unit_type=UnitType.COUNT,
        regular_price=8.50,
        club_price=7.50,
    ),
    Product(
        code="7891234567892",
        name="Tomate",
        unit_type=UnitType.WEIGHT,
        regular_price=5.99,
        club_price=None,
    ),
]


def fixed_clock() -> datetime:
    return FIXED_NOW


def new_entry(
    product_code: str = "123",
    reason_id: str = "1",
    quantity: float = 1,
    unit_cost: float = 0.0,
    **kwargs,
) -> NewEntry:
    """Entry payload with test defaults."""
    return NewEntry(
        product_code=product_code,
        reason_id=reason_id,
        quantity=quantity,
        unit_cost=unit_cost,
        **kwargs,
    )
