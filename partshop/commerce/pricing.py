"""
Price Resolution

Pure pricing rules shared by the cart and checkout:

- ``resolve_price`` picks the effective unit price from the competing
  discount sources
- ``line_total`` and ``summarize`` build the money figures shown to the
  customer

All arithmetic is done in ``Decimal``; floats are converted through their
string form so ``0.1`` stays ``0.1``.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from typing import Iterable, Optional, Union

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal(100)


def to_money(value: Optional[Number]) -> Decimal:
    """Convert a number to a two-place Decimal (None becomes 0.00)."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def resolve_price(
    base_price: Number,
    sale_price: Optional[Number],
    discount_percentage: Number = 0,
) -> Decimal:
    """
    Effective unit price of a product for a customer.

    Precedence, highest first:

    1. A personal discount above zero: the base price minus the discount,
       truncated (not rounded) to cents.
    2. A catalog sale price strictly between zero and the base price.
    3. The base price.

    A personal discount always wins, even when the sale price would be lower.

    Example:
        >>> resolve_price(180, 144, 0)
        Decimal('144.00')
        >>> resolve_price(180, 144, 10)
        Decimal('162.00')
    """
    raw_base = base_price if isinstance(base_price, Decimal) else Decimal(str(base_price))
    discount = min(max(Decimal(str(discount_percentage or 0)), Decimal(0)), HUNDRED)

    if discount > 0:
        discounted = raw_base * (HUNDRED - discount) / HUNDRED
        return discounted.quantize(CENT, rounding=ROUND_FLOOR)

    base = to_money(raw_base)

    if sale_price is not None:
        sale = to_money(sale_price)
        if ZERO < sale < base:
            return sale

    return base


def line_total(unit_price: Number, quantity: int) -> Decimal:
    """Unit price times quantity, in cents."""
    return to_money(to_money(unit_price) * quantity)


@dataclass
class PriceSummary:
    """Aggregate money figures for a set of priced lines"""
    total_items: int = 0
    total_price: Decimal = ZERO
    total_sale_price: Decimal = ZERO

    @property
    def savings(self) -> Decimal:
        """What the customer saves against base prices, never negative"""
        return max(self.total_price - self.total_sale_price, ZERO)


def summarize(lines: Iterable) -> PriceSummary:
    """
    Sum lines exposing ``quantity``, ``total_price`` and ``total_sale_price``.
    """
    summary = PriceSummary()
    for line in lines:
        summary.total_items += line.quantity
        summary.total_price += line.total_price
        summary.total_sale_price += line.total_sale_price
    summary.total_price = to_money(summary.total_price)
    summary.total_sale_price = to_money(summary.total_sale_price)
    return summary
