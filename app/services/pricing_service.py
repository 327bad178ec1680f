"""Checkout pricing: subtotal, VAT, voucher discount and total.

All amounts are integers in the smallest currency unit. Intermediate math is
done with Decimal and rounded half-up, so results never depend on float
representation.
"""
from dataclasses import dataclass, asdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Dict

from app.models import DiscountType

VAT_RATE = Decimal('0.12')


@dataclass(frozen=True)
class PricingResult:
    """Derived price breakdown; recomputed on every render, never stored."""
    subtotal: int
    vat: int
    discount: int
    total: int

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def round_half_up(value) -> int:
    """Round to the nearest integer unit, .5 away from zero."""
    return int(Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def calculate_subtotal(lines: Iterable) -> int:
    """Sum of unit_price x quantity over all cart lines."""
    return sum(int(line.unit_price) * int(line.quantity) for line in lines)


def calculate_vat(subtotal: int) -> int:
    """Fixed 12% VAT; this channel charges no shipping."""
    return round_half_up(Decimal(subtotal) * VAT_RATE)


def calculate_discount(subtotal: int, voucher=None) -> int:
    """
    Voucher discount for a given subtotal.

    Percentage vouchers take ``value`` percent of the subtotal, fixed vouchers
    take ``value`` itself. The result is never negative and is 0 when there
    is nothing to discount.
    """
    if voucher is None or subtotal <= 0:
        return 0

    value = Decimal(str(voucher.discount_value or 0))
    if voucher.discount_type == DiscountType.PERCENTAGE.value:
        raw = round_half_up(Decimal(subtotal) * value / Decimal('100'))
    else:
        raw = round_half_up(value)
    return max(0, raw)


def calculate_pricing(lines: Iterable, voucher: Optional[object] = None) -> PricingResult:
    """Price a cart with an optional (already validated) voucher."""
    lines = list(lines)
    subtotal = calculate_subtotal(lines)
    vat = calculate_vat(subtotal)
    discount = calculate_discount(subtotal, voucher)
    total = max(0, subtotal + vat - discount)
    return PricingResult(subtotal=subtotal, vat=vat, discount=discount, total=total)
