"""Voucher eligibility for the current cart."""
import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Any, Dict

from sqlalchemy.orm import Session

from app.models import Promotion

logger = logging.getLogger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are stored as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def load_active_vouchers(session: Session) -> List[Promotion]:
    """All active voucher promotions, in source (id) order."""
    return session.query(Promotion).filter(
        Promotion.type == 'voucher',
        Promotion.status == 'active'
    ).order_by(Promotion.id).all()


def is_voucher_eligible(voucher, now: datetime, cart_seller_id: Optional[str]) -> bool:
    """
    A voucher is usable when its validity window contains ``now`` and it is
    either platform-wide or owned by the cart's seller.
    """
    now = _as_utc(now)
    start = _as_utc(voucher.start_date)
    end = _as_utc(voucher.end_date)

    if start is not None and start > now:
        return False
    if end is not None and end < now:
        return False
    if voucher.seller_id is None:
        return True
    return cart_seller_id is not None and str(voucher.seller_id) == str(cart_seller_id)


def resolve_eligible_vouchers(
    vouchers: Iterable,
    now: datetime,
    cart_seller_id: Optional[str]
) -> List[Any]:
    """Filter candidates for the cart, preserving source order.

    ``cart_seller_id`` is the seller of the cart's first line: carts are
    assumed to be single-seller, and multi-seller carts are scoped by
    whichever seller was added first.
    """
    return [v for v in vouchers if is_voucher_eligible(v, now, cart_seller_id)]


def select_voucher(eligible: Iterable, voucher_id) -> Optional[Any]:
    """Pick the buyer's voucher out of the eligible list; unknown ids select nothing."""
    if voucher_id in (None, ''):
        return None
    for voucher in eligible:
        if str(voucher.id) == str(voucher_id):
            return voucher
    logger.info(f"[CHECKOUT] Voucher {voucher_id} is not eligible for this cart, ignoring")
    return None


def get_eligible_vouchers(session: Session, cart_seller_id: Optional[str], now: datetime = None) -> List[Promotion]:
    """Load and filter in one step (what the checkout endpoints use)."""
    now = now or datetime.now(timezone.utc)
    return resolve_eligible_vouchers(load_active_vouchers(session), now, cart_seller_id)


def serialize_voucher(voucher: Promotion) -> Dict[str, Any]:
    """JSON shape used by the checkout voucher picker."""
    return {
        'id': voucher.id,
        'seller_id': voucher.seller_id,
        'name': voucher.name or 'Voucher',
        'code': voucher.code,
        'discount_type': voucher.discount_type,
        'discount_value': str(voucher.discount_value),
        'min_purchase': str(voucher.min_purchase) if voucher.min_purchase is not None else None,
        'max_discount': str(voucher.max_discount) if voucher.max_discount is not None else None,
        'start_date': voucher.start_date.isoformat() if voucher.start_date else None,
        'end_date': voucher.end_date.isoformat() if voucher.end_date else None,
    }
