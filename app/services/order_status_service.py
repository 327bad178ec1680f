"""Order status normalization and the order read/update paths that use it."""
import enum
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.exceptions import NotFoundError, ValidationError
from app.models import Order, OrderItem

logger = logging.getLogger(__name__)


class CanonicalStatus(str, enum.Enum):
    """Status vocabulary shown to buyers."""
    PENDING = 'Pending'
    PROCESSING = 'Processing'
    SHIPPED = 'Shipped'
    DELIVERED = 'Delivered'


# Evaluated in order: "ready to ship after processing" is Shipped
_STATUS_RULES = (
    ('deliver', CanonicalStatus.DELIVERED),
    ('ship', CanonicalStatus.SHIPPED),
    ('process', CanonicalStatus.PROCESSING),
    ('pend', CanonicalStatus.PENDING),
)

# Seller workflow: each step only moves one stage forward
_NEXT_STATUS = {
    CanonicalStatus.PENDING.value: CanonicalStatus.PROCESSING.value,
    CanonicalStatus.PROCESSING.value: CanonicalStatus.SHIPPED.value,
    CanonicalStatus.SHIPPED.value: CanonicalStatus.DELIVERED.value,
}

_CANONICAL_VALUES = frozenset(s.value for s in CanonicalStatus)


def normalize_status(raw: Optional[str]) -> Optional[str]:
    """Map free-text status to a canonical one; unknown values pass through unchanged."""
    if not raw:
        return raw
    lowered = raw.lower()
    for needle, status in _STATUS_RULES:
        if needle in lowered:
            return status.value
    return raw


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def serialize_order_summary(order: Order) -> Dict[str, Any]:
    return {
        'id': order.id,
        'date': (_iso(order.created_at) or '')[:10],
        'total': int(order.total_amount or 0),
        'status': normalize_status(order.status),
        'title': order.summary_title or 'Order',
        'image': order.summary_image,
        'item_count': order.item_count,
    }


def serialize_order_item(item: OrderItem) -> Dict[str, Any]:
    return {
        'id': item.id,
        'seller_id': item.seller_id,
        'product_id': item.product_id,
        'title': item.title or 'Item',
        'image': item.image,
        'qty': int(item.qty or 1),
        'unit_price': int(item.unit_price or 0),
        'status': normalize_status(item.status),
    }


def list_buyer_orders(session: Session, buyer_id: str) -> List[Dict[str, Any]]:
    """Buyer's orders, newest first, with display status."""
    orders = session.query(Order).filter(
        Order.buyer_id == str(buyer_id)
    ).order_by(Order.created_at.desc(), Order.id.desc()).all()
    return [serialize_order_summary(o) for o in orders]


def load_order_detail(session: Session, order_id: int, buyer_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Header and items of one order, as shown on the order-detail view.

    Raises:
        NotFoundError: missing order, or owned by another buyer
    """
    query = session.query(Order).filter(Order.id == order_id)
    if buyer_id is not None:
        query = query.filter(Order.buyer_id == str(buyer_id))
    order = query.first()
    if not order:
        raise NotFoundError('Order not found.')

    items = session.query(OrderItem).filter(
        OrderItem.order_id == order.id
    ).order_by(OrderItem.id).all()

    detail = serialize_order_summary(order)
    detail.update({
        'raw_status': order.status,
        'payment_method': order.payment_method,
        'payment_status': order.payment_status,
        'tracking_id': order.tracking_id,
        'tracking_share_link': order.tracking_share_link,
        'items': [serialize_order_item(i) for i in items],
    })
    return detail


def advance_seller_order(
    session: Session,
    order_id: int,
    seller_id: str,
    target_status: str,
    tracking_id: Optional[str] = None,
    share_link: Optional[str] = None
) -> Dict[str, Any]:
    """
    Move a seller's items (and the shared header) one step forward.

    Pending -> Processing -> Shipped -> Delivered. Tracking details are only
    accepted when marking the order shipped.

    Raises:
        NotFoundError: seller has no items in this order
        ValidationError: target is not the next step
    """
    items = session.query(OrderItem).filter(
        OrderItem.order_id == order_id,
        OrderItem.seller_id == str(seller_id)
    ).all()
    if not items:
        raise NotFoundError('Order not found for this seller.')

    target = normalize_status(target_status)
    if target not in _CANONICAL_VALUES:
        raise ValidationError(f'Unknown order status: {target_status}.')
    current = normalize_status(items[0].status)
    if _NEXT_STATUS.get(current) != target:
        raise ValidationError(f'Cannot change order status from {current} to {target_status}.')

    for item in items:
        item.status = target

    order = session.query(Order).filter(Order.id == order_id).first()
    order.status = target
    if target == CanonicalStatus.SHIPPED.value:
        if tracking_id:
            order.tracking_id = tracking_id
        if share_link:
            order.tracking_share_link = share_link

    session.commit()
    logger.info(f"[ORDERS] Order #{order_id} seller {seller_id}: {current} -> {target}")

    _notify_status_change(order_id, target)
    return load_order_detail(session, order_id)


def _notify_status_change(order_id: int, status: str) -> None:
    """Wake up open trackers; polling covers it if redis is down."""
    try:
        from app.services.redis_service import get_redis
        get_redis().publish_status_change(order_id, status)
    except RuntimeError:
        logger.debug("[ORDERS] Redis not initialized, status change not published")


def find_orphan_orders(session: Session) -> List[Order]:
    """Headers without any item rows (failed fan-out), oldest first."""
    item_counts = session.query(
        OrderItem.order_id, func.count(OrderItem.id).label('n')
    ).group_by(OrderItem.order_id).subquery()

    return session.query(Order).outerjoin(
        item_counts, item_counts.c.order_id == Order.id
    ).filter(
        item_counts.c.n.is_(None)
    ).order_by(Order.created_at, Order.id).all()
