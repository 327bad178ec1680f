"""
Checkout write path: one order header plus per-seller order items.

The header and the item batch are two separate commits. When the item batch
fails the header stays behind (an "orphan" order with no items); it is
flagged with ``items_missing`` for reconciliation and reported on the
attempt instead of raised.
"""
import enum
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.exceptions import (
    ValidationError, HeaderPersistError, FanoutPersistError,
    SubmissionInProgressError, MarketplaceError
)
from app.models import Order, OrderItem, normalize_payment_method
from app.services.pricing_service import PricingResult

logger = logging.getLogger(__name__)

INITIAL_STATUS = 'Pending'


class CheckoutState(str, enum.Enum):
    """States of a single checkout attempt."""
    IDLE = 'idle'
    SUBMITTING = 'submitting'
    ORDER_CREATED = 'order_created'
    ITEMS_WRITTEN = 'items_written'
    ITEMS_WRITE_FAILED = 'items_write_failed'
    COMPLETED = 'completed'


_TRANSITIONS = {
    CheckoutState.IDLE: {CheckoutState.SUBMITTING},
    CheckoutState.SUBMITTING: {CheckoutState.ORDER_CREATED, CheckoutState.IDLE},
    CheckoutState.ORDER_CREATED: {CheckoutState.ITEMS_WRITTEN, CheckoutState.ITEMS_WRITE_FAILED},
    CheckoutState.ITEMS_WRITTEN: {CheckoutState.COMPLETED},
    # Orphan header; left for reconciliation, never completed
    CheckoutState.ITEMS_WRITE_FAILED: set(),
    CheckoutState.COMPLETED: set(),
}


@dataclass
class BuyerSnapshot:
    """Buyer details copied onto every order item."""
    buyer_id: Optional[str]
    name: Optional[str]
    address: Optional[str]


@dataclass
class CheckoutAttempt:
    """Progress of one checkout; ``history`` records every state entered."""
    payment_method: str
    pricing: Optional[PricingResult] = None
    state: CheckoutState = CheckoutState.IDLE
    order_id: Optional[int] = None
    total_amount: int = 0
    items_written: int = 0
    items_dropped: int = 0
    errors: List[MarketplaceError] = field(default_factory=list)
    history: List[CheckoutState] = field(default_factory=lambda: [CheckoutState.IDLE])

    def transition(self, new_state: CheckoutState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid checkout transition {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)

    @property
    def fanout_error(self) -> Optional[FanoutPersistError]:
        for error in self.errors:
            if isinstance(error, FanoutPersistError):
                return error
        return None


class SubmissionGuard:
    """
    In-flight flag per buyer session.

    Advisory and process-local: it stops double-submits from the same
    session, not duplicate requests replayed by the network.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._in_flight = set()

    def is_active(self, key) -> bool:
        with self._lock:
            return str(key) in self._in_flight

    def acquire(self, key) -> bool:
        with self._lock:
            if str(key) in self._in_flight:
                return False
            self._in_flight.add(str(key))
            return True

    def release(self, key) -> None:
        with self._lock:
            self._in_flight.discard(str(key))

    @contextmanager
    def hold(self, key):
        """Raise SubmissionInProgressError when ``key`` already has a checkout running."""
        if not self.acquire(key):
            logger.info(f"[CHECKOUT] Duplicate submission suppressed for {key}")
            raise SubmissionInProgressError()
        try:
            yield
        finally:
            self.release(key)


def validate_checkout(lines: Sequence, buyer: BuyerSnapshot, payment_method: str) -> str:
    """Reject the attempt before anything is written. Returns the normalized payment method."""
    if not lines:
        raise ValidationError('Your cart is empty.')
    if not buyer.address or not str(buyer.address).strip():
        raise ValidationError('Please add a delivery address before placing your order.')
    try:
        return normalize_payment_method(payment_method)
    except ValueError as e:
        raise ValidationError(str(e))


def _insert_order_header(session: Session, order: Order) -> Order:
    session.add(order)
    session.commit()
    return order


def _insert_order_items(session: Session, items: List[OrderItem]) -> None:
    session.add_all(items)
    session.commit()


class OrderFanoutWriter:
    """Persist an order header and its per-seller item rows."""

    def __init__(self, session: Session):
        self.session = session

    def submit(
        self,
        lines: Sequence,
        pricing: PricingResult,
        buyer: BuyerSnapshot,
        payment_method: str
    ) -> CheckoutAttempt:
        """
        Write the order for ``lines``.

        Returns:
            CheckoutAttempt in ITEMS_WRITTEN, or ITEMS_WRITE_FAILED when the
            header exists but its items could not be saved.

        Raises:
            ValidationError: empty cart, no address, unknown payment method
            HeaderPersistError: the header insert failed (nothing written)
        """
        method = validate_checkout(lines, buyer, payment_method)
        attempt = CheckoutAttempt(payment_method=method, pricing=pricing)
        attempt.transition(CheckoutState.SUBMITTING)

        first = lines[0]
        order = Order(
            buyer_id=buyer.buyer_id,
            total_amount=pricing.total,
            item_count=sum(int(line.quantity) for line in lines),
            summary_title=first.title,
            summary_image=first.image or None,
            payment_method=method,
            status=INITIAL_STATUS,
        )

        try:
            _insert_order_header(self.session, order)
        except SQLAlchemyError as e:
            self.session.rollback()
            attempt.transition(CheckoutState.IDLE)
            logger.error(f"[CHECKOUT] Order header insert failed: {e}")
            raise HeaderPersistError() from e

        attempt.order_id = order.id
        attempt.total_amount = order.total_amount
        attempt.transition(CheckoutState.ORDER_CREATED)
        logger.info(f"[CHECKOUT] Order #{order.id} created: total={order.total_amount} method={method}")

        items = self._build_items(order.id, lines, buyer, method)
        attempt.items_dropped = len(lines) - len(items)
        if attempt.items_dropped:
            logger.warning(
                f"[CHECKOUT] Order #{order.id}: {attempt.items_dropped} line(s) without seller not fanned out"
            )

        try:
            if items:
                _insert_order_items(self.session, items)
        except SQLAlchemyError as e:
            self.session.rollback()
            error = FanoutPersistError(order.id)
            attempt.errors.append(error)
            attempt.transition(CheckoutState.ITEMS_WRITE_FAILED)
            logger.error(f"[CHECKOUT] Order #{order.id} item fan-out failed, header left without items: {e}")
            self._flag_items_missing(order.id)
            return attempt

        attempt.items_written = len(items)
        attempt.transition(CheckoutState.ITEMS_WRITTEN)
        return attempt

    @staticmethod
    def _build_items(order_id: int, lines: Sequence, buyer: BuyerSnapshot, method: str) -> List[OrderItem]:
        return [
            OrderItem(
                order_id=order_id,
                seller_id=line.seller_id,
                product_id=str(line.product_id),
                title=line.title,
                image=line.image or None,
                qty=int(line.quantity),
                unit_price=int(line.unit_price),
                shipping_fee=0,
                buyer_name=buyer.name,
                buyer_address=buyer.address,
                payment_method=method,
                status=INITIAL_STATUS,
            )
            for line in lines
            if line.seller_id
        ]

    def _flag_items_missing(self, order_id: int) -> None:
        """Compensating marker for reconciliation tooling (best-effort)."""
        try:
            self.session.query(Order).filter(Order.id == order_id).update(
                {Order.items_missing: True}, synchronize_session=False
            )
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"[CHECKOUT] Could not flag order #{order_id} as missing items: {e}")
