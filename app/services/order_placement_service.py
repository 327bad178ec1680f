"""
Place order: pricing, order fan-out and payment branch in one call.
"""
import logging
from datetime import datetime
from typing import Optional, Tuple, Callable

from sqlalchemy.orm import Session

from app.exceptions import MarketplaceError, NetworkError
from app.services.checkout_service import (
    BuyerSnapshot, CheckoutAttempt, CheckoutState, OrderFanoutWriter, SubmissionGuard
)
from app.services.payment_branch_service import CheckoutOutcome, PaymentBranchController
from app.services.pricing_service import calculate_pricing
from app.services.voucher_service import get_eligible_vouchers, select_voucher

logger = logging.getLogger(__name__)

# One guard per process; keyed by buyer session
submission_guard = SubmissionGuard()


def _record(outcome_label: str) -> None:
    from app.blueprints.metrics import checkout_attempts_total
    checkout_attempts_total.labels(outcome=outcome_label).inc()


def place_order(
    session: Session,
    cart,
    buyer: BuyerSnapshot,
    payment_method: str,
    gateway,
    voucher_id=None,
    guard: Optional[SubmissionGuard] = None,
    url_opener: Optional[Callable[[str], object]] = None,
    continue_on_fanout_failure: bool = True,
    now: Optional[datetime] = None
) -> Tuple[CheckoutAttempt, CheckoutOutcome]:
    """
    Turn the buyer's cart into an order.

    Args:
        session: SQLAlchemy session
        cart: CartStore of the buyer
        buyer: name/address snapshot copied onto the order items
        payment_method: 'cod' or 'online'
        gateway: payment gateway client (used for 'online' only)
        voucher_id: voucher picked by the buyer; ignored when not eligible
        guard: in-flight guard (defaults to the process-wide one)
        url_opener: optional redirect opener for online payments
        continue_on_fanout_failure: keep going to the payment branch when the
            header was written but its items were not

    Returns:
        (attempt, outcome)

    Raises:
        ValidationError, SubmissionInProgressError, HeaderPersistError,
        GatewaySessionError, FanoutPersistError (only when not continuing),
        NetworkError for anything unexpected
    """
    guard = guard or submission_guard
    guard_key = buyer.buyer_id or cart.owner

    with guard.hold(guard_key):
        try:
            lines = cart.lines
            eligible = get_eligible_vouchers(session, cart.seller_id, now)
            voucher = select_voucher(eligible, voucher_id)
            pricing = calculate_pricing(lines, voucher)

            attempt = OrderFanoutWriter(session).submit(lines, pricing, buyer, payment_method)

            if attempt.state == CheckoutState.ITEMS_WRITE_FAILED:
                from app.blueprints.metrics import order_fanout_failures_total
                order_fanout_failures_total.inc()
                if not continue_on_fanout_failure:
                    raise attempt.fanout_error
            else:
                attempt.transition(CheckoutState.COMPLETED)

            controller = PaymentBranchController(gateway, url_opener)
            outcome = controller.settle(attempt, cart)
        except MarketplaceError as e:
            _record(type(e).__name__)
            raise
        except Exception as e:
            logger.exception(f"[CHECKOUT] Unexpected error placing order: {e}")
            _record(NetworkError.__name__)
            raise NetworkError() from e

    _record(outcome.kind)
    return attempt, outcome
