"""Payment-method branch that runs after the order rows are written."""
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from app.exceptions import BestEffortError, GatewaySessionError
from app.models import PaymentMethod
from app.services.checkout_service import CheckoutAttempt

logger = logging.getLogger(__name__)


@dataclass
class CheckoutOutcome:
    """
    What the buyer sees after placing an order.

    ``kind`` is 'placed' for cash on delivery and 'redirect' for online
    payment. ``warnings`` holds log-only problems that never reach the buyer.
    """
    kind: str
    order_id: int
    total: int
    payment_method: str
    checkout_url: Optional[str] = None
    cart_cleared: bool = False
    redirect_opened: Optional[bool] = None
    warnings: List[Exception] = field(default_factory=list)

    def to_dict(self):
        data = {
            'state': self.kind,
            'order_id': self.order_id,
            'total': self.total,
            'payment_method': self.payment_method,
            'cart_cleared': self.cart_cleared,
        }
        if self.checkout_url:
            data['checkout_url'] = self.checkout_url
        return data


class PaymentBranchController:
    """
    Branch on the payment method of a written order.

    Orders and items stay in their initial status here; payment confirmation
    arrives later through the gateway webhook.
    """

    def __init__(self, gateway, url_opener: Optional[Callable[[str], object]] = None):
        """
        Args:
            gateway: object with ``create_checkout_session(order_id) -> url``
            url_opener: optional callable that opens the redirect URL for the
                buyer; HTTP clients open it themselves so it is usually None
        """
        self.gateway = gateway
        self.url_opener = url_opener

    def settle(self, attempt: CheckoutAttempt, cart) -> CheckoutOutcome:
        if attempt.payment_method == PaymentMethod.ONLINE.value:
            return self._settle_online(attempt, cart)
        return self._settle_cod(attempt, cart)

    def _settle_cod(self, attempt: CheckoutAttempt, cart) -> CheckoutOutcome:
        cart.clear()
        logger.info(f"[CHECKOUT] Order #{attempt.order_id} placed (COD)")
        return CheckoutOutcome(
            kind='placed',
            order_id=attempt.order_id,
            total=attempt.total_amount,
            payment_method=attempt.payment_method,
            cart_cleared=True,
        )

    def _settle_online(self, attempt: CheckoutAttempt, cart) -> CheckoutOutcome:
        try:
            checkout_url = self.gateway.create_checkout_session(attempt.order_id)
        except GatewaySessionError:
            # Cart is preserved so the buyer can retry or switch to COD
            raise
        except Exception as e:
            logger.error(f"[GATEWAY] Checkout session failed for order #{attempt.order_id}: {e}")
            raise GatewaySessionError(order_id=attempt.order_id) from e

        cart.clear()
        outcome = CheckoutOutcome(
            kind='redirect',
            order_id=attempt.order_id,
            total=attempt.total_amount,
            payment_method=attempt.payment_method,
            checkout_url=checkout_url,
            cart_cleared=True,
        )

        if self.url_opener is not None:
            try:
                self.url_opener(checkout_url)
                outcome.redirect_opened = True
            except Exception as e:
                outcome.redirect_opened = False
                outcome.warnings.append(BestEffortError(f"Could not open payment page: {e}"))
                logger.warning(f"[CHECKOUT] Could not open redirect for order #{attempt.order_id}: {e}")

        return outcome
