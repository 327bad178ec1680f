"""Payment gateway client: hosted checkout sessions for online payment."""
import logging
from typing import Any, Dict, Optional

import requests
from flask import current_app

from app.exceptions import GatewaySessionError

logger = logging.getLogger(__name__)


class PaymentGatewayClient:
    """Client for the gateway's create-checkout-session endpoint."""

    def __init__(self, session_url: Optional[str] = None, api_key: Optional[str] = None, timeout: int = 10):
        """
        Initialize gateway client.

        Args:
            session_url: Endpoint that creates a checkout session for an order
            api_key: Bearer token sent with every request
            timeout: Request timeout in seconds
        """
        self.session_url = session_url
        self.timeout = timeout
        self.headers = {'Content-Type': 'application/json'}
        if api_key:
            self.headers['Authorization'] = f'Bearer {api_key}'

    @classmethod
    def from_config(cls, config=None) -> 'PaymentGatewayClient':
        config = config or current_app.config
        return cls(
            session_url=config.get('PAYMENT_GATEWAY_SESSION_URL'),
            api_key=config.get('PAYMENT_GATEWAY_API_KEY'),
            timeout=config.get('PAYMENT_GATEWAY_TIMEOUT', 10),
        )

    def create_checkout_session(self, order_id) -> str:
        """
        Request a hosted checkout session for an order.

        Args:
            order_id: ID of the already persisted order

        Returns:
            The checkout URL the buyer must be redirected to

        Raises:
            GatewaySessionError: On transport errors, HTTP errors or a response
                without ``checkout_url``. Not retried.
        """
        if not self.session_url:
            logger.error("[GATEWAY] PAYMENT_GATEWAY_SESSION_URL is not configured")
            raise GatewaySessionError(order_id=order_id)

        payload: Dict[str, Any] = {'order_id': order_id}
        logger.info(f"[GATEWAY] Creating checkout session for order #{order_id}")

        try:
            response = requests.post(self.session_url, json=payload, headers=self.headers, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.HTTPError as e:
            logger.error(f"[GATEWAY] Error creating checkout session: {e.response.text if e.response is not None else e}")
            raise GatewaySessionError(order_id=order_id) from e
        except (requests.RequestException, ValueError) as e:
            logger.error(f"[GATEWAY] Unexpected error: {str(e)}")
            raise GatewaySessionError(order_id=order_id) from e

        checkout_url = (data or {}).get('checkout_url')
        if not checkout_url:
            logger.error(f"[GATEWAY] Response without checkout_url for order #{order_id}: {data}")
            raise GatewaySessionError(order_id=order_id)

        logger.info(f"[GATEWAY] Checkout session ready for order #{order_id}")
        return checkout_url
