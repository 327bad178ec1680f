"""Custom exceptions for the Furnihive checkout service."""


class MarketplaceError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv


class ValidationError(MarketplaceError):
    """Raised before any write when the checkout input is unusable (empty cart, no address)."""
    def __init__(self, message, payload=None):
        super().__init__(message, 400, payload)


class NotFoundError(MarketplaceError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class UnauthorizedError(MarketplaceError):
    """Raised when the caller is not logged in or lacks permission for an action."""
    def __init__(self, message="Unauthorized access", status_code=401):
        super().__init__(message, status_code)


class SubmissionInProgressError(MarketplaceError):
    """A checkout for this buyer session is already in flight."""
    def __init__(self, message="Your order is already being placed."):
        super().__init__(message, 409)


class HeaderPersistError(MarketplaceError):
    """The order header insert failed; nothing was written."""
    def __init__(self, message="Failed to create order.", payload=None):
        super().__init__(message, 503, {'retryable': True, **(payload or {})})


class FanoutPersistError(MarketplaceError):
    """The order item batch insert failed after the header was written."""
    def __init__(self, order_id, message=None):
        self.order_id = order_id
        super().__init__(
            message or f"Order #{order_id} was created but its items could not be saved.",
            500,
            {'order_id': order_id},
        )


class GatewaySessionError(MarketplaceError):
    """The payment gateway did not return a checkout session."""
    def __init__(self, message=None, order_id=None):
        self.order_id = order_id
        payload = {'fallback_payment_method': 'cod'}
        if order_id is not None:
            payload['order_id'] = order_id
        super().__init__(
            message or "Failed to start online payment. You can try COD instead.",
            502,
            payload,
        )


class BestEffortError(MarketplaceError):
    """A non-essential step failed (e.g. opening the payment redirect)."""
    def __init__(self, message):
        super().__init__(message, 200)


class NetworkError(MarketplaceError):
    """Catch-all for failures that fit no specific category."""
    def __init__(self, message="Something went wrong placing your order."):
        super().__init__(message, 503)
