"""Models package - exports all SQLAlchemy models."""
from app.models.order import Order, PaymentMethod, normalize_payment_method
from app.models.order_item import OrderItem
from app.models.promotion import Promotion, DiscountType

__all__ = [
    'Order', 'PaymentMethod', 'normalize_payment_method',
    'OrderItem',
    'Promotion', 'DiscountType',
]
