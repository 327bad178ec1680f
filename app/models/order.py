"""Order header model."""
from sqlalchemy import Column, BigInteger, Integer, String, Text, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, BigIntPK
import enum


class PaymentMethod(str, enum.Enum):
    """Payment methods offered at checkout."""
    COD = 'cod'
    ONLINE = 'online'


def normalize_payment_method(value) -> str:
    """
    Normalize payment method value to string for DB storage.

    Raises:
        ValueError: If value is not 'cod' or 'online'
    """
    if isinstance(value, PaymentMethod):
        return value.value
    normalized = str(value or '').strip().lower()
    if normalized in (PaymentMethod.COD.value, PaymentMethod.ONLINE.value):
        return normalized
    raise ValueError(f"Invalid payment method: {value}. Must be 'cod' or 'online'.")


class Order(Base):
    """
    Order header shared by every seller involved in one checkout.

    ``status`` is free text written by several independent actors (seller
    workflow, courier webhook); it is only mapped to a canonical value when
    read.
    """

    __tablename__ = 'orders'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    buyer_id = Column(String(64), nullable=True, index=True)
    total_amount = Column(BigInteger, nullable=False, default=0)
    item_count = Column(Integer, nullable=False, default=0)
    summary_title = Column(String(255), nullable=True)
    summary_image = Column(Text, nullable=True)
    payment_method = Column(String(16), nullable=False, default=PaymentMethod.COD.value)
    status = Column(String(64), nullable=True, default='Pending')
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)

    # Owned by the payment gateway webhook, never written by checkout
    payment_status = Column(String(32), nullable=False, default='unpaid', server_default='unpaid')

    # Courier hand-off (set when a seller marks the order shipped)
    tracking_id = Column(String(128), nullable=True)
    tracking_share_link = Column(Text, nullable=True)

    # Set when the item fan-out failed after the header was committed
    items_missing = Column(Boolean, nullable=False, default=False, server_default='false')

    # Relationships
    items = relationship('OrderItem', back_populates='order', order_by='OrderItem.id')

    def __repr__(self):
        return f"<Order(id={self.id}, total={self.total_amount}, status={self.status})>"
