"""Order item model (one row per seller line)."""
from sqlalchemy import Column, BigInteger, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, BigIntPK


class OrderItem(Base):
    """
    Order item - fan-out row owned by a single seller.

    Buyer name and address are snapshots taken at checkout time so later
    address book edits do not rewrite shipped orders.
    """

    __tablename__ = 'order_items'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    order_id = Column(BigInteger, ForeignKey('orders.id'), nullable=False, index=True)
    seller_id = Column(String(64), nullable=False, index=True)
    product_id = Column(String(64), nullable=False)
    title = Column(String(255), nullable=True)
    image = Column(Text, nullable=True)
    qty = Column(Integer, nullable=False, default=1)
    unit_price = Column(BigInteger, nullable=False, default=0)
    shipping_fee = Column(BigInteger, nullable=False, default=0)
    buyer_name = Column(String(255), nullable=True)
    buyer_address = Column(Text, nullable=True)
    payment_method = Column(String(16), nullable=False)
    status = Column(String(64), nullable=True, default='Pending')
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    order = relationship('Order', back_populates='items')

    def __repr__(self):
        return f"<OrderItem(id={self.id}, order_id={self.order_id}, seller_id={self.seller_id}, qty={self.qty})>"
