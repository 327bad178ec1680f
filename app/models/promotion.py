"""Promotion model (vouchers live here with type='voucher')."""
from sqlalchemy import Column, String, Numeric, DateTime
from sqlalchemy.sql import func
from app.database import Base, BigIntPK
import enum


class DiscountType(str, enum.Enum):
    """How a voucher's discount_value is interpreted."""
    PERCENTAGE = 'percentage'
    FIXED = 'fixed'


class Promotion(Base):
    """
    Seller or platform promotion.

    Managed by seller/admin tooling; checkout only reads rows with
    type='voucher' and status='active'. ``min_purchase`` and
    ``max_discount`` are stored but not applied anywhere yet.
    """

    __tablename__ = 'promotion'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    seller_id = Column(String(64), nullable=True, index=True)  # NULL = platform-wide
    name = Column(String(255), nullable=True)
    code = Column(String(64), nullable=True)
    type = Column(String(32), nullable=False, default='voucher')
    discount_type = Column(String(16), nullable=False, default=DiscountType.PERCENTAGE.value)
    discount_value = Column(Numeric(12, 2), nullable=False, default=0)
    min_purchase = Column(Numeric(12, 2), nullable=True)
    max_discount = Column(Numeric(12, 2), nullable=True)
    status = Column(String(32), nullable=False, default='active')
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<Promotion(id={self.id}, code={self.code}, type={self.type}, status={self.status})>"
