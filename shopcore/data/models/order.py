# shopcore/data/models/order.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric, JSON, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from shopcore.data.database import Base


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), nullable=False, index=True)
    order_number = Column(String(30), nullable=False)

    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True)
    session_id = Column(String(100), nullable=True)
    customer_email = Column(String(255), nullable=True)

    status = Column(String(20), nullable=False, default="pending")
    payment_status = Column(String(20), nullable=False, default="pending")
    payment_method = Column(String(50), nullable=False)
    payment_reference = Column(String(120), nullable=True, index=True)
    idempotency_key = Column(String(100), nullable=True)

    currency = Column(String(3), nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)
    shipping_cost = Column(Numeric(12, 2), nullable=False, default=0)
    total_amount = Column(Numeric(12, 2), nullable=False)

    shipping_address = Column(JSON, nullable=True)
    billing_address = Column(JSON, nullable=True)
    customer_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    fulfilled_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship("OrderItemModel", back_populates="order", order_by="OrderItemModel.id")
    payments = relationship("OrderPaymentModel", back_populates="order", order_by="OrderPaymentModel.id")

    __table_args__ = (
        UniqueConstraint("tenant_id", "order_number", name="u_order_tenant_number"),
        UniqueConstraint("shop_id", "idempotency_key", name="u_order_shop_idempotency"),
    )
