# shopcore/data/models/order_payment.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from shopcore.data.database import Base


class OrderPaymentModel(Base):
    """Append-only: wpisy sie nie zmienia i nie kasuje, zwrot to nowy wpis z ujemna kwota."""

    __tablename__ = "order_payments"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), nullable=False)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)

    kind = Column(String(20), nullable=False, default="payment")
    status = Column(String(20), nullable=False, default="completed")
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    payment_method = Column(String(50), nullable=False)
    reference_number = Column(String(120), nullable=True)

    gateway = Column(String(50), nullable=True)
    gateway_reference = Column(String(120), nullable=True)
    gateway_fee = Column(Numeric(12, 2), nullable=True)

    refund_of_id = Column(Integer, ForeignKey("order_payments.id"), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    order = relationship("OrderModel", back_populates="payments")

    __table_args__ = (
        UniqueConstraint("tenant_id", "gateway", "gateway_reference", name="u_payment_gateway_reference"),
    )
