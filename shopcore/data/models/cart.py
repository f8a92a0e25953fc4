# shopcore/data/models/cart.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship

from shopcore.data.database import Base


class CartModel(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), nullable=False, index=True)

    # wlasciciel: albo klient albo token sesji goscia, nigdy oba
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True)
    session_id = Column(String(100), nullable=True)

    expires_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    items = relationship(
        "CartItemModel",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItemModel.id",
    )

    __table_args__ = (
        CheckConstraint(
            "(customer_id IS NOT NULL AND session_id IS NULL) OR (customer_id IS NULL AND session_id IS NOT NULL)",
            name="ck_cart_single_owner",
        ),
        UniqueConstraint("shop_id", "customer_id", name="u_cart_shop_customer"),
        UniqueConstraint("shop_id", "session_id", name="u_cart_shop_session"),
    )
