# shopcore/data/models/held_sale.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, JSON, Text, UniqueConstraint

from shopcore.data.database import Base


class HeldSaleModel(Base):
    __tablename__ = "held_sales"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), nullable=False, index=True)
    hold_reference = Column(String(30), nullable=False)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True)

    # [{variant_id, packaging_type_id, quantity, base_quantity, inventory_location_id}]
    items = Column(JSON, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    expires_at = Column(DateTime(timezone=True), nullable=False)
    retrieved_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (UniqueConstraint("shop_id", "hold_reference", name="u_held_sale_reference"),)
