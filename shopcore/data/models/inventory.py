# shopcore/data/models/inventory.py
from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, CheckConstraint, UniqueConstraint,
)

from shopcore.data.database import Base


class InventoryLocationModel(Base):
    __tablename__ = "inventory_locations"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), nullable=False, index=True)
    product_variant_id = Column(Integer, ForeignKey("product_variants.id"), nullable=False, index=True)
    location_code = Column(String(50), nullable=False, default="main")

    # jednostki bazowe
    quantity = Column(Integer, nullable=False, default=0)
    reserved_quantity = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("shop_id", "product_variant_id", "location_code", name="u_location_variant"),
        CheckConstraint("reserved_quantity >= 0", name="ck_reserved_non_negative"),
        CheckConstraint("reserved_quantity <= quantity", name="ck_reserved_within_quantity"),
    )

    @property
    def available_quantity(self) -> int:
        return self.quantity - self.reserved_quantity


class StockMovementModel(Base):
    __tablename__ = "stock_movements"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), nullable=False)
    inventory_location_id = Column(Integer, ForeignKey("inventory_locations.id"), nullable=False, index=True)
    kind = Column(String(20), nullable=False)
    quantity = Column(Integer, nullable=False)
    quantity_before = Column(Integer, nullable=False)
    quantity_after = Column(Integer, nullable=False)
    reserved_before = Column(Integer, nullable=False)
    reserved_after = Column(Integer, nullable=False)
    reference = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
