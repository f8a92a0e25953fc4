# shopcore/data/models/order_item.py
from sqlalchemy import Column, Integer, ForeignKey, Numeric, String, JSON, CheckConstraint
from sqlalchemy.orm import relationship

from shopcore.data.database import Base
from shopcore.data.models.cart_item import SELLABLE_REF_CHECK


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)

    sellable_kind = Column(String(20), nullable=False)
    product_variant_id = Column(Integer, ForeignKey("product_variants.id"), nullable=True)
    service_variant_id = Column(Integer, ForeignKey("service_variants.id"), nullable=True)
    packaging_type_id = Column(Integer, ForeignKey("product_packaging_types.id"), nullable=True)
    # lokacja, z ktorej zarezerwowano towar (tylko produkty sledzone)
    inventory_location_id = Column(Integer, ForeignKey("inventory_locations.id"), nullable=True)

    name = Column(String(255), nullable=False)
    sku = Column(String(100), nullable=True)
    quantity = Column(Integer, nullable=False)
    base_quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total_amount = Column(Numeric(12, 2), nullable=False)
    metadata_json = Column("metadata", JSON, nullable=True)

    order = relationship("OrderModel", back_populates="items")

    __table_args__ = (
        CheckConstraint(SELLABLE_REF_CHECK, name="ck_order_item_sellable_ref"),
    )
