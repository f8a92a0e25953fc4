# shopcore/data/models/cart_item.py
from sqlalchemy import Column, Integer, ForeignKey, Numeric, String, JSON, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship

from shopcore.data.database import Base

# dokladnie jedna referencja zgodna z dyskryminatorem
SELLABLE_REF_CHECK = (
    "(sellable_kind = 'product' AND product_variant_id IS NOT NULL AND service_variant_id IS NULL)"
    " OR "
    "(sellable_kind = 'service' AND service_variant_id IS NOT NULL AND product_variant_id IS NULL)"
)


class CartItemModel(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)

    sellable_kind = Column(String(20), nullable=False)
    product_variant_id = Column(Integer, ForeignKey("product_variants.id"), nullable=True)
    service_variant_id = Column(Integer, ForeignKey("service_variants.id"), nullable=True)
    sellable_key = Column(String(50), nullable=False)
    config_key = Column(String(255), nullable=False, default="")

    # w opakowaniach dla produktow
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)

    packaging_type_id = Column(Integer, ForeignKey("product_packaging_types.id"), nullable=True)
    material_option = Column(String(30), nullable=True)
    selected_addons = Column(JSON, nullable=True)

    cart = relationship("CartModel", back_populates="items")

    __table_args__ = (
        CheckConstraint(SELLABLE_REF_CHECK, name="ck_cart_item_sellable_ref"),
        CheckConstraint("quantity >= 1", name="ck_cart_item_quantity"),
        UniqueConstraint("cart_id", "sellable_key", "config_key", name="u_cart_item_configuration"),
    )
