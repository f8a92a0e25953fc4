# shopcore/data/models/tenant.py
from sqlalchemy import Column, Integer, String, Boolean, Numeric, ForeignKey
from sqlalchemy.orm import relationship

from shopcore.data.database import Base


class TenantModel(Base):
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    shops = relationship("ShopModel", back_populates="tenant")


class ShopModel(Base):
    __tablename__ = "shops"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    currency = Column(String(3), nullable=False, default="NGN")

    # reguly cenowe sklepu
    vat_enabled = Column(Boolean, nullable=False, default=False)
    vat_rate = Column(Numeric(5, 2), nullable=False, default=0)
    shipping_fee = Column(Numeric(12, 2), nullable=False, default=0)
    free_shipping_threshold = Column(Numeric(12, 2), nullable=True)
    discount_percent = Column(Numeric(5, 2), nullable=False, default=0)

    allow_overpayment = Column(Boolean, nullable=False, default=False)

    tenant = relationship("TenantModel", back_populates="shops")
