# shopcore/data/models/catalog.py
from sqlalchemy import (
    Column, Integer, String, Boolean, Numeric, ForeignKey, CheckConstraint, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from shopcore.data.database import Base


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    is_taxable = Column(Boolean, nullable=False, default=False)
    track_stock = Column(Boolean, nullable=False, default=True)

    variants = relationship("ProductVariantModel", back_populates="product")


class ProductVariantModel(Base):
    __tablename__ = "product_variants"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    sku = Column(String(100), nullable=False)
    name = Column(String(200), nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    is_available_online = Column(Boolean, nullable=False, default=True)
    # w jednostkach bazowych
    max_order_quantity = Column(Integer, nullable=True)

    product = relationship("ProductModel", back_populates="variants")
    packaging_types = relationship("ProductPackagingTypeModel", back_populates="variant")

    __table_args__ = (UniqueConstraint("tenant_id", "sku", name="u_variant_tenant_sku"),)

    @property
    def display_name(self) -> str:
        if self.name:
            return f"{self.product.name} - {self.name}"
        return self.product.name


class ProductPackagingTypeModel(Base):
    __tablename__ = "product_packaging_types"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    product_variant_id = Column(Integer, ForeignKey("product_variants.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    units_per_package = Column(Integer, nullable=False, default=1)
    price = Column(Numeric(12, 2), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    variant = relationship("ProductVariantModel", back_populates="packaging_types")

    __table_args__ = (CheckConstraint("units_per_package >= 1", name="ck_packaging_units_positive"),)


class ServiceModel(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    is_available_online = Column(Boolean, nullable=False, default=True)

    variants = relationship("ServiceVariantModel", back_populates="service")
    addons = relationship("ServiceAddonModel", back_populates="service")


class ServiceVariantModel(Base):
    __tablename__ = "service_variants"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    base_price = Column(Numeric(12, 2), nullable=False)
    customer_materials_price = Column(Numeric(12, 2), nullable=True)
    shop_materials_price = Column(Numeric(12, 2), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_available_online = Column(Boolean, nullable=False, default=True)

    service = relationship("ServiceModel", back_populates="variants")

    @property
    def display_name(self) -> str:
        return f"{self.service.name} - {self.name}"


class ServiceAddonModel(Base):
    __tablename__ = "service_addons"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    max_quantity = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, nullable=False, default=True)

    service = relationship("ServiceModel", back_populates="addons")
