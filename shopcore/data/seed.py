# shopcore/data/seed.py
from decimal import Decimal

from shopcore.data.database import SessionLocal
from shopcore.data.models import (
    TenantModel,
    ShopModel,
    CustomerModel,
    ProductModel,
    ProductVariantModel,
    ProductPackagingTypeModel,
    ServiceModel,
    ServiceVariantModel,
    ServiceAddonModel,
    InventoryLocationModel,
)
from shopcore.repos.inventory_repo import InventoryRepo
from shopcore.services.inventory_service import InventoryService
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)


def seed():
    db = SessionLocal()
    try:
        # not forcing: only seed if empty
        if db.query(TenantModel).first():
            return

        tenant = TenantModel(name="Demo Tenant")
        db.add(tenant)
        db.flush()

        shop = ShopModel(
            tenant_id=tenant.id,
            name="Demo Shop",
            currency="NGN",
            vat_enabled=True,
            vat_rate=Decimal("7.50"),
            shipping_fee=Decimal("1500.00"),
            free_shipping_threshold=Decimal("50000.00"),
        )
        db.add(shop)
        db.flush()

        db.add(CustomerModel(tenant_id=tenant.id, name="Ada Obi", email="ada@example.com"))

        product = ProductModel(tenant_id=tenant.id, shop_id=shop.id, name="Printer Paper", is_taxable=True)
        db.add(product)
        db.flush()
        variant = ProductVariantModel(
            tenant_id=tenant.id, product_id=product.id, sku="PAPER-A4", name="A4", price=Decimal("250.00")
        )
        db.add(variant)
        db.flush()
        db.add(
            ProductPackagingTypeModel(
                tenant_id=tenant.id,
                product_variant_id=variant.id,
                name="Ream",
                units_per_package=500,
                price=Decimal("4500.00"),
            )
        )

        location = InventoryRepo(db).create_location(
            InventoryLocationModel(tenant_id=tenant.id, shop_id=shop.id, product_variant_id=variant.id)
        )
        InventoryService(db).adjust(tenant.id, location.id, 5000, reference="seed")

        service = ServiceModel(tenant_id=tenant.id, shop_id=shop.id, name="Printing")
        db.add(service)
        db.flush()
        db.add(
            ServiceVariantModel(
                tenant_id=tenant.id,
                service_id=service.id,
                name="Colour A4",
                base_price=Decimal("100.00"),
                customer_materials_price=Decimal("80.00"),
                shop_materials_price=Decimal("150.00"),
            )
        )
        db.add(
            ServiceAddonModel(
                tenant_id=tenant.id, service_id=service.id, name="Binding", price=Decimal("500.00"), max_quantity=3
            )
        )

        db.commit()
        logger.info(f"Seeded tenant {tenant.id} with shop {shop.id}")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
