# shopcore/repos/catalog_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from shopcore.data.models.catalog import (
    ProductVariantModel,
    ProductPackagingTypeModel,
    ServiceVariantModel,
    ServiceAddonModel,
)


class CatalogRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_product_variant(self, tenant_id: int, variant_id: int) -> ProductVariantModel | None:
        return self.db.execute(
            select(ProductVariantModel).where(
                ProductVariantModel.tenant_id == tenant_id,
                ProductVariantModel.id == variant_id,
            )
        ).scalar_one_or_none()

    def get_packaging_type(
        self, tenant_id: int, variant_id: int, packaging_type_id: int
    ) -> ProductPackagingTypeModel | None:
        return self.db.execute(
            select(ProductPackagingTypeModel).where(
                ProductPackagingTypeModel.tenant_id == tenant_id,
                ProductPackagingTypeModel.product_variant_id == variant_id,
                ProductPackagingTypeModel.id == packaging_type_id,
            )
        ).scalar_one_or_none()

    def get_service_variant(self, tenant_id: int, variant_id: int) -> ServiceVariantModel | None:
        return self.db.execute(
            select(ServiceVariantModel).where(
                ServiceVariantModel.tenant_id == tenant_id,
                ServiceVariantModel.id == variant_id,
            )
        ).scalar_one_or_none()

    def get_addons(self, tenant_id: int, service_id: int, addon_ids: list[int]) -> dict[int, ServiceAddonModel]:
        if not addon_ids:
            return {}
        rows = self.db.execute(
            select(ServiceAddonModel).where(
                ServiceAddonModel.tenant_id == tenant_id,
                ServiceAddonModel.service_id == service_id,
                ServiceAddonModel.id.in_(addon_ids),
            )
        ).scalars().all()
        return {a.id: a for a in rows}
