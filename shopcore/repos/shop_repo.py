# shopcore/repos/shop_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from shopcore.data.models.tenant import ShopModel, TenantModel
from shopcore.data.models.customer import CustomerModel


class ShopRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_shop(self, shop_id: int) -> ShopModel | None:
        return self.db.get(ShopModel, shop_id)

    def lock_shop(self, shop_id: int) -> ShopModel | None:
        return self.db.execute(
            select(ShopModel).where(ShopModel.id == shop_id).with_for_update()
        ).scalar_one_or_none()

    def lock_tenant(self, tenant_id: int) -> TenantModel | None:
        return self.db.execute(
            select(TenantModel).where(TenantModel.id == tenant_id).with_for_update()
        ).scalar_one_or_none()

    def get_customer(self, tenant_id: int, customer_id: int) -> CustomerModel | None:
        return self.db.execute(
            select(CustomerModel).where(
                CustomerModel.tenant_id == tenant_id,
                CustomerModel.id == customer_id,
            )
        ).scalar_one_or_none()

    def customer_exists_elsewhere(self, tenant_id: int, customer_id: int) -> bool:
        customer = self.db.get(CustomerModel, customer_id)
        return customer is not None and customer.tenant_id != tenant_id
