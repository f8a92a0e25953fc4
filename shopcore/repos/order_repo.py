# shopcore/repos/order_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from shopcore.data.models.order import OrderModel
from shopcore.data.models.order_item import OrderItemModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def add_item(self, item: OrderItemModel) -> OrderItemModel:
        self.db.add(item)
        return item

    def get_order(self, tenant_id: int, shop_id: int, order_id: int, lock: bool = False) -> OrderModel | None:
        stmt = select(OrderModel).where(
            OrderModel.tenant_id == tenant_id,
            OrderModel.shop_id == shop_id,
            OrderModel.id == order_id,
        )
        if lock:
            stmt = stmt.with_for_update()
        else:
            stmt = stmt.options(selectinload(OrderModel.items))
        return self.db.execute(stmt).scalar_one_or_none()

    def lock_order(self, order: OrderModel) -> OrderModel:
        return self.db.execute(
            select(OrderModel)
            .where(OrderModel.id == order.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one()

    def find_by_idempotency_key(self, tenant_id: int, shop_id: int, key: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(
                OrderModel.tenant_id == tenant_id,
                OrderModel.shop_id == shop_id,
                OrderModel.idempotency_key == key,
            )
        ).scalar_one_or_none()

    def find_by_payment_reference(self, tenant_id: int, reference: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(
                OrderModel.tenant_id == tenant_id,
                OrderModel.payment_reference == reference,
            )
        ).scalar_one_or_none()

    def find_by_order_number(self, tenant_id: int, order_number: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(
                OrderModel.tenant_id == tenant_id,
                OrderModel.order_number == order_number,
            )
        ).scalar_one_or_none()

    def last_order_number(self, tenant_id: int, prefix: str) -> str | None:
        return self.db.execute(
            select(OrderModel.order_number)
            .where(
                OrderModel.tenant_id == tenant_id,
                OrderModel.order_number.like(f"{prefix}%"),
            )
            .order_by(OrderModel.order_number.desc())
            .limit(1)
        ).scalar_one_or_none()

    def get_items(self, order_id: int) -> list[OrderItemModel]:
        return list(
            self.db.execute(
                select(OrderItemModel).where(OrderItemModel.order_id == order_id).order_by(OrderItemModel.id)
            ).scalars().all()
        )

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
