# shopcore/repos/cart_repo.py
from datetime import datetime

from sqlalchemy import select, delete
from sqlalchemy.orm import Session

from shopcore.data.models.cart import CartModel
from shopcore.data.models.cart_item import CartItemModel
from shopcore.domain.values import OwnerKey


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart_for_owner(self, tenant_id: int, shop_id: int, owner: OwnerKey) -> CartModel | None:
        stmt = select(CartModel).where(
            CartModel.tenant_id == tenant_id,
            CartModel.shop_id == shop_id,
        )
        if owner.customer_id is not None:
            stmt = stmt.where(CartModel.customer_id == owner.customer_id)
        else:
            stmt = stmt.where(CartModel.session_id == owner.session_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def create_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.db.flush()
        return cart

    def get_cart_items(self, cart_id: int) -> list[CartItemModel]:
        return list(
            self.db.execute(
                select(CartItemModel).where(CartItemModel.cart_id == cart_id).order_by(CartItemModel.id)
            ).scalars().all()
        )

    def get_cart_item(self, cart_id: int, item_id: int) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.id == item_id,
            )
        ).scalar_one_or_none()

    def find_matching_item(self, cart_id: int, sellable_key: str, config_key: str) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.sellable_key == sellable_key,
                CartItemModel.config_key == config_key,
            )
        ).scalar_one_or_none()

    def add_cart_item(self, item: CartItemModel) -> CartItemModel:
        self.db.add(item)
        self.db.flush()
        return item

    def delete_cart_item(self, item: CartItemModel) -> None:
        self.db.delete(item)
        self.db.flush()

    def clear_items(self, cart_id: int) -> int:
        result = self.db.execute(
            delete(CartItemModel)
            .where(CartItemModel.cart_id == cart_id)
            .execution_options(synchronize_session=False)
        )
        self.db.expire_all()
        return result.rowcount

    def delete_cart(self, cart: CartModel) -> None:
        self.db.delete(cart)
        self.db.flush()

    def get_expired_carts(self, now: datetime) -> list[CartModel]:
        return list(
            self.db.execute(select(CartModel).where(CartModel.expires_at < now)).scalars().all()
        )

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
