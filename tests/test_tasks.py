from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from shopcore.data.models import CartModel, HeldSaleModel, InventoryLocationModel
from shopcore.domain.schemas import HeldSaleItemIn
from shopcore.domain.values import OwnerKey, SellableRef
from shopcore.services.cart_service import CartService
from shopcore.services.held_sale_service import HeldSaleService
from shopcore.tasks import expire


def test_expire_held_sales_task_releases_stock(db, session_factory, shop_setup, monkeypatch):
    monkeypatch.setattr(expire, "SessionLocal", session_factory)
    held = HeldSaleService(db).hold(
        shop_setup.shop.id, [HeldSaleItemIn(variant_id=shop_setup.product.id, quantity=3)]
    )
    held.expires_at = datetime.now(timezone.utc) - timedelta(minutes=5)
    db.commit()

    result = expire.expire_held_sales_task.delay()

    assert result.get() == 1
    assert db.execute(select(HeldSaleModel)).first() is None
    location = db.execute(select(InventoryLocationModel)).scalar_one()
    db.refresh(location)
    assert location.reserved_quantity == 0


def test_expire_carts_task(db, session_factory, shop_setup, monkeypatch):
    monkeypatch.setattr(expire, "SessionLocal", session_factory)
    CartService(db).add_item(shop_setup.shop.id, OwnerKey.session("gone"), SellableRef.product(shop_setup.product.id), 1)
    cart = db.execute(select(CartModel)).scalar_one()
    cart.expires_at = datetime.now(timezone.utc) - timedelta(days=1)
    db.commit()

    result = expire.expire_carts_task.delay()

    assert result.get() == 1
    db.expire_all()
    assert db.execute(select(CartModel)).first() is None
