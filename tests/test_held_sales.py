"""POS held sales: numbered holds that reserve stock until retrieved, deleted or expired."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from shopcore.data.models import HeldSaleModel, InventoryLocationModel
from shopcore.domain.errors import InsufficientStock, NotFound, OrderStateError
from shopcore.domain.schemas import HeldSaleItemIn
from shopcore.services.held_sale_service import HeldSaleService
from tests.conftest import make_product


@pytest.fixture()
def held_sales(db):
    return HeldSaleService(db)


def reserved(db) -> int:
    location = db.execute(select(InventoryLocationModel)).scalar_one()
    db.refresh(location)
    return location.reserved_quantity


class TestHold:
    def test_hold_reserves_stock_and_numbers_sequentially(self, db, held_sales, shop_setup):
        items = [HeldSaleItemIn(variant_id=shop_setup.product.id, quantity=2)]

        first = held_sales.hold(shop_setup.shop.id, items, notes="table 4")
        second = held_sales.hold(shop_setup.shop.id, items)

        assert (first.hold_reference, second.hold_reference) == ("HOLD-001", "HOLD-002")
        assert reserved(db) == 4
        assert first.items[0]["base_quantity"] == 2
        assert first.items[0]["inventory_location_id"] is not None

    def test_hold_with_packaging_reserves_base_units(self, db, held_sales, shop_setup):
        held = held_sales.hold(
            shop_setup.shop.id,
            [HeldSaleItemIn(variant_id=shop_setup.product.id, quantity=1, packaging_type_id=shop_setup.box.id)],
        )

        assert held.items[0]["base_quantity"] == 6
        assert reserved(db) == 6

    def test_insufficient_stock_creates_nothing(self, db, held_sales, shop_setup):
        with pytest.raises(InsufficientStock):
            held_sales.hold(shop_setup.shop.id, [HeldSaleItemIn(variant_id=shop_setup.product.id, quantity=11)])

        assert reserved(db) == 0
        assert db.execute(select(HeldSaleModel)).first() is None

    def test_untracked_product_not_reserved(self, db, held_sales, shop_setup):
        digital = make_product(db, shop_setup.shop, sku="EBOOK", stock=None, track_stock=False)
        db.commit()

        held = held_sales.hold(shop_setup.shop.id, [HeldSaleItemIn(variant_id=digital.id, quantity=5)])

        assert held.items[0]["inventory_location_id"] is None

    def test_offline_product_can_be_held(self, db, held_sales, shop_setup):
        shop_setup.product.is_available_online = False
        db.commit()

        held = held_sales.hold(shop_setup.shop.id, [HeldSaleItemIn(variant_id=shop_setup.product.id, quantity=1)])

        assert held.hold_reference == "HOLD-001"

    def test_unknown_customer(self, held_sales, shop_setup):
        with pytest.raises(NotFound):
            held_sales.hold(
                shop_setup.shop.id, [HeldSaleItemIn(variant_id=shop_setup.product.id, quantity=1)], customer_id=999
            )


class TestRetrieve:
    def test_retrieve_once(self, db, held_sales, shop_setup):
        held = held_sales.hold(shop_setup.shop.id, [HeldSaleItemIn(variant_id=shop_setup.product.id, quantity=2)])

        retrieved = held_sales.retrieve(shop_setup.shop.id, held.id)

        assert retrieved.retrieved_at is not None
        assert reserved(db) == 2
        assert held_sales.list_active(shop_setup.shop.id) == []
        with pytest.raises(OrderStateError):
            held_sales.retrieve(shop_setup.shop.id, held.id)

    def test_expired_hold_cannot_be_retrieved(self, db, held_sales, shop_setup):
        held = held_sales.hold(shop_setup.shop.id, [HeldSaleItemIn(variant_id=shop_setup.product.id, quantity=1)])
        held.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
        db.commit()

        with pytest.raises(OrderStateError):
            held_sales.retrieve(shop_setup.shop.id, held.id)


class TestRelease:
    def test_release_returns_stock(self, db, held_sales, shop_setup):
        held = held_sales.hold(shop_setup.shop.id, [HeldSaleItemIn(variant_id=shop_setup.product.id, quantity=3)])

        held_sales.release(shop_setup.shop.id, held.id)

        assert reserved(db) == 0
        with pytest.raises(NotFound):
            held_sales.get(shop_setup.shop.id, held.id)

    def test_cleanup_expired(self, db, held_sales, shop_setup):
        item = [HeldSaleItemIn(variant_id=shop_setup.product.id, quantity=1)]
        first = held_sales.hold(shop_setup.shop.id, item)
        second = held_sales.hold(shop_setup.shop.id, item)

        released = held_sales.cleanup_expired(now=datetime.now(timezone.utc) + timedelta(days=2))

        assert released == 2
        assert reserved(db) == 0
        assert {first.hold_reference, second.hold_reference} == {"HOLD-001", "HOLD-002"}

    def test_cleanup_keeps_active_holds(self, db, held_sales, shop_setup):
        held_sales.hold(shop_setup.shop.id, [HeldSaleItemIn(variant_id=shop_setup.product.id, quantity=1)])

        assert held_sales.cleanup_expired() == 0
        assert reserved(db) == 1
        assert len(held_sales.list_active(shop_setup.shop.id)) == 1
