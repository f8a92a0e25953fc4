"""Order lifecycle after checkout: cancel and fulfil move reserved stock."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from shopcore.data.models import InventoryLocationModel, StockMovementModel
from shopcore.domain.errors import NotFound, OrderStateError
from shopcore.domain.schemas import AddressIn, CheckoutIn
from shopcore.domain.values import OwnerKey, SellableRef
from shopcore.services.cart_service import CartService
from shopcore.services.checkout_service import CheckoutService
from shopcore.services.order_service import OrderService, next_order_number
from tests.conftest import make_shop, place_order


@pytest.fixture()
def orders(db):
    return OrderService(db)


def checkout_order(db, payments, shop_setup, quantity=2, method="cash_on_delivery") -> int:
    owner = OwnerKey.customer(shop_setup.customer.id)
    CartService(db).add_item(shop_setup.shop.id, owner, SellableRef.product(shop_setup.product.id), quantity)
    data = CheckoutIn(
        shipping_address=AddressIn(name="Ada Obi", line1="1 Marina Rd", city="Lagos", country="NG"),
        payment_method=method,
    )
    result = CheckoutService(db, payments).checkout(shop_setup.shop.id, owner, data)
    return result["order"]["id"]


def stock(db) -> tuple[int, int]:
    location = db.execute(select(InventoryLocationModel)).scalar_one()
    db.refresh(location)
    return location.quantity, location.reserved_quantity


class TestCancel:
    def test_cancel_releases_reservation(self, db, orders, payments, shop_setup):
        order_id = checkout_order(db, payments, shop_setup)
        assert stock(db) == (10, 2)

        order = orders.cancel(shop_setup.shop.id, order_id)

        assert order.status == "cancelled"
        assert order.cancelled_at is not None
        assert stock(db) == (10, 0)
        kinds = [m.kind for m in db.execute(select(StockMovementModel).order_by(StockMovementModel.id)).scalars()]
        assert kinds == ["reserve", "release"]

    def test_cancel_twice_rejected(self, db, orders, payments, shop_setup):
        order_id = checkout_order(db, payments, shop_setup)
        orders.cancel(shop_setup.shop.id, order_id)

        with pytest.raises(OrderStateError):
            orders.cancel(shop_setup.shop.id, order_id)

        assert stock(db) == (10, 0)

    def test_fulfilled_order_cannot_be_cancelled(self, db, orders, payments, shop_setup):
        order_id = checkout_order(db, payments, shop_setup)
        orders.fulfil(shop_setup.shop.id, order_id)

        with pytest.raises(OrderStateError):
            orders.cancel(shop_setup.shop.id, order_id)


class TestFulfil:
    def test_cash_on_delivery_fulfilled_while_pending(self, db, orders, payments, shop_setup):
        order_id = checkout_order(db, payments, shop_setup)

        order = orders.fulfil(shop_setup.shop.id, order_id)

        assert order.status == "fulfilled"
        assert stock(db) == (8, 0)

    def test_confirmed_order_fulfilled(self, db, orders, payments, shop_setup):
        order_id = checkout_order(db, payments, shop_setup, method="fakepay")
        order = orders.get_order(shop_setup.shop.id, order_id)
        orders.ledger.record_payment(order, order.total_amount, "bank_transfer")

        order = orders.fulfil(shop_setup.shop.id, order_id)

        assert order.status == "fulfilled"
        assert stock(db) == (8, 0)

    def test_unpaid_gateway_order_not_fulfilled(self, db, orders, payments, shop_setup):
        order_id = checkout_order(db, payments, shop_setup, method="fakepay")

        with pytest.raises(OrderStateError):
            orders.fulfil(shop_setup.shop.id, order_id)

        assert stock(db) == (10, 2)


class TestLookup:
    def test_order_of_other_shop_not_found(self, db, orders, shop_setup):
        order = place_order(db, shop_setup.shop)
        other = make_shop(db, tenant=shop_setup.shop.tenant, name="Branch")
        db.commit()

        with pytest.raises(NotFound):
            orders.get_order(other.id, order.id)

    def test_to_dict_reports_balance(self, db, orders, shop_setup):
        order = place_order(db, shop_setup.shop)
        orders.ledger.record_payment(order, Decimal("1200.00"), "cash")

        data = orders.to_dict(order)

        assert data["paid_amount"] == Decimal("1200.00")
        assert data["outstanding_balance"] == Decimal("3800.00")
        assert data["payment_status"] == "partial"

    def test_order_number_continues_sequence(self, db, shop_setup):
        place_order(db, shop_setup.shop, number="ORD-20260101-0007")

        number = next_order_number(db, shop_setup.shop.tenant_id, today=date(2026, 1, 1))

        assert number == "ORD-20260101-0008"
