# shopcore/services/order_service.py
from datetime import date, datetime, timezone
from typing import Dict, Any

from sqlalchemy.orm import Session

from shopcore.data.models.order import OrderModel
from shopcore.data.models.tenant import ShopModel
from shopcore.domain.enums import OrderStatus
from shopcore.domain.errors import NotFound, OrderStateError
from shopcore.domain.money import quantize
from shopcore.domain.schemas import OrderItemOut
from shopcore.repos.order_repo import OrderRepo
from shopcore.repos.shop_repo import ShopRepo
from shopcore.services.inventory_service import InventoryService
from shopcore.services.payment_ledger import PaymentLedger
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)

COD_METHOD = "cash_on_delivery"


def next_order_number(db: Session, tenant_id: int, today: date | None = None) -> str:
    """ORD-YYYYMMDD-NNNN, licznik per tenant per dzien. Lock na wierszu tenanta serializuje generowanie."""
    today = today or datetime.now(timezone.utc).date()
    ShopRepo(db).lock_tenant(tenant_id)
    prefix = f"ORD-{today:%Y%m%d}-"
    last = OrderRepo(db).last_order_number(tenant_id, prefix)
    sequence = int(last.rsplit("-", 1)[1]) + 1 if last else 1
    return f"{prefix}{sequence:04d}"


class OrderService:
    """
    Serwis odpowiedzialny za domene zamowien po checkoucie.
    Query: get_order. Commands: cancel (zwalnia rezerwacje), fulfil (zdejmuje ze stanu).
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrderRepo(db)
        self.shops = ShopRepo(db)
        self.inventory = InventoryService(db)
        self.ledger = PaymentLedger(db)

    def get_shop(self, shop_id: int) -> ShopModel:
        shop = self.shops.get_shop(shop_id)
        if not shop:
            raise NotFound(f"Shop {shop_id} not found")
        return shop

    def get_order(self, shop_id: int, order_id: int) -> OrderModel:
        shop = self.get_shop(shop_id)
        order = self.repo.get_order(shop.tenant_id, shop.id, order_id)
        if not order:
            raise NotFound(f"Order {order_id} not found")
        return order

    def to_dict(self, order: OrderModel) -> Dict[str, Any]:
        paid = self.ledger.paid_total(order)
        return {
            "id": order.id,
            "order_number": order.order_number,
            "shop_id": order.shop_id,
            "customer_id": order.customer_id,
            "status": order.status,
            "payment_status": order.payment_status,
            "payment_method": order.payment_method,
            "payment_reference": order.payment_reference,
            "currency": order.currency,
            "subtotal": quantize(order.subtotal),
            "discount_amount": quantize(order.discount_amount),
            "tax_amount": quantize(order.tax_amount),
            "shipping_cost": quantize(order.shipping_cost),
            "total_amount": quantize(order.total_amount),
            "paid_amount": paid,
            "outstanding_balance": self.ledger.outstanding_balance(order),
            "items": [OrderItemOut.model_validate(i) for i in self.repo.get_items(order.id)],
            "created_at": order.created_at,
        }

    def cancel(self, shop_id: int, order_id: int) -> OrderModel:
        order = self.get_order(shop_id, order_id)
        try:
            order = self.repo.lock_order(order)
            if not OrderStatus(order.status).can_cancel():
                raise OrderStateError(f"Order {order.order_number} cannot be cancelled in status {order.status}")

            for item in self.repo.get_items(order.id):
                if item.inventory_location_id:
                    self.inventory.release(
                        order.tenant_id, item.inventory_location_id, item.base_quantity, reference=order.order_number
                    )

            order.status = OrderStatus.CANCELLED.value
            order.cancelled_at = datetime.now(timezone.utc)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Order {order.order_number} cancelled, reservations released")
        return order

    def fulfil(self, shop_id: int, order_id: int) -> OrderModel:
        order = self.get_order(shop_id, order_id)
        try:
            order = self.repo.lock_order(order)
            # COD placi przy odbiorze, wiec moze byc realizowane jako pending
            cod_pending = order.status == OrderStatus.PENDING.value and order.payment_method == COD_METHOD
            if order.status != OrderStatus.CONFIRMED.value and not cod_pending:
                raise OrderStateError(f"Order {order.order_number} cannot be fulfilled in status {order.status}")

            for item in self.repo.get_items(order.id):
                if item.inventory_location_id:
                    self.inventory.fulfil(
                        order.tenant_id, item.inventory_location_id, item.base_quantity, reference=order.order_number
                    )

            order.status = OrderStatus.FULFILLED.value
            order.fulfilled_at = datetime.now(timezone.utc)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Order {order.order_number} fulfilled")
        return order
