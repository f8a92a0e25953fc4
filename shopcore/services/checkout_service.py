# shopcore/services/checkout_service.py
import uuid
from dataclasses import asdict, dataclass
from typing import Dict, Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shopcore.data.models.cart_item import CartItemModel
from shopcore.data.models.order import OrderModel
from shopcore.data.models.order_item import OrderItemModel
from shopcore.data.models.tenant import ShopModel
from shopcore.domain.enums import CheckoutState, SellableKind
from shopcore.domain.errors import CartInvalid
from shopcore.domain.schemas import CheckoutIn
from shopcore.domain.values import LineConfiguration, OwnerKey
from shopcore.repos.cart_repo import CartRepo
from shopcore.repos.order_repo import OrderRepo
from shopcore.services.cart_service import CartService
from shopcore.services.inventory_service import InventoryService, ReservationLine
from shopcore.services.order_service import OrderService, next_order_number
from shopcore.services.payment_service import PaymentService
from shopcore.services.pricing import compute_totals, price_line, PricedLine
from shopcore.services.sellables import Sellable, SellableResolver
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)

PAYMENT_NOT_INITIATED = "Payment could not be initiated, your order was saved. You can retry the payment."


@dataclass
class CheckoutLine:
    item: CartItemModel
    sellable: Sellable
    configuration: LineConfiguration
    base_quantity: int
    location_id: int | None = None
    priced: PricedLine | None = None


class CheckoutAttempt:
    """Maszyna stanow jednego checkoutu. Kazde przejscie jest logowane."""

    def __init__(self, shop_id: int, owner: OwnerKey):
        self.id = uuid.uuid4().hex[:8]
        self.shop_id = shop_id
        self.owner = owner
        self.state = CheckoutState.VALIDATING
        self.reason: str | None = None
        logger.info(f"Checkout {self.id} started for {owner} in shop {shop_id}")

    def advance(self, state: CheckoutState):
        logger.info(f"Checkout {self.id}: {self.state.value} -> {state.value}")
        self.state = state

    def fail(self, reason: str):
        logger.warning(f"Checkout {self.id}: {self.state.value} -> failed ({reason})")
        self.state = CheckoutState.FAILED
        self.reason = reason


class CheckoutService:
    """
    Use case: koszyk -> zamowienie.
    Rezerwacja, wycena i zapis zamowienia w JEDNEJ transakcji,
    bramka platnosci dopiero po commit (nigdy pod lockiem na wierszach).
    """

    def __init__(self, db: Session, payments: PaymentService):
        self.db = db
        self.carts = CartRepo(db)
        self.orders = OrderRepo(db)
        self.cart_service = CartService(db)
        self.resolver = SellableResolver(db)
        self.inventory = InventoryService(db)
        self.order_service = OrderService(db)
        self.payments = payments

    def checkout(self, shop_id: int, owner: OwnerKey, data: CheckoutIn) -> Dict[str, Any]:
        shop = self.cart_service.get_shop(shop_id)
        self.cart_service.check_owner(shop, owner)

        if data.idempotency_key:
            existing = self.orders.find_by_idempotency_key(shop.tenant_id, shop.id, data.idempotency_key)
            if existing:
                logger.info(f"Idempotent checkout {data.idempotency_key} -> order {existing.order_number}")
                return self._response(existing, None, "Order already placed")

        attempt = CheckoutAttempt(shop.id, owner)
        try:
            order = self._commit_order(attempt, shop, owner, data)
        except IntegrityError:
            self.db.rollback()
            # rownolegly checkout z tym samym kluczem wygral
            existing = None
            if data.idempotency_key:
                existing = self.orders.find_by_idempotency_key(shop.tenant_id, shop.id, data.idempotency_key)
            if not existing:
                attempt.fail("integrity error")
                raise
            attempt.fail("duplicate idempotency key")
            return self._response(existing, None, "Order already placed")
        except Exception as e:
            self.db.rollback()
            attempt.fail(str(e))
            raise

        attempt.advance(CheckoutState.COMPLETED)
        logger.info(f"Order {order.order_number} created for {owner}, total {order.total_amount} {order.currency}")

        try:
            self.payments.notifier.send_order_placed(order.id, order.order_number, order.customer_email)
        except Exception as e:
            logger.warning(f"Could not queue notification for order {order.order_number}: {e}")

        # bramka po commit - jej blad nie moze skasowac zamowienia
        payment = None
        message = None
        try:
            payment = self.payments.initiate(order, callback_url=data.callback_url)
            if not payment.success:
                message = PAYMENT_NOT_INITIATED
        except Exception as e:
            logger.error(f"Payment initiation failed for order {order.order_number}: {e}")
            message = PAYMENT_NOT_INITIATED

        return self._response(order, payment, message)

    def _commit_order(self, attempt: CheckoutAttempt, shop: ShopModel, owner: OwnerKey, data: CheckoutIn) -> OrderModel:
        # VALIDATING
        cart = self.carts.get_cart_for_owner(shop.tenant_id, shop.id, owner)
        items = self.carts.get_cart_items(cart.id) if cart else []
        if not items:
            raise CartInvalid("Cart is empty")

        self.payments.gateway_for(data.payment_method, shop.currency)
        lines = [self._validate_line(shop, item) for item in items]

        # RESERVING
        attempt.advance(CheckoutState.RESERVING)
        tracked = [line for line in lines if line.sellable.tracks_stock]
        locations = self.inventory.reserve_lines(
            shop.tenant_id,
            shop.id,
            [ReservationLine(line.sellable.variant.id, line.sellable.sku, line.base_quantity) for line in tracked],
            reference=f"checkout:{attempt.id}",
        )
        for line, location_id in zip(tracked, locations):
            line.location_id = location_id

        # PRICING - cena zawsze z katalogu, nie z klienta i nie z migawki w koszyku
        attempt.advance(CheckoutState.PRICING)
        for line in lines:
            unit_price = line.sellable.resolve_price(line.configuration)
            line.priced = price_line(shop, line.sellable.kind, unit_price, line.item.quantity, line.sellable.is_taxable)
        totals = compute_totals(shop, [line.priced for line in lines])

        # COMMITTING
        attempt.advance(CheckoutState.COMMITTING)
        order = self.orders.create_order(
            OrderModel(
                tenant_id=shop.tenant_id,
                shop_id=shop.id,
                order_number=next_order_number(self.db, shop.tenant_id),
                customer_id=owner.customer_id,
                session_id=owner.session_id,
                customer_email=self._customer_email(shop, owner, data),
                payment_method=data.payment_method,
                idempotency_key=data.idempotency_key,
                currency=shop.currency,
                subtotal=totals.subtotal,
                discount_amount=totals.discount,
                tax_amount=totals.tax,
                shipping_cost=totals.shipping,
                total_amount=totals.total,
                shipping_address=data.shipping_address.model_dump(),
                billing_address=(data.billing_address or data.shipping_address).model_dump(),
                customer_notes=data.customer_notes,
            )
        )
        for line in lines:
            self.orders.add_item(self._order_item(order, line))

        self.carts.clear_items(cart.id)
        self.db.commit()
        return order

    def _validate_line(self, shop: ShopModel, item: CartItemModel) -> CheckoutLine:
        sellable = self.resolver.resolve_item(shop.tenant_id, item)
        config = LineConfiguration.from_stored(item.packaging_type_id, item.material_option, item.selected_addons)
        if not sellable.is_purchasable():
            raise CartInvalid(f"{sellable.name} is no longer available")
        sellable.check_quantity(config, item.quantity)
        return CheckoutLine(
            item=item,
            sellable=sellable,
            configuration=config,
            base_quantity=sellable.base_quantity(config, item.quantity),
        )

    def _order_item(self, order: OrderModel, line: CheckoutLine) -> OrderItemModel:
        sellable = line.sellable
        metadata = sellable.line_metadata(line.configuration)
        metadata["cart_item_id"] = line.item.id
        return OrderItemModel(
            tenant_id=order.tenant_id,
            order_id=order.id,
            sellable_kind=sellable.kind.value,
            product_variant_id=sellable.variant.id if sellable.kind == SellableKind.PRODUCT else None,
            service_variant_id=sellable.variant.id if sellable.kind == SellableKind.SERVICE else None,
            packaging_type_id=line.configuration.packaging_type_id,
            inventory_location_id=line.location_id,
            name=sellable.name,
            sku=sellable.sku,
            quantity=line.item.quantity,
            base_quantity=line.base_quantity,
            unit_price=line.priced.unit_price,
            discount_amount=line.priced.discount,
            tax_amount=line.priced.tax,
            total_amount=line.priced.total,
            metadata_json=metadata,
        )

    def _customer_email(self, shop: ShopModel, owner: OwnerKey, data: CheckoutIn) -> str | None:
        if owner.customer_id is not None:
            customer = self.cart_service.shops.get_customer(shop.tenant_id, owner.customer_id)
            if customer:
                return customer.email
        return data.shipping_address.email

    def _response(self, order: OrderModel, payment, message: str | None) -> Dict[str, Any]:
        return {
            "order": self.order_service.to_dict(order),
            "payment": asdict(payment) if payment is not None else None,
            "message": message,
        }
