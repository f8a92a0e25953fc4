# shopcore/services/payment_service.py
import uuid
from typing import Dict, Any

from sqlalchemy.orm import Session

from shopcore.data.models.order import OrderModel
from shopcore.data.models.tenant import ShopModel
from shopcore.domain.enums import OrderStatus, PaymentStatus
from shopcore.domain.errors import (
    DuplicateWebhookEvent,
    GatewayRequestFailed,
    GatewayUnavailable,
    NotFound,
    OrderStateError,
    PaymentInvalid,
    WebhookSignatureInvalid,
)
from shopcore.domain.money import quantize, ZERO
from shopcore.repos.order_repo import OrderRepo
from shopcore.repos.shop_repo import ShopRepo
from shopcore.services.gateways import GatewayRegistry, PaymentGateway, PaymentInitiation, WebhookRequest
from shopcore.services.lock_service import LockService
from shopcore.services.notification_service import NotificationService
from shopcore.services.payment_ledger import PaymentLedger
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)


class PaymentService:
    """
    Wszystko co dotyczy bramek platnosci:
    -inicjacja / ponowienie platnosci (lock w redisie per zamowienie)
    -weryfikacja referencji u bramki
    -webhooki (podpis -> parsowanie -> idempotentny zapis w ksiedze)
    -zwroty przez bramke
    """

    def __init__(
        self,
        db: Session,
        registry: GatewayRegistry,
        lock_service: LockService | None = None,
        notifier: NotificationService | None = None,
    ):
        self.db = db
        self.registry = registry
        self.lock_service = lock_service or LockService()
        self.notifier = notifier or NotificationService()
        self.orders = OrderRepo(db)
        self.shops = ShopRepo(db)
        self.ledger = PaymentLedger(db)

    def get_shop(self, shop_id: int) -> ShopModel:
        shop = self.shops.get_shop(shop_id)
        if not shop:
            raise NotFound(f"Shop {shop_id} not found")
        return shop

    def gateway_for(self, identifier: str, currency: str | None = None) -> PaymentGateway:
        gateway = self.registry.get(identifier)
        if not gateway.is_available():
            raise GatewayUnavailable(f"Payment method {identifier} is not available")
        currencies = gateway.supported_currencies()
        if currency and "*" not in currencies and currency.upper() not in currencies:
            raise GatewayUnavailable(f"{gateway.name} does not support {currency}")
        return gateway

    def available_methods(self, shop_id: int) -> list[Dict[str, Any]]:
        shop = self.get_shop(shop_id)
        return [
            {
                "identifier": g.identifier,
                "name": g.name,
                "supports_refunds": g.supports_refunds(),
                "supports_inline": g.supports_inline(),
                "currencies": g.supported_currencies(),
                "public_key": g.public_key,
            }
            for g in self.registry.available(shop.currency)
        ]

    def initiate(
        self, order: OrderModel, payment_method: str | None = None, callback_url: str | None = None
    ) -> PaymentInitiation:
        """Pierwsza inicjacja po checkoucie albo ponowienie dla niezaplaconego zamowienia."""
        if order.status == OrderStatus.CANCELLED.value:
            raise OrderStateError(f"Order {order.order_number} is cancelled")
        if order.payment_status == PaymentStatus.PAID.value:
            raise OrderStateError(f"Order {order.order_number} is already paid")

        method = payment_method or order.payment_method
        gateway = self.gateway_for(method, order.currency)
        amount = self.ledger.outstanding_balance(order)

        token = uuid.uuid4().hex
        if not self.lock_service.acquire_payment_lock(order.id, token):
            raise OrderStateError(f"Payment for order {order.order_number} is already being initiated")

        try:
            logger.info(f"Initiating {gateway.identifier} payment for order {order.order_number} amount {amount}")
            result = gateway.initialize_payment(order, {"amount": amount, "callback_url": callback_url})
        finally:
            self.lock_service.release_payment_lock(order.id, token)

        if not result.success:
            logger.warning(f"Gateway {gateway.identifier} refused order {order.order_number}: {result.message}")
            return result

        order.payment_method = gateway.identifier
        order.payment_reference = result.reference
        self.db.commit()
        return result

    def verify(self, order: OrderModel, reference: str | None = None) -> Dict[str, Any]:
        reference = reference or order.payment_reference
        if not reference:
            raise PaymentInvalid("No payment reference to verify")

        gateway = self.registry.get(order.payment_method)
        result = gateway.verify_payment(reference)
        logger.info(f"Verify {reference} via {gateway.identifier}: {result.status}")

        if not result.success:
            return {"status": result.status, "order_id": order.id, "payment_id": None}

        return self._apply_capture(
            order,
            gateway.identifier,
            amount=result.amount,
            currency=result.currency,
            gateway_reference=result.gateway_reference or reference,
            reference=reference,
            fee=result.fee,
        )

    def handle_webhook(self, shop_id: int, gateway_id: str, request: WebhookRequest) -> Dict[str, Any]:
        shop = self.get_shop(shop_id)
        gateway = self.registry.get(gateway_id)

        # podpis sprawdzany zanim cokolwiek dotkniemy
        if not gateway.validate_webhook(request):
            logger.warning(f"Invalid webhook signature from {gateway_id} for shop {shop_id}")
            raise WebhookSignatureInvalid(f"Invalid {gateway_id} webhook signature")

        event = gateway.parse_webhook(request)
        logger.info(f"Webhook {gateway_id} event={event.event_type} status={event.status} ref={event.reference}")

        if not event.is_success:
            return {"status": event.status, "order_id": None, "payment_id": None}

        order = self.find_order_by_reference(shop, event.reference)
        if not order:
            logger.warning(f"Webhook {gateway_id} for unknown reference {event.reference} in shop {shop_id}")
            return {"status": "unknown_reference", "order_id": None, "payment_id": None}

        return self._apply_capture(
            order,
            gateway.identifier,
            amount=event.amount,
            currency=event.currency,
            gateway_reference=event.gateway_reference or event.reference,
            reference=event.reference,
            fee=event.fee,
        )

    def _apply_capture(self, order, gateway_id, amount, currency, gateway_reference, reference, fee) -> Dict[str, Any]:
        if currency and currency.upper() != order.currency.upper():
            logger.error(
                f"Capture {gateway_reference} for order {order.order_number} in {currency}, order is in {order.currency}"
            )
            return {"status": "currency_mismatch", "order_id": order.id, "payment_id": None}

        # bramka musi podac kwote, nie zakladamy pelnej platnosci
        if amount is None or quantize(amount) <= ZERO:
            logger.warning(
                f"Capture {gateway_reference} ({gateway_id}) for order {order.order_number} "
                f"without a positive amount: {amount}"
            )
            return {"status": "invalid_amount", "order_id": order.id, "payment_id": None}

        try:
            entry = self.ledger.record_capture(
                order,
                amount,
                gateway=gateway_id,
                gateway_reference=gateway_reference,
                reference=reference,
                fee=fee,
            )
        except DuplicateWebhookEvent:
            logger.info(f"Capture {gateway_reference} ({gateway_id}) already recorded, skipping")
            return {"status": "duplicate", "order_id": order.id, "payment_id": None}

        self.notifier.send_payment_received(order.id, order.order_number, str(entry.amount))
        return {"status": "processed", "order_id": order.id, "payment_id": entry.id}

    def find_order_by_reference(self, shop: ShopModel, reference: str | None) -> OrderModel | None:
        if not reference:
            return None
        order = self.orders.find_by_payment_reference(shop.tenant_id, reference)
        if not order:
            order_number = PaymentGateway.order_number_from_reference(reference)
            if order_number:
                order = self.orders.find_by_order_number(shop.tenant_id, order_number)
        if order and order.shop_id != shop.id:
            return None
        return order

    def refund(self, order: OrderModel, payment_id: int, amount=None, reason: str | None = None):
        payment = self.ledger.refundable_payment(order, payment_id)
        remaining = self.ledger.refundable_amount(payment)
        amount = remaining if amount is None else quantize(amount)
        if amount <= ZERO or amount > remaining:
            raise PaymentInvalid(f"Refund amount must be between 0 and {remaining}")

        gateway_reference = None
        if payment.gateway and self.registry.has(payment.gateway):
            gateway = self.registry.get(payment.gateway)
            if gateway.supports_refunds():
                result = gateway.refund(payment, amount, reason)
                if not result.success:
                    raise GatewayRequestFailed(gateway.identifier, result.message or "Refund rejected")
                # osobna przestrzen nazw od id transakcji, unique (gateway, gateway_reference)
                gateway_reference = f"RF-{result.refund_reference}" if result.refund_reference else None
                logger.info(f"Gateway {gateway.identifier} refunded {amount} for payment {payment.id}")

        return self.ledger.refund(order, payment.id, amount, reason, gateway_reference=gateway_reference)
