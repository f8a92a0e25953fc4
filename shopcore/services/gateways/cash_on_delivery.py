# shopcore/services/gateways/cash_on_delivery.py
from decimal import Decimal

from shopcore.services.gateways.port import (
    PaymentGateway,
    PaymentInitiation,
    PaymentVerification,
    RefundResult,
    WebhookEvent,
    WebhookRequest,
)


class CashOnDeliveryGateway(PaymentGateway):
    """Platnosc przy odbiorze. Bez sieci, bez webhookow - wplate wpisuje sklep recznie."""

    identifier = "cash_on_delivery"
    name = "Cash on Delivery"

    def __init__(self, config: dict | None = None):
        self.config = config or {}

    def is_available(self) -> bool:
        return bool(self.config.get("enabled", True))

    def supported_currencies(self) -> list[str]:
        return ["*"]

    def supports_refunds(self) -> bool:
        return False

    def initialize_payment(self, order, options: dict | None = None) -> PaymentInitiation:
        return PaymentInitiation(
            True,
            self.identifier,
            reference=(options or {}).get("reference") or self.generate_reference(order),
            message="Pay with cash when your order is delivered",
        )

    def verify_payment(self, reference: str) -> PaymentVerification:
        return PaymentVerification("pending", reference, message="Awaiting cash payment on delivery")

    def refund(self, payment, amount: Decimal | None = None, reason: str | None = None) -> RefundResult:
        return RefundResult(False, message="Cash payments are refunded manually")

    def validate_webhook(self, request: WebhookRequest) -> bool:
        return False

    def parse_webhook(self, request: WebhookRequest) -> WebhookEvent:
        return WebhookEvent(event_type="unsupported", status="ignored")
