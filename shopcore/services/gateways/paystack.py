# shopcore/services/gateways/paystack.py
import hashlib
import hmac
from decimal import Decimal

from shopcore.domain.money import quantize
from shopcore.services.gateways.base import HttpGateway
from shopcore.services.gateways.port import (
    PaymentInitiation,
    PaymentVerification,
    RefundResult,
    WebhookEvent,
    WebhookRequest,
)

PENDING_STATUSES = ("pending", "ongoing", "processing", "queued")


class PaystackGateway(HttpGateway):
    """Hosted redirect albo inline (access_code + public key). Kwoty w kobo."""

    identifier = "paystack"
    name = "Paystack"

    def supported_currencies(self) -> list[str]:
        return ["NGN", "GHS", "ZAR", "USD"]

    def supports_inline(self) -> bool:
        return True

    def initialize_payment(self, order, options: dict | None = None) -> PaymentInitiation:
        options = options or {}
        if not self.is_available():
            return PaymentInitiation(False, self.identifier, message="Paystack is not configured")

        email = self._customer_email(order)
        if not email:
            return PaymentInitiation(False, self.identifier, message="Customer email is required for card payments")

        reference = options.get("reference") or self.generate_reference(order)
        amount = Decimal(options.get("amount", order.total_amount))
        payload = {
            "email": email,
            "amount": self.to_smallest_unit(amount, order.currency),
            "currency": order.currency,
            "reference": reference,
            "callback_url": self.callback_url(order, options),
            "metadata": {
                "order_id": order.id,
                "order_number": order.order_number,
                "tenant_id": order.tenant_id,
            },
        }

        status, body = self._make_request("POST", "/transaction/initialize", payload)
        if status >= 400 or not body.get("status"):
            return PaymentInitiation(
                False,
                self.identifier,
                reference=reference,
                message=body.get("message") or "Failed to initialize payment",
            )

        data = body.get("data") or {}
        self._log_event("payment_initialized", order, reference=reference, amount=amount)
        return PaymentInitiation(
            True,
            self.identifier,
            reference=reference,
            authorization_url=data.get("authorization_url"),
            access_code=data.get("access_code"),
            public_key=self.public_key,
        )

    def verify_payment(self, reference: str) -> PaymentVerification:
        if not self.is_available():
            return PaymentVerification("failed", reference, message="Paystack is not configured")

        status, body = self._make_request("GET", f"/transaction/verify/{reference}")
        if status >= 400 or not body.get("status"):
            return PaymentVerification("failed", reference, message=body.get("message") or "Verification failed")

        data = body.get("data") or {}
        currency = (data.get("currency") or "NGN").upper()
        tx_status = data.get("status")

        if tx_status == "success":
            return PaymentVerification(
                "success",
                reference,
                amount=self.from_smallest_unit(data["amount"], currency) if data.get("amount") is not None else None,
                currency=currency,
                gateway_reference=str(data.get("id") or reference),
                fee=self.from_smallest_unit(data.get("fees"), currency) if data.get("fees") is not None else None,
            )
        if tx_status in PENDING_STATUSES:
            return PaymentVerification("pending", reference, message=f"Payment status: {tx_status}")
        return PaymentVerification(
            "failed", reference, message=data.get("gateway_response") or f"Payment {tx_status}"
        )

    def refund(self, payment, amount: Decimal | None = None, reason: str | None = None) -> RefundResult:
        payload = {"transaction": payment.gateway_reference}
        if amount is not None:
            payload["amount"] = self.to_smallest_unit(amount, payment.currency)
        if reason:
            payload["merchant_note"] = reason

        status, body = self._make_request("POST", "/refund", payload)
        if status >= 400 or not body.get("status"):
            return RefundResult(False, message=body.get("message") or "Refund failed")

        data = body.get("data") or {}
        return RefundResult(True, refund_reference=str(data.get("id") or ""), message=body.get("message"))

    def validate_webhook(self, request: WebhookRequest) -> bool:
        signature = request.header("x-paystack-signature")
        secret = self.webhook_secret
        if not signature or not secret:
            return False
        computed = hmac.new(secret.encode(), request.body, hashlib.sha512).hexdigest()
        return hmac.compare_digest(computed, signature)

    def parse_webhook(self, request: WebhookRequest) -> WebhookEvent:
        payload = request.json()
        event = payload.get("event") or ""
        data = payload.get("data") or {}
        currency = (data.get("currency") or "NGN").upper()

        if event == "charge.success":
            status = "success"
        elif event == "charge.failed":
            status = "failed"
        else:
            status = "ignored"

        fees = data.get("fees")
        return WebhookEvent(
            event_type=event,
            status=status,
            reference=data.get("reference"),
            amount=self.from_smallest_unit(data.get("amount"), currency) if data.get("amount") is not None else None,
            currency=currency,
            gateway_reference=str(data["id"]) if data.get("id") is not None else None,
            fee=quantize(self.from_smallest_unit(fees, currency)) if fees is not None else None,
        )
