# shopcore/services/gateways/flutterwave.py
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


class FlutterwaveGateway(HttpGateway):
    """Hosted redirect (data.link). Kwoty w jednostkach glownych."""

    identifier = "flutterwave"
    name = "Flutterwave"

    def supported_currencies(self) -> list[str]:
        return ["NGN", "GHS", "KES", "ZAR", "TZS", "UGX", "USD", "EUR", "GBP"]

    def initialize_payment(self, order, options: dict | None = None) -> PaymentInitiation:
        options = options or {}
        if not self.is_available():
            return PaymentInitiation(False, self.identifier, message="Flutterwave is not configured")

        email = self._customer_email(order)
        if not email:
            return PaymentInitiation(False, self.identifier, message="Customer email is required for card payments")

        reference = options.get("reference") or self.generate_reference(order)
        amount = quantize(options.get("amount", order.total_amount))
        address = order.shipping_address or {}
        payload = {
            "tx_ref": reference,
            "amount": str(amount),
            "currency": order.currency,
            "redirect_url": self.callback_url(order, options),
            "customer": {
                "email": email,
                "name": address.get("name"),
                "phonenumber": address.get("phone"),
            },
            "meta": {
                "order_id": order.id,
                "order_number": order.order_number,
                "tenant_id": order.tenant_id,
            },
            "customizations": {"title": f"Order {order.order_number}"},
        }

        status, body = self._make_request("POST", "/payments", payload)
        if status >= 400 or body.get("status") != "success":
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
            authorization_url=data.get("link"),
            public_key=self.public_key,
        )

    def verify_payment(self, reference: str) -> PaymentVerification:
        if not self.is_available():
            return PaymentVerification("failed", reference, message="Flutterwave is not configured")

        status, body = self._make_request("GET", "/transactions/verify_by_reference", params={"tx_ref": reference})
        if status >= 400 or body.get("status") != "success":
            return PaymentVerification("failed", reference, message=body.get("message") or "Verification failed")

        data = body.get("data") or {}
        tx_status = data.get("status")
        if tx_status == "successful":
            return PaymentVerification(
                "success",
                reference,
                amount=quantize(data["amount"]) if data.get("amount") is not None else None,
                currency=(data.get("currency") or "NGN").upper(),
                gateway_reference=str(data.get("id") or reference),
                fee=quantize(data["app_fee"]) if data.get("app_fee") is not None else None,
            )
        if tx_status == "pending":
            return PaymentVerification("pending", reference, message="Payment status: pending")
        return PaymentVerification("failed", reference, message=f"Payment {tx_status}")

    def refund(self, payment, amount: Decimal | None = None, reason: str | None = None) -> RefundResult:
        payload = {}
        if amount is not None:
            payload["amount"] = str(quantize(amount))
        if reason:
            payload["comments"] = reason

        status, body = self._make_request("POST", f"/transactions/{payment.gateway_reference}/refund", payload)
        if status >= 400 or body.get("status") != "success":
            return RefundResult(False, message=body.get("message") or "Refund failed")

        data = body.get("data") or {}
        return RefundResult(True, refund_reference=str(data.get("id") or ""), message=body.get("message"))

    def validate_webhook(self, request: WebhookRequest) -> bool:
        # Flutterwave wysyla po prostu sekret w naglowku
        signature = request.header("verif-hash")
        secret = self.webhook_secret
        if not signature or not secret:
            return False
        return hmac.compare_digest(signature, secret)

    def parse_webhook(self, request: WebhookRequest) -> WebhookEvent:
        payload = request.json()
        event = payload.get("event") or payload.get("event.type") or ""
        data = payload.get("data") or {}
        tx_status = data.get("status")

        if event == "charge.completed" and tx_status == "successful":
            status = "success"
        elif event == "charge.completed" and tx_status == "failed":
            status = "failed"
        elif event == "charge.completed":
            status = "pending"
        else:
            status = "ignored"

        return WebhookEvent(
            event_type=event,
            status=status,
            reference=data.get("tx_ref"),
            amount=quantize(data["amount"]) if data.get("amount") is not None else None,
            currency=(data.get("currency") or "NGN").upper(),
            gateway_reference=str(data["id"]) if data.get("id") is not None else None,
            fee=quantize(data["app_fee"]) if data.get("app_fee") is not None else None,
        )
