# shopcore/services/gateways/crypto.py
import hashlib
import hmac
import json
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

SUCCESS_STATUSES = ("finished", "confirmed")
PENDING_STATUSES = ("waiting", "confirming", "sending")
FAILED_STATUSES = ("failed", "expired", "refunded")


class CryptoGateway(HttpGateway):
    """Faktura on-chain przez NOWPayments. Zwrotow nie ma - tylko recznie."""

    identifier = "crypto"
    name = "Cryptocurrency"

    def is_available(self) -> bool:
        return bool(self.config.get("api_key"))

    def supported_currencies(self) -> list[str]:
        return ["USD", "EUR", "NGN", "GBP"]

    def supports_refunds(self) -> bool:
        return False

    def _headers(self) -> dict:
        return {
            "x-api-key": self.config.get("api_key", ""),
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def initialize_payment(self, order, options: dict | None = None) -> PaymentInitiation:
        options = options or {}
        if not self.is_available():
            return PaymentInitiation(False, self.identifier, message="Crypto payments are not configured")

        reference = options.get("reference") or self.generate_reference(order)
        pay_currency = options.get("pay_currency") or "btc"
        amount = quantize(options.get("amount", order.total_amount))
        payload = {
            "price_amount": str(amount),
            "price_currency": order.currency.lower(),
            "pay_currency": pay_currency,
            "ipn_callback_url": self.webhook_url(order.shop_id),
            "order_id": reference,
            "order_description": f"Order #{order.order_number}",
        }

        status, body = self._make_request("POST", "/payment", payload)
        if status >= 400:
            return PaymentInitiation(
                False,
                self.identifier,
                reference=reference,
                message=body.get("message") or "Failed to create crypto payment",
            )

        self._log_event("payment_initialized", order, reference=reference, amount=amount, pay_currency=pay_currency)
        return PaymentInitiation(
            True,
            self.identifier,
            reference=reference,
            authorization_url=body.get("invoice_url"),
            metadata={
                "payment_id": body.get("payment_id"),
                "wallet_address": body.get("pay_address"),
                "crypto_amount": body.get("pay_amount"),
                "crypto_currency": pay_currency.upper(),
                "expires_at": body.get("expiration_estimate_date"),
            },
        )

    def verify_payment(self, reference: str) -> PaymentVerification:
        if not self.is_available():
            return PaymentVerification("failed", reference, message="Crypto payments are not configured")

        status, body = self._make_request("GET", f"/payment/{reference}")
        if status >= 400:
            return PaymentVerification("failed", reference, message=body.get("message") or "Verification failed")

        payment_status = body.get("payment_status") or "waiting"
        if payment_status in SUCCESS_STATUSES:
            return PaymentVerification(
                "success",
                reference,
                amount=quantize(body["price_amount"]) if body.get("price_amount") is not None else None,
                currency=(body.get("price_currency") or "USD").upper(),
                gateway_reference=str(body.get("payment_id") or reference),
            )
        if payment_status in PENDING_STATUSES:
            return PaymentVerification("pending", reference, message=f"Payment status: {payment_status}")
        return PaymentVerification("failed", reference, message=f"Payment {payment_status}")

    def refund(self, payment, amount: Decimal | None = None, reason: str | None = None) -> RefundResult:
        return RefundResult(
            False,
            message="Cryptocurrency payments cannot be refunded automatically. Please process manually.",
        )

    @staticmethod
    def signed_payload(payload: dict) -> str:
        # klucze posortowane, bez spacji i bez escapowania '/'
        return json.dumps(payload, sort_keys=True, separators=(",", ":"))

    def validate_webhook(self, request: WebhookRequest) -> bool:
        signature = request.header("x-nowpayments-sig")
        secret = self.webhook_secret
        if not signature or not secret:
            return False
        try:
            payload = request.json()
        except ValueError:
            return False
        computed = hmac.new(secret.encode(), self.signed_payload(payload).encode(), hashlib.sha512).hexdigest()
        return hmac.compare_digest(computed, signature)

    def parse_webhook(self, request: WebhookRequest) -> WebhookEvent:
        payload = request.json()
        payment_status = payload.get("payment_status") or ""
        if payment_status in SUCCESS_STATUSES:
            status = "success"
        elif payment_status in FAILED_STATUSES:
            status = "failed"
        else:
            status = "pending"

        return WebhookEvent(
            event_type=f"payment.{status}",
            status=status,
            reference=payload.get("order_id"),
            amount=quantize(payload["price_amount"]) if payload.get("price_amount") is not None else None,
            currency=(payload.get("price_currency") or "USD").upper(),
            gateway_reference=str(payload["payment_id"]) if payload.get("payment_id") is not None else None,
        )
