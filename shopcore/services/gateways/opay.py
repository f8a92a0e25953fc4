# shopcore/services/gateways/opay.py
import hashlib
import hmac
import time
from decimal import Decimal

from shopcore.services.gateways.base import HttpGateway
from shopcore.services.gateways.port import (
    PaymentInitiation,
    PaymentVerification,
    RefundResult,
    WebhookEvent,
    WebhookRequest,
)

SUCCESS_CODE = "00000"
PENDING_STATUSES = ("PENDING", "INITIAL")
# link do kasy wazny 30 min
CASHIER_TTL_SECONDS = 30 * 60


class OpayGateway(HttpGateway):
    """Kasa OPay (karta, przelew, USSD, portfel). Tylko NGN, kwoty w kobo."""

    identifier = "opay"
    name = "OPay"

    def supported_currencies(self) -> list[str]:
        return ["NGN"]

    def _headers(self) -> dict:
        headers = super()._headers()
        if self.config.get("merchant_id"):
            headers["MerchantId"] = self.config["merchant_id"]
        return headers

    def initialize_payment(self, order, options: dict | None = None) -> PaymentInitiation:
        options = options or {}
        if not self.is_available():
            return PaymentInitiation(False, self.identifier, message="OPay is not configured")

        reference = options.get("reference") or self.generate_reference(order)
        amount = Decimal(options.get("amount", order.total_amount))
        address = order.shipping_address or {}
        callback = self.callback_url(order, options)
        payload = {
            "reference": reference,
            "mchShortName": self.config.get("merchant_name") or "shopcore",
            "productName": f"Order #{order.order_number}",
            "productDesc": f"Payment for order {order.order_number}",
            "userPhone": address.get("phone") or "",
            "userRequestIp": options.get("client_ip") or "",
            "amount": str(self.to_smallest_unit(amount, "NGN")),
            "currency": "NGN",
            "callbackUrl": callback,
            "returnUrl": options.get("return_url") or callback,
            "expireAt": str(int(time.time()) + CASHIER_TTL_SECONDS),
        }

        status, body = self._make_request("POST", "/api/v3/cashier/initialize", payload)
        if status >= 400 or body.get("code") != SUCCESS_CODE:
            return PaymentInitiation(
                False,
                self.identifier,
                reference=reference,
                message=body.get("message") or "Failed to initialize OPay payment",
            )

        data = body.get("data") or {}
        self._log_event("payment_initialized", order, reference=reference, amount=amount)
        return PaymentInitiation(
            True,
            self.identifier,
            reference=reference,
            authorization_url=data.get("cashierUrl"),
            metadata={"order_no": data.get("orderNo") or ""},
        )

    def verify_payment(self, reference: str) -> PaymentVerification:
        if not self.is_available():
            return PaymentVerification("failed", reference, message="OPay is not configured")

        status, body = self._make_request("POST", "/api/v3/cashier/status", {"reference": reference})
        if status >= 400:
            return PaymentVerification("failed", reference, message=body.get("message") or "Verification failed")

        data = body.get("data") or {}
        tx_status = data.get("status") or "FAIL"
        if tx_status == "SUCCESS":
            return PaymentVerification(
                "success",
                reference,
                amount=self.from_smallest_unit(data["amount"], "NGN") if data.get("amount") is not None else None,
                currency="NGN",
                gateway_reference=str(data.get("orderNo") or reference),
            )
        if tx_status in PENDING_STATUSES:
            return PaymentVerification("pending", reference, message="Payment is being processed")
        return PaymentVerification("failed", reference, message=data.get("failureReason") or "Payment failed")

    def supports_refunds(self) -> bool:
        return False

    def refund(self, payment, amount: Decimal | None = None, reason: str | None = None) -> RefundResult:
        return RefundResult(
            False,
            message="OPay refunds must be processed through the OPay merchant dashboard",
        )

    def validate_webhook(self, request: WebhookRequest) -> bool:
        signature = request.header("authorization")
        secret = self.webhook_secret
        if not signature or not secret:
            return False
        computed = hmac.new(secret.encode(), request.body, hashlib.sha512).hexdigest()
        return hmac.compare_digest(f"Bearer {computed}", signature)

    def parse_webhook(self, request: WebhookRequest) -> WebhookEvent:
        payload = request.json()
        # OPay czasem owija dane w "payload"
        data = payload.get("payload") or payload
        tx_status = data.get("status") or ""

        if tx_status == "SUCCESS":
            status = "success"
        elif tx_status == "FAIL":
            status = "failed"
        else:
            status = "pending"

        return WebhookEvent(
            event_type=f"payment.{status}",
            status=status,
            reference=data.get("reference"),
            amount=self.from_smallest_unit(data["amount"], "NGN") if data.get("amount") is not None else None,
            currency="NGN",
            gateway_reference=str(data["orderNo"]) if data.get("orderNo") else None,
        )
