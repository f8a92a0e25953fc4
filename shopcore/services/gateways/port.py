"""Payment gateway port.

Every provider (Paystack, Flutterwave, NOWPayments, cash on delivery) implements
PaymentGateway. Checkout, payment and webhook services only talk to this
interface and to the result dataclasses below, never to a provider's HTTP API.
"""

import json
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal

from shopcore.domain.errors import PaymentInvalid


@dataclass(frozen=True)
class PaymentInitiation:
    """Result of starting a payment (redirect URL, inline access code or crypto invoice)."""

    success: bool
    gateway: str
    reference: str | None = None
    authorization_url: str | None = None
    access_code: str | None = None
    public_key: str | None = None
    metadata: dict = field(default_factory=dict)
    message: str | None = None


@dataclass(frozen=True)
class PaymentVerification:
    """Result of asking the provider about a reference. status: success | pending | failed."""

    status: str
    reference: str
    amount: Decimal | None = None
    currency: str | None = None
    gateway_reference: str | None = None
    fee: Decimal | None = None
    message: str | None = None

    @property
    def success(self) -> bool:
        return self.status == "success"

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"


@dataclass(frozen=True)
class RefundResult:
    success: bool
    refund_reference: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class WebhookEvent:
    """Normalized webhook payload. status: success | failed | pending | ignored."""

    event_type: str
    status: str
    reference: str | None = None
    amount: Decimal | None = None
    currency: str | None = None
    gateway_reference: str | None = None
    fee: Decimal | None = None

    @property
    def is_success(self) -> bool:
        return self.status == "success"


@dataclass(frozen=True)
class WebhookRequest:
    """Raw webhook as received: header names lower-cased, body untouched (needed for HMAC)."""

    headers: dict
    body: bytes

    @classmethod
    def build(cls, headers, body: bytes) -> "WebhookRequest":
        return cls(headers={k.lower(): v for k, v in dict(headers).items()}, body=body or b"")

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())

    def json(self) -> dict:
        try:
            payload = json.loads(self.body or b"{}")
        except ValueError:
            raise PaymentInvalid("Malformed webhook payload")
        if not isinstance(payload, dict):
            raise PaymentInvalid("Malformed webhook payload")
        return payload


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    identifier: str = ""
    name: str = ""

    @abstractmethod
    def is_available(self) -> bool:
        """True when the gateway is configured (keys present)."""

    @abstractmethod
    def supported_currencies(self) -> list[str]: ...

    def supports_refunds(self) -> bool:
        return True

    def supports_inline(self) -> bool:
        return False

    @property
    def public_key(self) -> str | None:
        return None

    @abstractmethod
    def initialize_payment(self, order, options: dict | None = None) -> PaymentInitiation: ...

    @abstractmethod
    def verify_payment(self, reference: str) -> PaymentVerification: ...

    @abstractmethod
    def refund(self, payment, amount: Decimal | None = None, reason: str | None = None) -> RefundResult: ...

    @abstractmethod
    def validate_webhook(self, request: WebhookRequest) -> bool: ...

    @abstractmethod
    def parse_webhook(self, request: WebhookRequest) -> WebhookEvent: ...

    def generate_reference(self, order) -> str:
        """PAYSTACK_ORD-20240101-0001_1A2B3C4D"""
        return f"{self.identifier}_{order.order_number}_{secrets.token_hex(4)}".upper()

    @staticmethod
    def order_number_from_reference(reference: str) -> str | None:
        # identyfikator bramki moze zawierac '_' (cash_on_delivery), wiec od prawej
        parts = (reference or "").rsplit("_", 2)
        if len(parts) != 3 or not parts[1]:
            return None
        return parts[1]
