# shopcore/domain/errors.py
"""Wyjatki domenowe.

Dziedzicza po wbudowanych typach, ktore routery i tak juz lapia
(ValueError -> 400, LookupError -> 404, RuntimeError -> 502/409).
"""


class ShopcoreError(Exception):
    pass


class CartInvalid(ShopcoreError, ValueError):
    """Empty cart, owner/shop mismatch or a line that can no longer be bought."""


class Unavailable(ShopcoreError, ValueError):
    """Sellable is inactive or not offered online."""


class NotFound(ShopcoreError, LookupError):
    pass


class InsufficientStock(ShopcoreError, RuntimeError):
    def __init__(self, sku: str, available: int | None = None, requested: int | None = None):
        self.sku = sku
        self.available = available
        self.requested = requested
        msg = f"Insufficient stock for {sku}"
        if available is not None:
            msg += f". Only {available} available"
        super().__init__(msg)


class OverpaymentNotAllowed(ShopcoreError, ValueError):
    pass


class PaymentInvalid(ShopcoreError, ValueError):
    pass


class OrderStateError(ShopcoreError, RuntimeError):
    pass


class UnknownGateway(ShopcoreError, LookupError):
    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"Payment gateway [{identifier}] is not registered")


class GatewayUnavailable(ShopcoreError, RuntimeError):
    """Gateway is registered but not configured (no keys)."""


class GatewayRequestFailed(ShopcoreError, RuntimeError):
    """Network error or 5xx from the provider. Safe to retry."""

    def __init__(self, gateway: str, message: str, status_code: int | None = None):
        self.gateway = gateway
        self.status_code = status_code
        super().__init__(f"{gateway}: {message}")


class WebhookSignatureInvalid(ShopcoreError):
    pass


class DuplicateWebhookEvent(ShopcoreError):
    def __init__(self, gateway_reference: str):
        self.gateway_reference = gateway_reference
        super().__init__(f"Webhook event {gateway_reference} already applied")
