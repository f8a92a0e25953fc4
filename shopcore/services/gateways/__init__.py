"""Payment gateways.

The registry is built once at startup (see shopcore.main) and handed to the
services through a FastAPI dependency, so tests can swap in their own.
"""

from shopcore.services.gateways.port import (
    PaymentGateway,
    PaymentInitiation,
    PaymentVerification,
    RefundResult,
    WebhookEvent,
    WebhookRequest,
)
from shopcore.services.gateways.registry import GatewayRegistry, build_default_registry

__all__ = [
    "PaymentGateway",
    "PaymentInitiation",
    "PaymentVerification",
    "RefundResult",
    "WebhookEvent",
    "WebhookRequest",
    "GatewayRegistry",
    "build_default_registry",
]
