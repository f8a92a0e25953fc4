# shopcore/services/gateways/registry.py
from typing import Callable

from shopcore.domain.errors import UnknownGateway
from shopcore.services.gateways.port import PaymentGateway
from shopcore.services.gateways.paystack import PaystackGateway
from shopcore.services.gateways.flutterwave import FlutterwaveGateway
from shopcore.services.gateways.opay import OpayGateway
from shopcore.services.gateways.crypto import CryptoGateway
from shopcore.services.gateways.cash_on_delivery import CashOnDeliveryGateway
from shopcore.utils.settings import ENABLED_GATEWAYS, GATEWAY_CONFIG
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)

GATEWAY_CLASSES = {
    "paystack": PaystackGateway,
    "flutterwave": FlutterwaveGateway,
    "opay": OpayGateway,
    "crypto": CryptoGateway,
    "cash_on_delivery": CashOnDeliveryGateway,
}


class GatewayRegistry:
    """
    identifier -> fabryka bramki.
    Instancje tworzone leniwie przy pierwszym uzyciu i trzymane.
    """

    def __init__(self):
        self._factories: dict[str, Callable[[], PaymentGateway]] = {}
        self._instances: dict[str, PaymentGateway] = {}

    def register(self, identifier: str, factory: Callable[[], PaymentGateway]) -> None:
        self._factories[identifier] = factory
        # nowa fabryka zastepuje stara instancje
        self._instances.pop(identifier, None)

    def has(self, identifier: str) -> bool:
        return identifier in self._factories

    def get(self, identifier: str) -> PaymentGateway:
        if identifier not in self._factories:
            raise UnknownGateway(identifier)
        if identifier not in self._instances:
            self._instances[identifier] = self._factories[identifier]()
        return self._instances[identifier]

    def identifiers(self) -> list[str]:
        return list(self._factories)

    def available(self, currency: str | None = None) -> list[PaymentGateway]:
        result = []
        for identifier in self._factories:
            gateway = self.get(identifier)
            if not gateway.is_available():
                continue
            currencies = gateway.supported_currencies()
            if currency and "*" not in currencies and currency.upper() not in currencies:
                continue
            result.append(gateway)
        return result


def build_default_registry(enabled: list[str] | None = None, config: dict | None = None) -> GatewayRegistry:
    enabled = ENABLED_GATEWAYS if enabled is None else enabled
    config = GATEWAY_CONFIG if config is None else config

    registry = GatewayRegistry()
    for identifier in enabled:
        cls = GATEWAY_CLASSES.get(identifier)
        if cls is None:
            logger.warning(f"Unknown gateway [{identifier}] in ENABLED_GATEWAYS, skipping")
            continue
        gateway_config = config.get(identifier, {})
        registry.register(identifier, lambda cls=cls, cfg=gateway_config: cls(cfg))

    logger.info(f"Payment gateways registered: {registry.identifiers()}")
    return registry
