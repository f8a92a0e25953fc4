# shopcore/services/gateways/base.py
from decimal import Decimal

import requests

from shopcore.domain.errors import GatewayRequestFailed
from shopcore.domain.money import from_smallest_unit, to_smallest_unit
from shopcore.services.gateways.port import PaymentGateway
from shopcore.utils.retry import http_retry, RetryableHTTPStatus
from shopcore.utils.settings import APP_BASE_URL, GATEWAY_TIMEOUT_SECONDS
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)

MINIMUM_AMOUNTS = {
    "NGN": Decimal("100"),
    "USD": Decimal("1"),
    "GHS": Decimal("1"),
    "KES": Decimal("100"),
    "ZAR": Decimal("10"),
}


class HttpGateway(PaymentGateway):
    """
    Wspolna czesc bramek HTTP:
    -konfiguracja (klucze, base_url)
    -wywolanie API z timeoutem i retry
    -przeliczanie kwot na najmniejsze jednostki
    """

    def __init__(self, config: dict, timeout: int | None = None):
        self.config = config or {}
        self.base_url = (self.config.get("base_url") or "").rstrip("/")
        self.timeout = timeout or GATEWAY_TIMEOUT_SECONDS

    def is_available(self) -> bool:
        return bool(self.config.get("secret_key"))

    @property
    def public_key(self) -> str | None:
        return self.config.get("public_key") or None

    @property
    def webhook_secret(self) -> str:
        return self.config.get("webhook_secret") or ""

    def webhook_url(self, shop_id: int) -> str:
        return f"{APP_BASE_URL}/shops/{shop_id}/webhooks/{self.identifier}"

    def callback_url(self, order, options: dict) -> str:
        return options.get("callback_url") or f"{APP_BASE_URL}/shops/{order.shop_id}/orders/{order.id}"

    @staticmethod
    def minimum_amount(currency: str) -> Decimal:
        return MINIMUM_AMOUNTS.get(currency.upper(), Decimal("1"))

    @staticmethod
    def to_smallest_unit(amount, currency: str) -> int:
        return to_smallest_unit(amount, currency)

    @staticmethod
    def from_smallest_unit(amount, currency: str) -> Decimal:
        return from_smallest_unit(int(amount or 0), currency)

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.config.get('secret_key', '')}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _make_request(
        self, method: str, endpoint: str, payload: dict | None = None, params: dict | None = None
    ) -> tuple[int, dict]:
        """
        Zwraca (status, body). 4xx wraca normalnie - bramka ocenia odpowiedz sama.
        Blad sieci / 5xx po wyczerpaniu retry -> GatewayRequestFailed.
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        try:
            status, body = self._send(method, url, payload, params)
        except RetryableHTTPStatus as e:
            logger.error(f"Gateway {self.identifier} {method} {endpoint} failed with HTTP {e.status_code}")
            raise GatewayRequestFailed(self.identifier, str(e), status_code=e.status_code)
        except requests.RequestException as e:
            logger.error(f"Gateway {self.identifier} {method} {endpoint} request error: {e}")
            raise GatewayRequestFailed(self.identifier, str(e))

        if status >= 400:
            logger.error(f"Gateway {self.identifier} {method} {endpoint} rejected with HTTP {status}: {body}")
        return status, body

    @http_retry()
    def _send(self, method: str, url: str, payload: dict | None, params: dict | None) -> tuple[int, dict]:
        logger.info(f"{self.identifier} {method} {url}")
        resp = requests.request(
            method,
            url,
            json=payload,
            params=params,
            headers=self._headers(),
            timeout=self.timeout,
        )
        try:
            body = resp.json() or {}
        except ValueError:
            body = {"message": resp.text}

        if resp.status_code >= 500:
            raise RetryableHTTPStatus(resp.status_code, body)
        return resp.status_code, body

    def _log_event(self, event: str, order, **data):
        extra = " ".join(f"{k}={v}" for k, v in data.items())
        logger.info(
            f"Payment event: {event} gateway={self.identifier} order_id={order.id} "
            f"order_number={order.order_number} tenant_id={order.tenant_id} {extra}".rstrip()
        )

    @staticmethod
    def _customer_email(order) -> str | None:
        if order.customer_email:
            return order.customer_email
        address = order.shipping_address or {}
        return address.get("email")
