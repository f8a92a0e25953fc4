import logging

import redis
import requests
from tenacity import before_sleep_log, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from shopcore.utils.logging import get_logger
from shopcore.utils.settings import GATEWAY_RETRY_ATTEMPTS

logger = get_logger(__name__)


class RetryableHTTPStatus(requests.RequestException):
    """5xx od bramki - traktujemy jak blad sieci i ponawiamy."""

    def __init__(self, status_code: int, body: dict | None = None):
        super().__init__(f"Upstream returned HTTP {status_code}")
        self.status_code = status_code
        self.body = body or {}


def http_retry(attempts: int | None = None):
    # 4xx nie ponawiamy, wraca normalnie do bramki
    return retry(
        reraise=True,
        stop=stop_after_attempt(attempts or GATEWAY_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=0.3, min=0.3, max=3),
        retry=retry_if_exception_type(requests.RequestException),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )


def redis_retry(attempts: int = 3):
    return retry(
        reraise=True,
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(redis.RedisError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
