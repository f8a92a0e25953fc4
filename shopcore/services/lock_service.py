# shopcore/services/lock_service.py
import redis

from shopcore.utils.retry import redis_retry
from shopcore.utils.settings import REDIS_URL, PAYMENT_LOCK_TTL_SECONDS
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)

#LUA porownaj i usun, atomowo
#nie mozna wcisnac sie miedzy GET a DEL, wiec zwalnia tylko wlasciciel locka
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""


class LockService:
    """
    Krotki lock na inicjacje platnosci zamowienia
    -dwa rownolegle "zaplac" dla tego samego zamowienia -> tylko jedno idzie do bramki
    -zwalnianie locka przez lua
    Stan magazynu NIE jest tu pilnowany, to robi baza (row lock).
    """

    def __init__(self, url: str | None = None, client=None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @staticmethod
    def _key(order_id: int) -> str:
        return f"order:{order_id}:payment:lock"

    @redis_retry()
    def acquire_payment_lock(self, order_id: int, token: str, ttl: int = PAYMENT_LOCK_TTL_SECONDS) -> bool:
        key = self._key(order_id)
        logger.info(f"Acquire lock {key} token {token}")
        #SET order:1:payment:lock "abc" NX EX 60
        return bool(self.redis.set(name=key, value=token, nx=True, ex=ttl))

    @redis_retry()
    def release_payment_lock(self, order_id: int, token: str) -> bool:
        key = self._key(order_id)
        logger.info(f"Release lock {key} token {token}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        return bool(res)
