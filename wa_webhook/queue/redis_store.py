"""Redis-backed list store."""
from typing import Optional

from redis import Redis
from redis.exceptions import RedisError

from wa_webhook.errors import QueueStoreError
from wa_webhook.logging_conf import logger
from wa_webhook.queue.store import ListStore


class RedisListStore(ListStore):
    """Lists kept in Redis: LPUSH at the tail end, RPOP from the head end.

    Both commands are atomic server-side, which is what lets several
    workers share one list.
    """

    def __init__(self, client: Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str, ping: bool = True):
        client = Redis.from_url(url, decode_responses=True, socket_timeout=5)
        if ping:
            try:
                client.ping()
            except RedisError as e:
                raise QueueStoreError(f"Failed to connect to Redis: {e}") from e
            logger.info("Redis connected successfully")
        return cls(client)

    def push(self, key: str, value: str) -> None:
        try:
            self.client.lpush(key, value)
        except RedisError as e:
            raise QueueStoreError(f"LPUSH {key} failed: {e}") from e

    def pop(self, key: str) -> Optional[str]:
        try:
            value = self.client.rpop(key)
        except RedisError as e:
            raise QueueStoreError(f"RPOP {key} failed: {e}") from e
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def length(self, key: str) -> int:
        try:
            return int(self.client.llen(key))
        except RedisError as e:
            raise QueueStoreError(f"LLEN {key} failed: {e}") from e

    def close(self) -> None:
        self.client.close()
