"""Durable list store interface and backend selection."""
from abc import ABC, abstractmethod
from typing import Optional

from wa_webhook import settings


class ListStore(ABC):
    """Named FIFO lists: push appends at the tail, pop removes from the head.

    Each backend makes push and pop atomic per key, so any number of
    producers and workers may share a store. Failures raise QueueStoreError.
    """

    @abstractmethod
    def push(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def pop(self, key: str) -> Optional[str]:
        """Remove and return the head of ``key``, or None when it is empty."""

    @abstractmethod
    def length(self, key: str) -> int:
        ...

    def close(self) -> None:
        """Release connections held by the backend."""


def build_store(backend: Optional[str] = None) -> ListStore:
    """Create the store named by ``backend`` (default: settings.QUEUE_BACKEND)."""
    backend = (backend or settings.QUEUE_BACKEND).lower()

    if backend == "spool":
        from wa_webhook.queue.spool_store import SpoolListStore
        return SpoolListStore(settings.SPOOL_BASE_DIR)
    if backend == "redis":
        from wa_webhook.queue.redis_store import RedisListStore
        return RedisListStore.from_url(settings.REDIS_URL)
    if backend == "postgres":
        from wa_webhook.queue.pg_store import PostgresListStore
        return PostgresListStore(settings.DATABASE_URL)

    raise ValueError(f"Unknown queue backend: {backend}")
