"""Pytest configuration and fixtures."""

import os
import tempfile

# Keep log files and the default spool out of the working tree
_RUNTIME_DIR = tempfile.mkdtemp(prefix="wa-webhook-tests-")
os.environ.setdefault("LOGS_DIR", os.path.join(_RUNTIME_DIR, "logs"))
os.environ.setdefault("SPOOL_BASE_DIR", os.path.join(_RUNTIME_DIR, "spool"))
os.environ.setdefault("WEBHOOK_URL", "http://sink.test/webhook")

import pytest

from wa_webhook.errors import DeliveryError
from wa_webhook.queue.spool_store import SpoolListStore
from wa_webhook.queue.webhook_queue import WebhookQueue


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSink:
    """Records delivered payloads; fails the first ``fail_times`` attempts (or all)."""

    timeout = 1.0

    def __init__(self, fail_times: int = 0, always_fail: bool = False, status_code: int = 500):
        self.fail_times = fail_times
        self.always_fail = always_fail
        self.status_code = status_code
        self.attempts = []
        self.delivered = []

    def deliver(self, payload):
        self.attempts.append(payload)
        if self.always_fail or len(self.attempts) <= self.fail_times:
            raise DeliveryError(f"webhook returned status {self.status_code}", self.status_code)
        self.delivered.append(payload)
        return 200

    def close(self):
        pass


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(tmp_path):
    return SpoolListStore(tmp_path / "spool")


@pytest.fixture
def queue(store):
    return WebhookQueue(store, queue_key="test:queue", failed_key="test:failed")
