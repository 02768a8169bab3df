"""Periodic connection heartbeat for live WhatsApp sessions."""
import threading
from typing import Dict, List, Optional

from wa_webhook import settings
from wa_webhook.errors import QueueStoreError
from wa_webhook.logging_conf import logger
from wa_webhook.queue.models import WebhookPayload
from wa_webhook.queue.webhook_queue import WebhookQueue
from wa_webhook.sessions import SessionHandle, SessionRegistry

CONNECTED = "connected"
CONNECTING = "connecting"
DISCONNECTED = "disconnected"


def derive_status(network_connected: bool, logged_in: bool) -> str:
    if network_connected and logged_in:
        return CONNECTED
    if network_connected:
        return CONNECTING
    return DISCONNECTED


def mask_session_id(session_id: str) -> str:
    """Hide the last four digits of a phone-number session id for logging."""
    if len(session_id) <= 4:
        return "xxxx"
    return session_id[:-4] + "xxxx"


class HealthMonitor:
    """Emits a ``connection`` webhook whenever a session's status changes.

    Steady state produces no events; only transitions (and the first
    observation of a session) are queued.
    """

    def __init__(self, registry: SessionRegistry, queue: WebhookQueue,
                 interval: Optional[int] = None):
        self.registry = registry
        self.queue = queue
        self.interval = settings.HEARTBEAT_INTERVAL if interval is None else interval
        self.thread = None
        self._stop_event = threading.Event()
        self._last_status: Dict[str, str] = {}
        self._status_lock = threading.Lock()

    def start(self):
        """Start the monitor in a background thread."""
        if self.thread is not None and self.thread.is_alive():
            logger.warning("Health monitor is already running")
            return

        self._stop_event.clear()
        self.thread = threading.Thread(target=self._run, name="health-monitor", daemon=True)
        self.thread.start()
        logger.info(f"Health monitor started (interval: {self.interval}s)")

    def stop(self):
        """Stop the monitor."""
        self._stop_event.set()
        if self.thread:
            self.thread.join(timeout=10)
            self.thread = None
        logger.info("Health monitor stopped")

    def last_status(self, session_id: str) -> Optional[str]:
        with self._status_lock:
            return self._last_status.get(session_id)

    def _run(self):
        """Main monitor loop."""
        logger.info("Health monitor thread started")

        while not self._stop_event.wait(self.interval):
            try:
                self.check_once()
            except Exception as e:
                logger.error(f"Health monitor error: {e}", exc_info=True)

        logger.info("Health monitor thread stopped")

    def check_once(self) -> List[WebhookPayload]:
        """Check every live session once; returns the payloads that were queued."""
        sessions = self.registry.items()
        emitted = []

        for session_id, handle in sessions:
            logger.debug(f"Checking WhatsApp client for {mask_session_id(session_id)}")
            payload = self.observe(session_id, self._status_of(handle))
            if payload is None:
                continue
            try:
                self.queue.enqueue(payload)
            except QueueStoreError as e:
                logger.error(
                    f"[HEARTBEAT] Failed to queue connection webhook for "
                    f"{mask_session_id(session_id)}: {e}",
                    exc_info=True,
                )
                # Forget the status so the next check reports the transition again
                with self._status_lock:
                    self._last_status.pop(session_id, None)
                continue
            emitted.append(payload)

        self._forget_missing({session_id for session_id, _ in sessions})
        return emitted

    def observe(self, session_id: str, status: str) -> Optional[WebhookPayload]:
        """Record ``status`` for a session and return a payload if it changed."""
        with self._status_lock:
            previous = self._last_status.get(session_id)
            if previous == status:
                return None
            self._last_status[session_id] = status

        logger.info(
            f"[HEARTBEAT] {mask_session_id(session_id)} status: {previous or 'unknown'} -> {status}"
        )
        return WebhookPayload.create(session_id, "connection", {
            "status": status,
            "source": "heartbeat",
        })

    def _status_of(self, handle: SessionHandle) -> str:
        return derive_status(bool(handle.is_connected()), bool(handle.is_logged_in()))

    def _forget_missing(self, live_ids) -> None:
        with self._status_lock:
            for session_id in list(self._last_status):
                if session_id not in live_ids:
                    del self._last_status[session_id]
