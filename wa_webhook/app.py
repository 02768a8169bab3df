"""Main application - delivers queued WhatsApp gateway events to the webhook sink."""
import signal
import sys
import threading
from typing import Optional

from wa_webhook.logging_conf import logger
from wa_webhook import settings
from wa_webhook.errors import QueueStoreError
from wa_webhook.health_monitor import HealthMonitor
from wa_webhook.queue.spool_store import SpoolListStore
from wa_webhook.queue.store import ListStore, build_store
from wa_webhook.queue.webhook_queue import WebhookQueue
from wa_webhook.sessions import SessionRegistry
from wa_webhook.sink_client import SinkClient
from wa_webhook.translator import EventForwarder
from wa_webhook.worker import Worker


class Application:
    """Wires the queue store, delivery worker and heartbeat together.

    The connection layer registers sessions in ``registry`` and feeds their
    protocol events to the forwarder returned by ``forwarder(session_id)``.
    """

    def __init__(self, store: Optional[ListStore] = None,
                 registry: Optional[SessionRegistry] = None):
        self.store = store
        self.registry = registry or SessionRegistry()
        self.queue = None
        self.worker = None
        self.monitor = None
        self.running = False
        self._stopped = threading.Event()

    def start(self):
        """Start the application."""
        logger.info("=" * 50)
        logger.info("WhatsApp Gateway Webhook Relay")
        logger.info("=" * 50)
        logger.info(f"Sink: {settings.get_webhook_url()}")
        logger.info(f"Queue backend: {settings.QUEUE_BACKEND}")
        logger.info(f"Retries: {settings.WEBHOOK_MAX_RETRIES} x {settings.WEBHOOK_RETRY_DELAY}s")
        logger.info("=" * 50)

        settings.validate_config()

        if self.store is None:
            self.store = build_store()
        if isinstance(self.store, SpoolListStore):
            self.store.recover_claims()

        self.queue = WebhookQueue(self.store)
        self.worker = Worker(self.queue, SinkClient())
        self.monitor = HealthMonitor(self.registry, self.queue)

        self.running = True
        self._stopped.clear()
        self.worker.start()
        self.monitor.start()
        logger.info(
            f"Started - {self.queue.depth()} queued, {self.queue.dead_letter_depth()} dead-lettered"
        )

    def forwarder(self, session_id: str) -> EventForwarder:
        return EventForwarder(session_id, self.queue)

    def stop(self):
        """Stop the application."""
        if not self.running:
            return
        self.running = False
        self.monitor.stop()
        self.worker.stop()
        self.worker.sink.close()
        self.store.close()
        self._stopped.set()
        logger.info("Stopped")

    def run(self):
        """Start and block until stopped."""
        self.start()
        try:
            self._stopped.wait()
        except KeyboardInterrupt:
            pass
        finally:
            self.stop()


def main():
    """Entry point."""
    app = Application()

    def signal_handler(sig, frame):
        logger.info(f"Received signal {sig}")
        app.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        app.run()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
    except QueueStoreError as e:
        logger.error(f"Queue store unavailable: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
