"""Worker delivering queued webhooks to the sink."""
import threading
from enum import Enum
from typing import Optional

from wa_webhook import settings
from wa_webhook.errors import DeliveryError, QueueStoreError
from wa_webhook.logging_conf import logger
from wa_webhook.queue.models import QueuedEnvelope, malformed_entry
from wa_webhook.queue.webhook_queue import WebhookQueue
from wa_webhook.retry_scheduler import RetryScheduler
from wa_webhook.sink_client import SinkClient


class Outcome(str, Enum):
    """What a single tick did."""

    EMPTY = "empty"
    DELIVERED = "delivered"
    RETRY_SCHEDULED = "retry_scheduled"
    DEAD_LETTERED = "dead_lettered"
    MALFORMED = "malformed"
    STORE_ERROR = "store_error"


class Worker:
    """Pops one envelope per tick and delivers it, retrying on failure."""

    def __init__(self, queue: WebhookQueue, sink: Optional[SinkClient] = None,
                 scheduler: Optional[RetryScheduler] = None,
                 max_retries: Optional[int] = None, retry_delay: Optional[float] = None,
                 poll_interval: Optional[float] = None):
        self.queue = queue
        self.sink = sink or SinkClient()
        self.scheduler = scheduler or RetryScheduler()
        self.max_retries = settings.WEBHOOK_MAX_RETRIES if max_retries is None else max_retries
        self.retry_delay = settings.WEBHOOK_RETRY_DELAY if retry_delay is None else retry_delay
        self.poll_interval = settings.WEBHOOK_POLL_INTERVAL if poll_interval is None else poll_interval
        self.thread = None
        self._stop_event = threading.Event()

    @property
    def running(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def start(self):
        """Start the worker in a background thread."""
        if self.running:
            logger.warning("Webhook worker is already running")
            return

        self._stop_event.clear()
        self.thread = threading.Thread(target=self._run, name="webhook-worker", daemon=True)
        self.thread.start()
        logger.info(f"Webhook worker started (interval: {self.poll_interval}s)")

    def stop(self, timeout: Optional[float] = None):
        """Stop the worker and push pending retries back onto the main queue."""
        self._stop_event.set()
        if self.thread:
            # A delivery in progress may hold the loop for up to the sink timeout
            self.thread.join(timeout=timeout if timeout is not None else self.sink.timeout + 1)
            if self.thread.is_alive():
                # A delivery is still in flight; the loop flushes once it returns
                logger.warning("Webhook worker did not stop within timeout, retries flush on exit")
                return
            self.thread = None
        self.flush_pending_retries()
        logger.info("Webhook worker stopped")

    def flush_pending_retries(self) -> int:
        """Cancel every pending retry and re-queue its envelope immediately."""
        pending = self.scheduler.cancel_all()
        flushed = 0
        for envelope in pending:
            try:
                self.queue.push(envelope)
                flushed += 1
            except QueueStoreError as e:
                logger.error(
                    f"[WEBHOOK] Lost pending retry for {envelope.payload.event} "
                    f"(session: {envelope.payload.session_id}): {e}"
                )
        if flushed:
            logger.info(f"[WEBHOOK] Re-queued {flushed} pending retries on shutdown")
        return flushed

    def _run(self):
        """Main worker loop."""
        logger.info("Webhook worker thread started")

        while not self._stop_event.is_set():
            try:
                self.process_next()
            except Exception as e:
                logger.error(f"Webhook worker error: {e}", exc_info=True)
            self._stop_event.wait(self.poll_interval)

        # Runs after the last delivery, so a retry it scheduled is not stranded
        self.flush_pending_retries()
        logger.info("Webhook worker thread stopped")

    def process_next(self) -> Outcome:
        """Run one tick: release due retries, then pop and deliver one envelope."""
        self._release_due_retries()

        try:
            raw = self.queue.pop_raw()
        except QueueStoreError as e:
            logger.error(f"Failed to pop from webhook queue: {e}")
            return Outcome.STORE_ERROR
        if raw is None:
            return Outcome.EMPTY

        try:
            envelope = QueuedEnvelope.from_json(raw)
        except ValueError as e:
            return self._dead_letter_malformed(raw, str(e))

        payload = envelope.payload
        try:
            self.sink.deliver(payload)
        except DeliveryError as e:
            logger.warning(
                f"[WEBHOOK] Delivery failed for {payload.event} (session: {payload.session_id}): {e}"
            )
            return self._handle_failure(envelope)
        except Exception as e:
            # The envelope is already off the queue; count it as a failed attempt
            logger.error(
                f"[WEBHOOK] Unexpected delivery error for {payload.event} "
                f"(session: {payload.session_id}): {e}",
                exc_info=True,
            )
            return self._handle_failure(envelope)

        logger.info(f"[WEBHOOK] Delivered: {payload.event} | session: {payload.session_id}")
        return Outcome.DELIVERED

    def _handle_failure(self, envelope: QueuedEnvelope) -> Outcome:
        envelope = envelope.with_retries(envelope.retries + 1)
        payload = envelope.payload

        if envelope.retries < self.max_retries:
            self.scheduler.schedule(envelope, self.retry_delay)
            logger.info(
                f"[WEBHOOK] Retry scheduled {envelope.retries}/{self.max_retries} "
                f"for {payload.event} (session: {payload.session_id})"
            )
            return Outcome.RETRY_SCHEDULED

        try:
            self.queue.push_dead_letter(envelope.to_json())
        except QueueStoreError as e:
            logger.error(
                f"[WEBHOOK] Could not dead-letter {payload.event} (session: {payload.session_id}): {e}"
            )
            return Outcome.STORE_ERROR
        logger.error(
            f"[WEBHOOK] FAILED after {envelope.retries} retries: {payload.event} "
            f"(session: {payload.session_id})"
        )
        return Outcome.DEAD_LETTERED

    def _dead_letter_malformed(self, raw: str, error: str) -> Outcome:
        logger.error(f"Failed to decode queued webhook, moving to dead-letter: {error}")
        try:
            self.queue.push_dead_letter(malformed_entry(raw, error))
        except QueueStoreError as e:
            logger.error(f"Dropped undecodable webhook entry: {e}")
            return Outcome.STORE_ERROR
        return Outcome.MALFORMED

    def _release_due_retries(self) -> None:
        for envelope in self.scheduler.pop_due():
            try:
                self.queue.push(envelope)
            except QueueStoreError as e:
                # Put it back; the next tick tries again
                self.scheduler.schedule(envelope, self.retry_delay)
                logger.error(f"Failed to re-queue retry for {envelope.payload.event}: {e}")
