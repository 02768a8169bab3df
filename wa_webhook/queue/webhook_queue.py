"""Main and dead-letter webhook queues over a list store."""
from typing import Dict, Any, Optional

from wa_webhook import settings
from wa_webhook.logging_conf import logger
from wa_webhook.queue.models import MessagePayload, QueuedEnvelope, WebhookPayload
from wa_webhook.queue.store import ListStore


class WebhookQueue:
    """Binds a store to the main and dead-letter list keys.

    Producers only ever call the ``enqueue``/``queue_*`` methods; the worker
    and admin operations use the lower-level push/pop helpers.
    """

    def __init__(self, store: ListStore, queue_key: Optional[str] = None,
                 failed_key: Optional[str] = None):
        self.store = store
        self.queue_key = queue_key or settings.WEBHOOK_QUEUE_KEY
        self.failed_key = failed_key or settings.WEBHOOK_FAILED_KEY

    def enqueue(self, payload: WebhookPayload) -> QueuedEnvelope:
        """Wrap a payload in a fresh envelope and append it to the main queue.

        Raises QueueStoreError if the store is unavailable.
        """
        envelope = QueuedEnvelope(payload=payload)
        self.push(envelope)
        logger.debug(f"Webhook queued: {payload.event} for session {payload.session_id}")
        return envelope

    def queue_event(self, session_id: str, event: str, data: Dict[str, Any]) -> QueuedEnvelope:
        return self.enqueue(WebhookPayload.create(session_id, event, data))

    def queue_message(self, session_id: str, message: MessagePayload) -> QueuedEnvelope:
        return self.queue_event(session_id, "message", {"message": message.to_dict()})

    def push(self, envelope: QueuedEnvelope) -> None:
        self.store.push(self.queue_key, envelope.to_json())

    def pop_raw(self) -> Optional[str]:
        return self.store.pop(self.queue_key)

    def push_dead_letter(self, entry: str) -> None:
        self.store.push(self.failed_key, entry)

    def pop_dead_letter(self) -> Optional[str]:
        return self.store.pop(self.failed_key)

    def depth(self) -> int:
        return self.store.length(self.queue_key)

    def dead_letter_depth(self) -> int:
        return self.store.length(self.failed_key)
