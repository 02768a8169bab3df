"""Translate protocol events into webhook payloads and enqueue them."""
import time
from typing import Any, Callable, Dict, Optional, Type

from wa_webhook.errors import QueueStoreError
from wa_webhook.events import (
    ChatPresenceEvent,
    ConnectedEvent,
    DisconnectedEvent,
    HistorySyncEvent,
    LoggedOutEvent,
    MessageEvent,
    PresenceEvent,
    PushNameEvent,
    RawEvent,
    ReceiptEvent,
)
from wa_webhook.logging_conf import logger
from wa_webhook.queue.models import MessagePayload, WebhookPayload
from wa_webhook.queue.webhook_queue import WebhookQueue

Translator = Callable[[str, Any], WebhookPayload]

# Event class -> pure function (session_id, event) -> payload
TRANSLATORS: Dict[Type, Translator] = {}


def register(event_type: Type) -> Callable[[Translator], Translator]:
    """Decorator adding a translator for ``event_type`` to the dispatch table."""
    def decorator(func: Translator) -> Translator:
        TRANSLATORS[event_type] = func
        return func
    return decorator


def translate(session_id: str, event: Any) -> Optional[WebhookPayload]:
    """Payload for ``event``, or None when no translator is registered for it."""
    func = TRANSLATORS.get(type(event))
    if func is None:
        return None
    return func(session_id, event)


def _now() -> int:
    return int(time.time())


@register(MessageEvent)
def translate_message(session_id: str, evt: MessageEvent) -> WebhookPayload:
    quoted = None
    if evt.quoted_id:
        quoted = {"id": evt.quoted_id, "from": evt.quoted_sender}
    message = MessagePayload(
        id=evt.id,
        sender=evt.sender,
        chat=evt.chat,
        type=evt.type,
        timestamp=evt.timestamp,
        body=evt.body,
        caption=evt.caption,
        media_url=evt.media_url,
        media_mime_type=evt.media_mime_type,
        is_group=evt.is_group,
        is_from_me=evt.is_from_me,
        push_name=evt.push_name,
        group_name=evt.group_name if evt.is_group else "",
        quoted_message=quoted,
        raw=evt.raw,
    )
    return WebhookPayload.create(session_id, "message", {"message": message.to_dict()}, _now())


@register(ReceiptEvent)
def translate_receipt(session_id: str, evt: ReceiptEvent) -> WebhookPayload:
    return WebhookPayload.create(session_id, "receipt", {
        "type": evt.type,
        "messageId": list(evt.message_ids),
        "from": evt.chat,
        "timestamp": evt.timestamp,
    }, _now())


@register(PresenceEvent)
def translate_presence(session_id: str, evt: PresenceEvent) -> WebhookPayload:
    return WebhookPayload.create(session_id, "presence", {
        "from": evt.sender,
        "available": not evt.unavailable,
        "lastSeen": evt.last_seen,
    }, _now())


@register(ChatPresenceEvent)
def translate_typing(session_id: str, evt: ChatPresenceEvent) -> WebhookPayload:
    return WebhookPayload.create(session_id, "typing", {
        "chat": evt.chat,
        "sender": evt.sender,
        "state": "composing" if evt.composing else "paused",
        "media": "audio" if evt.audio else "text",
    }, _now())


@register(ConnectedEvent)
def translate_connected(session_id: str, evt: ConnectedEvent) -> WebhookPayload:
    return WebhookPayload.create(session_id, "connection", {"status": "connected"}, _now())


@register(DisconnectedEvent)
def translate_disconnected(session_id: str, evt: DisconnectedEvent) -> WebhookPayload:
    return WebhookPayload.create(session_id, "connection", {"status": "disconnected"}, _now())


@register(LoggedOutEvent)
def translate_logged_out(session_id: str, evt: LoggedOutEvent) -> WebhookPayload:
    return WebhookPayload.create(session_id, "connection", {
        "status": "logged_out",
        "reason": evt.reason,
    }, _now())


@register(HistorySyncEvent)
def translate_history_sync(session_id: str, evt: HistorySyncEvent) -> WebhookPayload:
    return WebhookPayload.create(session_id, "history_sync", {
        "type": evt.sync_type,
        "progress": evt.progress,
    }, _now())


@register(PushNameEvent)
def translate_push_name(session_id: str, evt: PushNameEvent) -> WebhookPayload:
    return WebhookPayload.create(session_id, "push_name", {
        "jid": evt.jid,
        "pushName": evt.new_push_name,
        "oldName": evt.old_push_name,
    }, _now())


@register(RawEvent)
def translate_raw(session_id: str, evt: RawEvent) -> WebhookPayload:
    return WebhookPayload.create(session_id, evt.event, evt.data, evt.timestamp)


class EventForwarder:
    """Per-session handler the connection layer feeds protocol events into."""

    def __init__(self, session_id: str, queue: WebhookQueue):
        self.session_id = session_id
        self.queue = queue

    def handle(self, event: Any) -> Optional[WebhookPayload]:
        """Translate and enqueue one event.

        Enqueue failures are logged and the event is dropped; retrying is
        the delivery worker's job once an envelope exists.
        """
        try:
            payload = translate(self.session_id, event)
        except ValueError as e:
            logger.error(f"Dropped {type(event).__name__} for session {self.session_id}: {e}")
            return None
        if payload is None:
            logger.debug(f"No webhook translator for {type(event).__name__}")
            return None

        try:
            self.queue.enqueue(payload)
        except QueueStoreError as e:
            logger.error(
                f"[{payload.event.upper()}] Failed to queue webhook for session {self.session_id}: {e}",
                exc_info=True,
            )
            return None
        return payload
