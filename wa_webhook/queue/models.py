"""Queue data models."""
import json
import time
from dataclasses import dataclass, field, replace
from typing import Dict, Any, Optional


@dataclass(frozen=True)
class WebhookPayload:
    """Envelope body POSTed to the sink."""

    event: str  # "message", "receipt", "presence", "typing", "connection", ...
    session_id: str  # Originating WhatsApp session
    timestamp: int  # Unix seconds, set by the producer
    data: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.event:
            raise ValueError("webhook payload event must not be empty")
        if not self.session_id:
            raise ValueError("webhook payload session_id must not be empty")

    @classmethod
    def create(cls, session_id: str, event: str, data: Optional[Dict[str, Any]] = None,
               timestamp: Optional[int] = None):
        """Factory method stamping the current time when none is given."""
        return cls(
            event=event,
            session_id=session_id,
            timestamp=int(time.time()) if timestamp is None else int(timestamp),
            data=dict(data or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.event,
            "sessionId": self.session_id,
            "timestamp": self.timestamp,
            "data": self.data,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]):
        return cls(
            event=raw["event"],
            session_id=raw["sessionId"],
            timestamp=int(raw["timestamp"]),
            data=raw.get("data") or {},
        )


@dataclass
class QueuedEnvelope:
    """A payload sitting in the queue, with its retry bookkeeping."""

    payload: WebhookPayload
    retries: int = 0
    created_at: int = field(default_factory=lambda: int(time.time()))

    def with_retries(self, retries: int) -> "QueuedEnvelope":
        """Copy with a new retry count; created_at is carried over unchanged."""
        return replace(self, retries=retries)

    def to_json(self) -> str:
        return json.dumps({
            "payload": self.payload.to_dict(),
            "retries": self.retries,
            "createdAt": self.created_at,
        })

    @classmethod
    def from_json(cls, raw: str):
        """Decode a stored envelope.

        Raises ValueError for anything that is not a well-formed envelope, so
        callers have a single exception to route to the dead-letter list.
        """
        try:
            doc = json.loads(raw)
            retries = int(doc["retries"])
            if retries < 0:
                raise ValueError(f"negative retry count: {retries}")
            return cls(
                payload=WebhookPayload.from_dict(doc["payload"]),
                retries=retries,
                created_at=int(doc["createdAt"]),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"malformed queued webhook: {e!r}") from e


def malformed_entry(raw: str, error: str) -> str:
    """Dead-letter record for a queue entry that could not be decoded."""
    return json.dumps({
        "malformed": True,
        "raw": raw,
        "error": error,
        "createdAt": int(time.time()),
    })


def is_malformed_entry(raw: str) -> bool:
    try:
        doc = json.loads(raw)
    except ValueError:
        return False
    return isinstance(doc, dict) and doc.get("malformed") is True


@dataclass
class MessagePayload:
    """Body of a ``message`` event, in the gateway's wire shape."""

    id: str
    sender: str
    chat: str
    type: str
    timestamp: int
    body: str = ""
    caption: str = ""
    media_url: str = ""
    media_mime_type: str = ""
    is_group: bool = False
    is_from_me: bool = False
    push_name: str = ""
    group_name: str = ""
    quoted_message: Optional[Dict[str, Any]] = None
    raw: Optional[Dict[str, Any]] = None  # protocol fields with no first-class key

    def to_dict(self) -> Dict[str, Any]:
        doc = {
            "id": self.id,
            "from": self.sender,
            "to": self.chat,
            "type": self.type,
            "isGroup": self.is_group,
            "isFromMe": self.is_from_me,
            "timestamp": self.timestamp,
        }
        # Optional fields are omitted when empty
        optional = {
            "body": self.body,
            "caption": self.caption,
            "mediaUrl": self.media_url,
            "mediaMimeType": self.media_mime_type,
            "pushName": self.push_name,
            "groupName": self.group_name,
            "quotedMessage": self.quoted_message,
            "raw": self.raw,
        }
        doc.update({key: value for key, value in optional.items() if value})
        return doc
