"""Protocol events handed to the webhook relay by the WhatsApp connection layer.

The connection layer extracts these from the protocol library; the relay
only turns them into webhook payloads.
"""
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional


@dataclass
class MessageEvent:
    id: str
    sender: str
    chat: str
    timestamp: int
    type: str = "unknown"  # text, image, video, audio, document, sticker, location, ...
    body: str = ""
    caption: str = ""
    media_url: str = ""
    media_mime_type: str = ""
    is_group: bool = False
    is_from_me: bool = False
    push_name: str = ""
    group_name: str = ""
    quoted_id: str = ""
    quoted_sender: str = ""
    raw: Optional[Dict[str, Any]] = None


@dataclass
class ReceiptEvent:
    type: str  # delivered, read, played, ...
    chat: str
    message_ids: List[str]
    timestamp: int


@dataclass
class PresenceEvent:
    sender: str
    unavailable: bool
    last_seen: int = 0


@dataclass
class ChatPresenceEvent:
    chat: str
    sender: str
    composing: bool
    audio: bool = False


@dataclass
class ConnectedEvent:
    pass


@dataclass
class DisconnectedEvent:
    pass


@dataclass
class LoggedOutEvent:
    reason: str = ""


@dataclass
class HistorySyncEvent:
    sync_type: str
    progress: int


@dataclass
class PushNameEvent:
    jid: str
    old_push_name: str
    new_push_name: str


@dataclass
class RawEvent:
    """Producer-defined event forwarded with its data as-is."""

    event: str
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: Optional[int] = None
