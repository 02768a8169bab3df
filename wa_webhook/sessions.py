"""Registry of live WhatsApp sessions."""
import threading
from typing import Dict, List, Optional, Protocol, Tuple


class SessionHandle(Protocol):
    """What the relay needs to know about a connected client."""

    def is_connected(self) -> bool:
        ...

    def is_logged_in(self) -> bool:
        ...


class SessionRegistry:
    """Thread-safe mapping of session id to its client handle."""

    def __init__(self):
        self._sessions: Dict[str, SessionHandle] = {}
        self._lock = threading.Lock()

    def add(self, session_id: str, handle: SessionHandle) -> None:
        with self._lock:
            self._sessions[session_id] = handle

    def remove(self, session_id: str) -> Optional[SessionHandle]:
        with self._lock:
            return self._sessions.pop(session_id, None)

    def get(self, session_id: str) -> Optional[SessionHandle]:
        with self._lock:
            return self._sessions.get(session_id)

    def items(self) -> List[Tuple[str, SessionHandle]]:
        """Snapshot, safe to iterate while sessions come and go."""
        with self._lock:
            return list(self._sessions.items())

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions
