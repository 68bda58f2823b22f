"""
In-memory revocation store - Implements RevocationStore protocol.

Holds the token and session ids of logged-out sessions for the lifetime
of the process. Entries are dropped once their expiry has passed, since
every token they cover is rejected as expired by then. Nothing survives
a restart; a multi-instance deployment must substitute a shared store.
"""

import threading
from collections.abc import Callable
from datetime import datetime

from src.domain.models import utcnow


class InMemoryRevocationStore:
    """
    Implements RevocationStore protocol with a lock-guarded dict.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._revoked: dict[str, datetime] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def add(self, token_id: str, expires_at: datetime) -> None:
        with self._lock:
            self._prune()
            self._revoked[token_id] = expires_at

    def contains(self, token_id: str) -> bool:
        with self._lock:
            return token_id in self._revoked

    def __len__(self) -> int:
        with self._lock:
            return len(self._revoked)

    def _prune(self) -> None:
        now = self._clock()
        for token_id in [t for t, exp in self._revoked.items() if exp < now]:
            del self._revoked[token_id]
