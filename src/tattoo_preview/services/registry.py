"""In-memory registry of live journeys."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from uuid import UUID, uuid4

from tattoo_preview.services.orchestrator import Gateway, Orchestrator

logger = logging.getLogger(__name__)


@dataclass
class _RegistryEntry:
    orchestrator: Orchestrator
    expires_at: float


@dataclass
class SessionRegistry:
    """Keeps one orchestrator per journey while it stays in use.

    Every lookup pushes the expiry of the journey forward by the idle TTL.
    Journeys idle for longer are dropped on the next create or lookup, and
    ``on_remove`` is called with their id, as it is for explicit discards.
    """

    gateway: Gateway
    map_available: bool
    idle_ttl_seconds: float
    _clock: Callable[[], float]
    _on_remove: Callable[[UUID], None] | None
    _entries: dict[UUID, _RegistryEntry]

    def __init__(
        self,
        gateway: Gateway,
        map_available: bool = False,
        idle_ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
        on_remove: Callable[[UUID], None] | None = None,
    ) -> None:
        self.gateway = gateway
        self.map_available = map_available
        self.idle_ttl_seconds = idle_ttl_seconds
        self._clock = clock
        self._on_remove = on_remove
        self._entries = {}

    def create(self) -> tuple[UUID, Orchestrator]:
        """Start a new journey with an empty session."""
        self.evict_expired()
        session_id = uuid4()
        orchestrator = Orchestrator(
            gateway=self.gateway, map_available=self.map_available
        )
        self._entries[session_id] = _RegistryEntry(
            orchestrator=orchestrator,
            expires_at=self._clock() + self.idle_ttl_seconds,
        )
        return session_id, orchestrator

    def get(self, session_id: UUID) -> Orchestrator | None:
        """Return the orchestrator for a journey if it has not expired."""
        self.evict_expired()
        entry = self._entries.get(session_id)
        if entry is None:
            return None
        entry.expires_at = self._clock() + self.idle_ttl_seconds
        return entry.orchestrator

    def discard(self, session_id: UUID) -> bool:
        """Forget a journey; returns false when it was unknown."""
        if self._entries.pop(session_id, None) is None:
            return False
        self._removed(session_id)
        return True

    def evict_expired(self) -> int:
        """Drop journeys past their idle TTL and return how many were dropped."""
        now = self._clock()
        expired = [
            session_id
            for session_id, entry in self._entries.items()
            if now >= entry.expires_at
        ]
        for session_id in expired:
            self._entries.pop(session_id, None)
            self._removed(session_id)
        if expired:
            logger.info("Evicted %d idle sessions", len(expired))
        return len(expired)

    def _removed(self, session_id: UUID) -> None:
        if self._on_remove is not None:
            self._on_remove(session_id)

    def __len__(self) -> int:
        return len(self._entries)
