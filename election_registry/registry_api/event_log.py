"""Bounded in-memory feed of recent registry events."""
import logging
import threading
from collections import deque
from typing import Deque, List, Optional

from ..shared import RegistryEvent

logger = logging.getLogger(__name__)


class EventLog:
    """Keeps the most recent events for the /events endpoint."""

    def __init__(self, max_size: int = 1000):
        if max_size < 1:
            raise ValueError("Event log size must be at least 1")
        self._events: Deque[RegistryEvent] = deque(maxlen=max_size)
        self._lock = threading.Lock()

    def __call__(self, event: RegistryEvent) -> None:
        self.record(event)

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def record(self, event: RegistryEvent) -> None:
        with self._lock:
            self._events.append(event)
        logger.debug(f"Recorded event {event.event_type.value} sequence={event.sequence}")

    def recent(self, limit: Optional[int] = None) -> List[RegistryEvent]:
        """
        Return recorded events, oldest first.

        Args:
            limit: If given, only the newest `limit` events
        """
        with self._lock:
            events = list(self._events)
        if limit is not None:
            events = events[-limit:] if limit > 0 else []
        return events
