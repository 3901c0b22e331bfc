"""
Explicit notification interface.

The scheduler, coordinator and solver toolbox report lifecycle changes to an
:class:`EventBus` they are given at construction. Callers subscribe callbacks
to the bus; nothing is broadcast through module-level state.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from pydantic import BaseModel, Field

from ..utils.helpers import setup_logging

logger = setup_logging(__name__)

EVENT_NAMES = frozenset({
    "graph_created",
    "graph_started",
    "node_started",
    "node_completed",
    "node_failed",
    "graph_completed",
    "graph_failed",
    "swarm_created",
    "swarm_removed",
    "agent_added",
    "agent_removed",
    "task_started",
    "task_completed",
    "task_failed",
    "consensus_reached",
    "message_broadcast",
    "message_sent",
    "solve_completed",
})


class Event(BaseModel):
    """A single notification."""

    name: str
    source_id: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


Listener = Callable[[Event], None]


class EventBus:
    """Synchronous observer list with optional per-listener event filters."""

    def __init__(self) -> None:
        self._listeners: List[tuple] = []

    def subscribe(self, callback: Listener, events: Optional[Iterable[str]] = None) -> Listener:
        """
        Register a callback.

        Args:
            callback: Called with each matching :class:`Event`
            events: Event names to receive; all events when omitted

        Returns:
            The callback, so it can be passed to :meth:`unsubscribe`
        """
        names: Optional[Set[str]] = None
        if events is not None:
            names = set(events)
            unknown = names - EVENT_NAMES
            if unknown:
                raise ValueError(f"Unknown event names: {sorted(unknown)}")

        self._listeners.append((callback, names))
        return callback

    def unsubscribe(self, callback: Listener) -> bool:
        before = len(self._listeners)
        self._listeners = [(cb, names) for cb, names in self._listeners if cb is not callback]
        return len(self._listeners) != before

    def emit(self, name: str, source_id: str, **payload: Any) -> Event:
        event = Event(name=name, source_id=source_id, payload=payload)

        for callback, names in list(self._listeners):
            if names is not None and name not in names:
                continue
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Listener {callback!r} failed on {name}: {e}")

        return event

    @property
    def listener_count(self) -> int:
        return len(self._listeners)


class EventRecorder:
    """Listener that keeps every event it receives; handy for inspection."""

    def __init__(self) -> None:
        self.events: List[Event] = []

    def __call__(self, event: Event) -> None:
        self.events.append(event)

    def names(self) -> List[str]:
        return [e.name for e in self.events]

    def of(self, name: str) -> List[Event]:
        return [e for e in self.events if e.name == name]
