"""Events and inter-agent messaging for swarmgraph."""

from .events import EVENT_NAMES, Event, EventBus, EventRecorder
from .protocols import AgentCommunicator

__all__ = [
    "EVENT_NAMES",
    "AgentCommunicator",
    "Event",
    "EventBus",
    "EventRecorder",
]
