"""Error taxonomy for swarmgraph."""

from typing import List, Optional


class SwarmGraphError(Exception):
    """Base class for all swarmgraph errors."""


class ValidationError(SwarmGraphError):
    """Malformed graph, swarm or solver input."""


class CyclicDependencyError(SwarmGraphError):
    """A graph cannot make progress because of a cycle or unreachable node."""

    def __init__(self, message: str, cycle: Optional[List[str]] = None):
        super().__init__(message)
        self.cycle = cycle or []


class NodeExecutionError(SwarmGraphError):
    """A node handler failed; the original exception is chained as __cause__."""

    def __init__(self, node_id: str, message: str):
        super().__init__(f"Node {node_id!r} failed: {message}")
        self.node_id = node_id


class SwarmCapacityExceededError(SwarmGraphError):
    """The swarm roster would exceed max_agents."""


class SwarmNotFoundError(SwarmGraphError):
    """No swarm is registered under the requested id."""


class GraphNotFoundError(SwarmGraphError):
    """No graph is registered under the requested id."""


class AgentTaskError(SwarmGraphError):
    """An agent failed while executing a dispatched task."""

    def __init__(self, agent_id: Optional[str], message: str):
        prefix = f"Agent {agent_id!r} failed: " if agent_id else ""
        super().__init__(f"{prefix}{message}")
        self.agent_id = agent_id


class ExecutionCancelledError(SwarmGraphError):
    """Execution stopped because its cancellation token was triggered."""
