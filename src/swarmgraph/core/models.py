"""
Data model for graphs, swarms and consensus results.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExecutionMode(str, Enum):
    PARALLEL = "parallel"
    SEQUENTIAL = "sequential"


class GraphState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


NodeState = GraphState


class Topology(str, Enum):
    MESH = "mesh"
    STAR = "star"
    HIERARCHICAL = "hierarchical"
    RING = "ring"


class AgentState(str, Enum):
    READY = "ready"
    BUSY = "busy"


class SwarmState(str, Enum):
    IDLE = "idle"
    EXECUTING = "executing"
    ERROR = "error"


# Graph specification (input)

class EdgeSpec(BaseModel):
    """A "must complete before" edge: ``from`` runs before ``to``."""

    model_config = ConfigDict(populate_by_name=True)

    source: str = Field(alias="from")
    target: str = Field(alias="to")


class NodeSpec(BaseModel):
    """Declared node of a graph specification."""

    id: str
    name: Optional[str] = None
    type: str = "task"
    handler: Optional[Union[str, Callable[..., Any]]] = None
    config: Dict[str, Any] = Field(default_factory=dict)


class GraphSpec(BaseModel):
    """Graph specification as submitted by a caller."""

    id: Optional[str] = None
    name: Optional[str] = None
    nodes: List[NodeSpec] = Field(default_factory=list)
    edges: List[EdgeSpec] = Field(default_factory=list)


# Graph runtime model

class Node(BaseModel):
    """A unit of work inside a graph."""

    id: str
    name: str
    type: str = "task"
    handler: Optional[Callable[..., Any]] = Field(default=None, exclude=True)
    config: Dict[str, Any] = Field(default_factory=dict)
    state: NodeState = NodeState.PENDING
    dependencies: List[str] = Field(default_factory=list)
    dependents: List[str] = Field(default_factory=list)
    result: Any = None
    error: Optional[str] = None


class Graph(BaseModel):
    """A validated dependency graph and its execution state."""

    id: str
    name: str
    nodes: Dict[str, Node] = Field(default_factory=dict)
    edges: List[EdgeSpec] = Field(default_factory=list)
    state: GraphState = GraphState.PENDING
    results: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utcnow)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def node(self, node_id: str) -> Node:
        return self.nodes[node_id]


# Swarm specification (input)

class RoleSpec(BaseModel):
    """One roster entry of a swarm specification."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    type: str = "worker"
    capabilities: List[str] = Field(default_factory=list)
    is_coordinator: bool = Field(default=False, alias="isCoordinator")


class SwarmSpec(BaseModel):
    """Swarm specification; camelCase keys are accepted as aliases."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    name: Optional[str] = None
    topology: Optional[Topology] = None
    roles: List[RoleSpec] = Field(default_factory=list)
    consensus_threshold: Optional[float] = Field(default=None, alias="consensusThreshold")
    max_agents: Optional[int] = Field(default=None, alias="maxAgents")


# Swarm runtime model

class Message(BaseModel):
    """Inter-agent message."""

    id: str
    kind: str = "direct"
    from_agent: Optional[str] = None
    to_agent: Optional[str] = None
    subject: str = ""
    body: Any = None
    priority: str = Field(default="normal", pattern="^(low|normal|high)$")
    status: str = "unread"
    route: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    read_at: Optional[datetime] = None


class AgentMetrics(BaseModel):
    messages_received: int = 0
    messages_sent: int = 0
    tasks_completed: int = 0
    tasks_failed: int = 0


class Agent(BaseModel):
    """A swarm participant. ``connections`` is derived from the topology."""

    id: str
    swarm_id: str
    role: str
    type: str = "worker"
    capabilities: List[str] = Field(default_factory=list)
    connections: List[str] = Field(default_factory=list)
    state: AgentState = AgentState.READY
    message_queue: List[Message] = Field(default_factory=list)
    metrics: AgentMetrics = Field(default_factory=AgentMetrics)


class SwarmMetrics(BaseModel):
    tasks_completed: int = 0
    tasks_failed: int = 0
    consensus_reached: int = 0
    average_response_time: float = 0.0
    messages_exchanged: int = 0


class Swarm(BaseModel):
    """A roster of agents sharing a topology and a consensus threshold."""

    id: str
    name: str
    topology: Topology
    agents: List[Agent] = Field(default_factory=list)
    coordinator_id: Optional[str] = None
    consensus_threshold: float = 0.7
    max_agents: int = 100
    state: SwarmState = SwarmState.IDLE
    metrics: SwarmMetrics = Field(default_factory=SwarmMetrics)
    created_at: datetime = Field(default_factory=_utcnow)

    def agent(self, agent_id: str) -> Optional[Agent]:
        return next((a for a in self.agents if a.id == agent_id), None)

    def agents_by_role(self, role: str) -> List[Agent]:
        return [a for a in self.agents if a.role == role]


# Results

class ConsensusResult(BaseModel):
    achieved: bool
    confidence: float = Field(ge=0, le=1)
    result: Any = None
    votes: int = 0
    total: int = 0


class TaskOutcome(BaseModel):
    """What a single swarm dispatch produced."""

    swarm_id: str
    topology: Topology
    result: Any = None
    duration: float = 0.0
    failed_agents: List[str] = Field(default_factory=list)

    @property
    def consensus(self) -> Optional[ConsensusResult]:
        return self.result if isinstance(self.result, ConsensusResult) else None
