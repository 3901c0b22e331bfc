"""Core scheduling and coordination components for swarmgraph."""

from .models import (
    Agent,
    ConsensusResult,
    ExecutionMode,
    Graph,
    GraphSpec,
    GraphState,
    Message,
    Node,
    NodeState,
    Swarm,
    SwarmSpec,
    TaskOutcome,
    Topology,
)
from .cancellation import CancellationToken
from .dag import DAGScheduler
from .topology import TopologyManager
from .consensus import achieve_consensus
from .executor import CallableTaskExecutor, EchoTaskExecutor, SolverTaskExecutor, TaskExecutor
from .coordinator import SwarmCoordinator

__all__ = [
    "Agent",
    "CallableTaskExecutor",
    "CancellationToken",
    "ConsensusResult",
    "DAGScheduler",
    "EchoTaskExecutor",
    "ExecutionMode",
    "Graph",
    "GraphSpec",
    "GraphState",
    "Message",
    "Node",
    "NodeState",
    "SolverTaskExecutor",
    "Swarm",
    "SwarmCoordinator",
    "SwarmSpec",
    "TaskExecutor",
    "TaskOutcome",
    "Topology",
    "TopologyManager",
    "achieve_consensus",
]
