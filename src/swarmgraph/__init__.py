"""
swarmgraph

Dependency-graph task scheduling, agent swarm coordination with plurality
consensus, and a toolbox of solver algorithms.
"""

__version__ = "1.0.0"

from .core import (
    CancellationToken,
    DAGScheduler,
    SolverTaskExecutor,
    SwarmCoordinator,
    TopologyManager,
    achieve_consensus,
)
from .communication import AgentCommunicator, EventBus
from .config import CoordinatorConfig, load_config
from .solvers import SolverToolbox

__all__ = [
    "AgentCommunicator",
    "CancellationToken",
    "CoordinatorConfig",
    "DAGScheduler",
    "EventBus",
    "SolverTaskExecutor",
    "SolverToolbox",
    "SwarmCoordinator",
    "TopologyManager",
    "achieve_consensus",
    "load_config",
]
