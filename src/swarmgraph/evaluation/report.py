"""
Run Reports for swarmgraph

Renders graph state, swarm connections and task outcomes as rich tables.
"""

import json
from typing import Any, Dict, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..core.models import ConsensusResult, Graph, NodeState, Swarm, TaskOutcome
from ..utils.helpers import canonical_json, format_duration, setup_logging

logger = setup_logging(__name__)

STATE_STYLES = {
    NodeState.PENDING: "dim",
    NodeState.RUNNING: "yellow",
    NodeState.COMPLETED: "green",
    NodeState.FAILED: "red",
}

MAX_CELL = 60


def _short(value: Any) -> str:
    text = canonical_json(value)
    if len(text) > MAX_CELL:
        return text[:MAX_CELL - 3] + "..."
    return text


class RunReport:
    """
    Prints run summaries to a rich console.

    The ``*_table`` builders return renderables so they can be embedded
    elsewhere; the ``show_*`` methods print them.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def graph_table(self, graph: Graph) -> Table:
        """One row per node: state, dependencies and result or error."""
        table = Table(title=f"Graph {graph.name} ({graph.state.value})")
        table.add_column("Node", style="cyan")
        table.add_column("State")
        table.add_column("Depends on")
        table.add_column("Result / Error")

        for node in graph.nodes.values():
            style = STATE_STYLES.get(node.state, "")
            outcome = node.error if node.error else _short(node.result)
            table.add_row(
                node.id,
                f"[{style}]{node.state.value}[/{style}]" if style else node.state.value,
                ", ".join(node.dependencies) or "-",
                outcome,
            )
        return table

    def swarm_table(self, swarm: Swarm) -> Table:
        """One row per agent with its role and derived connections."""
        table = Table(title=f"Swarm {swarm.name} ({swarm.topology.value})")
        table.add_column("Agent", style="cyan")
        table.add_column("Role")
        table.add_column("Connections")

        for agent in swarm.agents:
            role = agent.role
            if agent.id == swarm.coordinator_id:
                role += " (coordinator)"
            table.add_row(agent.id, role, ", ".join(agent.connections) or "-")
        return table

    def metrics_table(self, title: str, metrics: Dict[str, Any]) -> Table:
        table = Table(title=title)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right")
        for key, value in metrics.items():
            if isinstance(value, float):
                value = f"{value:.4f}"
            table.add_row(key.replace("_", " "), str(value))
        return table

    def outcome_panel(self, outcome: TaskOutcome) -> Panel:
        """Summary of one swarm dispatch; consensus details for mesh and ring."""
        lines = [
            f"Swarm:    {outcome.swarm_id}",
            f"Topology: {outcome.topology.value}",
            f"Duration: {format_duration(outcome.duration)}",
        ]
        if outcome.failed_agents:
            lines.append(f"Excluded: {', '.join(outcome.failed_agents)}")

        consensus = outcome.consensus
        if isinstance(consensus, ConsensusResult):
            mark = "✅" if consensus.achieved else "⚠️"
            lines.append(
                f"Consensus: {mark} {consensus.votes}/{consensus.total} "
                f"(confidence {consensus.confidence:.2f})"
            )
            result = consensus.result
        else:
            result = outcome.result

        lines.append("")
        lines.append(json.dumps(result, indent=2, default=str))

        border = "green" if consensus is None or consensus.achieved else "yellow"
        return Panel("\n".join(lines), title="Task Outcome", border_style=border)

    def show_graph(self, graph: Graph) -> None:
        self.console.print(self.graph_table(graph))

    def show_swarm(self, swarm: Swarm) -> None:
        self.console.print(self.swarm_table(swarm))

    def show_outcome(self, outcome: TaskOutcome) -> None:
        self.console.print(self.outcome_panel(outcome))
