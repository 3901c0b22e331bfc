"""
Swarm Topology Manager

Derives each agent's connections from the swarm topology. Connections are
recomputed in full whenever the roster changes.
"""

from typing import List, Optional

import networkx as nx

from ..exceptions import ValidationError
from ..utils.helpers import setup_logging
from .models import Agent, Swarm, Topology

logger = setup_logging(__name__)


class TopologyManager:
    """
    Builds agent connection graphs for mesh, star, hierarchical and ring swarms.

    * mesh: every agent connects to every other agent
    * star: the hub connects to all others, spokes connect only to the hub
    * hierarchical: agents form a binary tree by roster index
    * ring: each agent connects to its predecessor and successor
    """

    def update_connections(self, swarm: Swarm) -> None:
        """Recompute ``connections`` for every agent of ``swarm``."""
        agents = swarm.agents
        n = len(agents)

        if swarm.topology == Topology.MESH:
            for agent in agents:
                agent.connections = [a.id for a in agents if a.id != agent.id]

        elif swarm.topology == Topology.STAR:
            hub = self.hub(swarm)
            for agent in agents:
                if hub is not None and agent.id == hub.id:
                    agent.connections = [a.id for a in agents if a.id != agent.id]
                else:
                    agent.connections = [hub.id] if hub is not None else []

        elif swarm.topology == Topology.HIERARCHICAL:
            for i, agent in enumerate(agents):
                connections = []
                if i > 0:
                    connections.append(agents[(i - 1) // 2].id)
                for child in (2 * i + 1, 2 * i + 2):
                    if child < n:
                        connections.append(agents[child].id)
                agent.connections = connections

        elif swarm.topology == Topology.RING:
            for i, agent in enumerate(agents):
                connections: List[str] = []
                for j in ((i - 1) % n, (i + 1) % n):
                    neighbour = agents[j].id
                    if neighbour != agent.id and neighbour not in connections:
                        connections.append(neighbour)
                agent.connections = connections

        else:
            raise ValidationError(f"Unsupported topology: {swarm.topology}")

        logger.debug(f"Recomputed {swarm.topology.value} connections for {n} agents in {swarm.id}")

    def hub(self, swarm: Swarm) -> Optional[Agent]:
        """The coordinator agent, or the first agent when none is designated."""
        if not swarm.agents:
            return None
        if swarm.coordinator_id:
            agent = swarm.agent(swarm.coordinator_id)
            if agent is not None:
                return agent
        return swarm.agents[0]

    def neighbours(self, swarm: Swarm, agent_id: str) -> List[Agent]:
        agent = swarm.agent(agent_id)
        if agent is None:
            raise ValidationError(f"Agent {agent_id} is not part of swarm {swarm.id}")
        return [a for a in swarm.agents if a.id in agent.connections]

    def to_networkx(self, swarm: Swarm) -> nx.DiGraph:
        """Connection graph with one directed edge per listed connection."""
        G = nx.DiGraph()
        for agent in swarm.agents:
            G.add_node(agent.id, role=agent.role)
        for agent in swarm.agents:
            for other in agent.connections:
                G.add_edge(agent.id, other)
        return G

    def route(self, swarm: Swarm, from_agent: str, to_agent: str) -> List[str]:
        """
        Shortest hop path between two agents along derived connections.

        Raises:
            ValidationError: If either agent is unknown or no path exists
        """
        G = self.to_networkx(swarm)
        for agent_id in (from_agent, to_agent):
            if agent_id not in G:
                raise ValidationError(f"Agent {agent_id} is not part of swarm {swarm.id}")
        try:
            return nx.shortest_path(G, from_agent, to_agent)
        except nx.NetworkXNoPath:
            raise ValidationError(f"No route from {from_agent} to {to_agent} in swarm {swarm.id}")
