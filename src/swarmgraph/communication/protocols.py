"""
Communication Protocols for swarmgraph

Delivers direct messages between agents of a swarm along the connections
derived from its topology.
"""

from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..core.models import Message, Swarm
from ..core.topology import TopologyManager
from ..exceptions import ValidationError
from ..utils.helpers import generate_id, setup_logging
from .events import EventBus

logger = setup_logging(__name__)


class AgentCommunicator:
    """
    Routes direct messages between agents.

    A message to a connected agent is delivered in one hop; otherwise it
    travels the shortest path of connections and each intermediate hop is
    recorded in ``Message.route``.
    """

    def __init__(self, topology: Optional[TopologyManager] = None, events: Optional[EventBus] = None):
        """
        Initialize the communicator.

        Args:
            topology: Topology manager used for routing
            events: Event bus for ``message_sent`` notifications
        """
        self.topology = topology or TopologyManager()
        self.events = events or EventBus()

    def send(
        self,
        swarm: Swarm,
        from_agent: str,
        to_agent: str,
        subject: str,
        body: Any,
        priority: str = "normal",
    ) -> Message:
        """
        Send a message between agents.

        Args:
            swarm: Swarm both agents belong to
            from_agent: Sender agent ID
            to_agent: Recipient agent ID
            subject: Message subject
            body: Message body
            priority: Message priority ('low', 'normal', 'high')

        Returns:
            The delivered message

        Raises:
            ValidationError: Unknown agent, bad priority or no route
        """
        route = self.topology.route(swarm, from_agent, to_agent)

        try:
            message = Message(
                id=generate_id("MSG-"),
                from_agent=from_agent,
                to_agent=to_agent,
                subject=subject,
                body=body,
                priority=priority,
                route=route,
            )
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid message: {e}") from e

        sender = swarm.agent(from_agent)
        recipient = swarm.agent(to_agent)
        recipient.message_queue.append(message)
        sender.metrics.messages_sent += 1
        recipient.metrics.messages_received += 1
        swarm.metrics.messages_exchanged += 1

        logger.info(f"Sent message from {from_agent} to {to_agent} in {len(route) - 1} hops")
        self.events.emit(
            "message_sent", swarm.id,
            message_id=message.id, from_agent=from_agent, to_agent=to_agent, hops=len(route) - 1,
        )
        return message

    def inbox(self, swarm: Swarm, agent_id: str, status: Optional[str] = "unread") -> List[Message]:
        """
        Get messages for an agent.

        Args:
            swarm: Swarm the agent belongs to
            agent_id: Agent ID to get messages for
            status: Message status to filter by; None returns every message

        Returns:
            Messages ordered by creation time
        """
        agent = swarm.agent(agent_id)
        if agent is None:
            raise ValidationError(f"Agent {agent_id} is not part of swarm {swarm.id}")

        messages = [m for m in agent.message_queue if status is None or m.status == status]
        return sorted(messages, key=lambda m: m.created_at)

    def mark_read(self, swarm: Swarm, agent_id: str, message_id: str) -> bool:
        """
        Mark a message as read.

        Returns:
            True if the message was found, False otherwise
        """
        for message in self.inbox(swarm, agent_id, status=None):
            if message.id == message_id:
                message.status = "read"
                message.read_at = datetime.now(timezone.utc)
                return True
        return False
