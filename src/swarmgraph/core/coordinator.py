"""
SwarmCoordinator - Main coordination class for managing agent swarms.
"""

import asyncio
import time
from collections import Counter
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from ..communication.events import EventBus
from ..communication.protocols import AgentCommunicator
from ..config import CoordinatorConfig
from ..exceptions import (
    AgentTaskError,
    ExecutionCancelledError,
    SwarmCapacityExceededError,
    SwarmNotFoundError,
    ValidationError,
)
from ..utils.helpers import generate_id, setup_logging
from ..utils.registry import BoundedRegistry
from .cancellation import CancellationToken, check
from .consensus import achieve_consensus, validate_threshold
from .executor import EchoTaskExecutor, TaskExecutor
from .models import (
    Agent,
    AgentState,
    ConsensusResult,
    Message,
    RoleSpec,
    Swarm,
    SwarmSpec,
    SwarmState,
    TaskOutcome,
    Topology,
)
from .topology import TopologyManager

logger = setup_logging(__name__)

Assignment = Tuple[Agent, Any]


class SwarmCoordinator:
    """
    Main coordinator for agent swarms.

    Owns the swarm registry, keeps topology connections current as rosters
    change and dispatches tasks according to each swarm's topology:

    * mesh and ring: every agent runs the task, results are reconciled by
      plurality consensus
    * star: spokes run the task, the hub aggregates their results
    * hierarchical: the coordinator decomposes the task, workers run the
      subtasks round-robin, the coordinator synthesizes the results
    """

    def __init__(
        self,
        executor: Optional[TaskExecutor] = None,
        config: Optional[CoordinatorConfig] = None,
        events: Optional[EventBus] = None,
        topology: Optional[TopologyManager] = None,
    ):
        """
        Initialize the swarm coordinator.

        Args:
            executor: Runs agent tasks (defaults to a structural echo)
            config: Defaults for new swarms and the agent failure policy
            events: Event bus for lifecycle notifications
            topology: Topology manager used to derive connections
        """
        self.config = config or CoordinatorConfig()
        self.executor = executor or EchoTaskExecutor()
        self.events = events or EventBus()
        self.topology = topology or TopologyManager()
        self.communicator = AgentCommunicator(self.topology, self.events)
        # agent id -> assignments currently running on that agent
        self._in_flight: Counter = Counter()

        self.swarms: BoundedRegistry[Swarm] = BoundedRegistry("swarm", self.config.max_swarms)
        self.metrics = {
            "swarms_created": 0,
            "tasks_executed": 0,
            "tasks_failed": 0,
            "consensus_reached": 0,
        }

    # Roster management

    def create_swarm(self, spec: Union[SwarmSpec, Mapping[str, Any]]) -> Swarm:
        """
        Create and register a swarm from a specification.

        Raises:
            ValidationError: Empty roster, bad threshold, several coordinators
            SwarmCapacityExceededError: More roles than ``max_agents``
        """
        spec = self._parse(SwarmSpec, spec, "swarm specification")

        swarm_id = spec.id or generate_id("swarm-")
        if swarm_id in self.swarms:
            raise ValidationError(f"Swarm {swarm_id} already exists")
        if not spec.roles:
            raise ValidationError(f"Swarm {swarm_id} needs at least one role")

        threshold = validate_threshold(
            spec.consensus_threshold if spec.consensus_threshold is not None
            else self.config.consensus_threshold
        )
        max_agents = spec.max_agents if spec.max_agents is not None else self.config.max_agents
        if max_agents < 1:
            raise ValidationError(f"max_agents must be at least 1, got {max_agents}")
        if len(spec.roles) > max_agents:
            raise SwarmCapacityExceededError(
                f"Swarm {swarm_id} declares {len(spec.roles)} roles but allows {max_agents} agents"
            )

        coordinators = [role.name for role in spec.roles if role.is_coordinator]
        if len(coordinators) > 1:
            raise ValidationError(f"Swarm {swarm_id} declares several coordinators: {coordinators}")

        swarm = Swarm(
            id=swarm_id,
            name=spec.name or swarm_id,
            topology=spec.topology or self.config.default_topology,
            consensus_threshold=threshold,
            max_agents=max_agents,
        )

        for role in spec.roles:
            agent = self._new_agent(swarm_id, role)
            swarm.agents.append(agent)
            if role.is_coordinator:
                swarm.coordinator_id = agent.id

        self.topology.update_connections(swarm)
        self.swarms.register(swarm.id, swarm)
        self.metrics["swarms_created"] += 1

        logger.info(f"Created {swarm.topology.value} swarm {swarm.id} with {len(swarm.agents)} agents")
        self.events.emit("swarm_created", swarm.id, topology=swarm.topology.value, agents=len(swarm.agents))
        return swarm

    def _new_agent(self, swarm_id: str, role: RoleSpec) -> Agent:
        return Agent(
            id=f"{swarm_id}-agent-{generate_id()}",
            swarm_id=swarm_id,
            role=role.name,
            type=role.type,
            capabilities=list(dict.fromkeys(role.capabilities)),
        )

    def _parse(self, model, spec, what: str):
        if isinstance(spec, model):
            return spec
        try:
            return model.model_validate(spec)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid {what}: {e}") from e

    def get_swarm(self, swarm_id: str) -> Swarm:
        swarm = self.swarms.get(swarm_id)
        if swarm is None:
            raise SwarmNotFoundError(f"Swarm not found: {swarm_id}")
        return swarm

    def list_swarms(self) -> List[Swarm]:
        return self.swarms.values()

    def remove_swarm(self, swarm_id: str) -> Swarm:
        swarm = self.get_swarm(swarm_id)
        self.swarms.remove(swarm_id)
        logger.info(f"Removed swarm {swarm_id}")
        self.events.emit("swarm_removed", swarm_id)
        return swarm

    def add_agent(self, swarm_id: str, role: Union[RoleSpec, Mapping[str, Any]]) -> Agent:
        """
        Add an agent and recompute every connection of the swarm.

        Raises:
            SwarmNotFoundError: Unknown swarm
            SwarmCapacityExceededError: Swarm already holds ``max_agents`` agents
            ValidationError: A second coordinator is requested
        """
        swarm = self.get_swarm(swarm_id)
        role = self._parse(RoleSpec, role, "role")

        if len(swarm.agents) >= swarm.max_agents:
            raise SwarmCapacityExceededError(
                f"Swarm {swarm_id} is at maximum capacity ({swarm.max_agents} agents)"
            )
        if role.is_coordinator and swarm.coordinator_id is not None:
            raise ValidationError(f"Swarm {swarm_id} already has coordinator {swarm.coordinator_id}")

        agent = self._new_agent(swarm_id, role)
        swarm.agents.append(agent)
        if role.is_coordinator:
            swarm.coordinator_id = agent.id

        self.topology.update_connections(swarm)

        logger.debug(f"Added agent {agent.id} ({agent.role}) to swarm {swarm_id}")
        self.events.emit("agent_added", swarm_id, agent_id=agent.id, role=agent.role)
        return agent

    def remove_agent(self, swarm_id: str, agent_id: str) -> Agent:
        """Remove an agent; the roster may not become empty."""
        swarm = self.get_swarm(swarm_id)
        agent = swarm.agent(agent_id)
        if agent is None:
            raise ValidationError(f"Agent {agent_id} is not part of swarm {swarm_id}")
        if len(swarm.agents) == 1:
            raise ValidationError(f"Cannot remove the last agent of swarm {swarm_id}")

        swarm.agents = [a for a in swarm.agents if a.id != agent_id]
        if swarm.coordinator_id == agent_id:
            swarm.coordinator_id = None

        self.topology.update_connections(swarm)

        logger.debug(f"Removed agent {agent_id} from swarm {swarm_id}")
        self.events.emit("agent_removed", swarm_id, agent_id=agent_id)
        return agent

    # Messaging

    def broadcast(self, swarm_id: str, content: Any, subject: str = "") -> Message:
        """Queue a broadcast message on every agent of the swarm."""
        swarm = self.get_swarm(swarm_id)
        message = Message(id=generate_id("MSG-"), kind="broadcast", subject=subject, body=content)

        for agent in swarm.agents:
            agent.message_queue.append(message.model_copy())
            agent.metrics.messages_received += 1
            swarm.metrics.messages_exchanged += 1

        self.events.emit("message_broadcast", swarm_id, message_id=message.id, recipients=len(swarm.agents))
        return message

    def send_message(
        self,
        swarm_id: str,
        from_agent: str,
        to_agent: str,
        subject: str,
        body: Any,
        priority: str = "normal",
    ) -> Message:
        """Send a direct message routed along the swarm's connections."""
        swarm = self.get_swarm(swarm_id)
        return self.communicator.send(swarm, from_agent, to_agent, subject, body, priority=priority)

    # Task dispatch

    async def execute_task(
        self,
        swarm: Union[Swarm, str],
        task: Any,
        cancel_token: Optional[CancellationToken] = None,
    ) -> TaskOutcome:
        """
        Dispatch a task to a swarm according to its topology.

        Args:
            swarm: Swarm instance or id
            task: Opaque payload handed to the executor
            cancel_token: Checked before every phase and agent call

        Returns:
            TaskOutcome; for mesh and ring swarms ``result`` is a ConsensusResult

        Raises:
            SwarmNotFoundError: Unknown swarm id
            AgentTaskError: An agent failed (or, when failures are tolerated,
                no agent responded or the hub failed)
            ExecutionCancelledError: The token was cancelled
        """
        if isinstance(swarm, str):
            swarm = self.get_swarm(swarm)
        if not swarm.agents:
            raise ValidationError(f"Swarm {swarm.id} has no agents")

        swarm.state = SwarmState.EXECUTING
        start = time.perf_counter()

        logger.info(f"Dispatching task to {swarm.topology.value} swarm {swarm.id}")
        self.events.emit("task_started", swarm.id, topology=swarm.topology.value)

        try:
            check(cancel_token, f"swarm {swarm.id}")
            if swarm.topology == Topology.STAR:
                result, failed = await self._execute_star(swarm, task, cancel_token)
            elif swarm.topology == Topology.HIERARCHICAL:
                result, failed = await self._execute_hierarchical(swarm, task, cancel_token)
            else:
                result, failed = await self._execute_mesh(swarm, task, cancel_token)
        except asyncio.CancelledError:
            swarm.state = SwarmState.ERROR
            swarm.metrics.tasks_failed += 1
            self.metrics["tasks_failed"] += 1
            logger.warning(f"Task on swarm {swarm.id} was cancelled")
            self.events.emit("task_failed", swarm.id, error="cancelled")
            raise
        except Exception as e:
            swarm.state = SwarmState.ERROR
            swarm.metrics.tasks_failed += 1
            self.metrics["tasks_failed"] += 1
            logger.error(f"Task on swarm {swarm.id} failed: {e}")
            self.events.emit("task_failed", swarm.id, error=str(e))
            raise

        duration = time.perf_counter() - start
        swarm.state = SwarmState.IDLE
        self._record_completion(swarm, duration)

        outcome = TaskOutcome(
            swarm_id=swarm.id,
            topology=swarm.topology,
            result=result,
            duration=duration,
            failed_agents=failed,
        )

        logger.info(f"Task on swarm {swarm.id} completed in {duration:.3f}s")
        self.events.emit("task_completed", swarm.id, duration=duration, failed_agents=failed)
        return outcome

    async def _execute_mesh(
        self, swarm: Swarm, task: Any, cancel_token: Optional[CancellationToken]
    ) -> Tuple[ConsensusResult, List[str]]:
        results, failed = await self._dispatch(swarm, [(a, task) for a in swarm.agents], cancel_token)
        if not results:
            raise AgentTaskError(None, f"No agent of swarm {swarm.id} responded")

        consensus = achieve_consensus(results, swarm.consensus_threshold)
        if consensus.achieved:
            swarm.metrics.consensus_reached += 1
            self.metrics["consensus_reached"] += 1
            self.events.emit(
                "consensus_reached", swarm.id,
                confidence=consensus.confidence, votes=consensus.votes, total=consensus.total,
            )
        return consensus, failed

    async def _execute_star(
        self, swarm: Swarm, task: Any, cancel_token: Optional[CancellationToken]
    ) -> Tuple[Any, List[str]]:
        hub = self.topology.hub(swarm)
        spokes = [a for a in swarm.agents if a.id != hub.id]

        spoke_results, failed = await self._dispatch(swarm, [(a, task) for a in spokes], cancel_token)

        aggregate = {"type": "aggregate", "task": task, "results": spoke_results}
        result = await self._execute_agent_task(hub, aggregate, cancel_token)
        return result, failed

    async def _execute_hierarchical(
        self, swarm: Swarm, task: Any, cancel_token: Optional[CancellationToken]
    ) -> Tuple[Any, List[str]]:
        coordinator = self.topology.hub(swarm)
        workers = [a for a in swarm.agents if a.id != coordinator.id] or [coordinator]

        decomposed = await self._execute_agent_task(
            coordinator, {"type": "decompose", "task": task}, cancel_token
        )
        subtasks = [task]
        if isinstance(decomposed, Mapping) and isinstance(decomposed.get("subtasks"), list):
            subtasks = decomposed["subtasks"]

        assignments = [(workers[i % len(workers)], subtask) for i, subtask in enumerate(subtasks)]
        logger.debug(f"Swarm {swarm.id}: {len(subtasks)} subtasks over {len(workers)} workers")
        results, failed = await self._dispatch(swarm, assignments, cancel_token)

        synthesis = {"type": "synthesize", "task": task, "results": results}
        result = await self._execute_agent_task(coordinator, synthesis, cancel_token)
        return result, failed

    async def _dispatch(
        self,
        swarm: Swarm,
        assignments: List[Assignment],
        cancel_token: Optional[CancellationToken],
    ) -> Tuple[List[Any], List[str]]:
        """
        Run assignments concurrently.

        Returns responder results in dispatch order and the ids of agents
        that failed (always empty unless failures are tolerated).
        """
        if not assignments:
            return [], []

        tasks = [
            asyncio.ensure_future(self._execute_agent_task(agent, subtask, cancel_token))
            for agent, subtask in assignments
        ]

        if not self.config.tolerate_agent_failures:
            try:
                done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
            except asyncio.CancelledError:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
            for task in tasks:
                if task in done and not task.cancelled() and task.exception() is not None:
                    for other in pending:
                        other.cancel()
                    if pending:
                        await asyncio.gather(*pending, return_exceptions=True)
                    raise task.exception()
            return [task.result() for task in tasks], []

        outcomes = await asyncio.gather(*tasks, return_exceptions=True)
        results: List[Any] = []
        failed: List[str] = []
        for (agent, _), outcome in zip(assignments, outcomes):
            if isinstance(outcome, (ExecutionCancelledError, asyncio.CancelledError)):
                raise outcome
            if isinstance(outcome, BaseException):
                logger.warning(f"Excluding agent {agent.id} of swarm {swarm.id}: {outcome}")
                failed.append(agent.id)
            else:
                results.append(outcome)
        return results, failed

    async def _execute_agent_task(
        self, agent: Agent, task: Any, cancel_token: Optional[CancellationToken]
    ) -> Any:
        check(cancel_token, f"agent {agent.id}")

        agent.state = AgentState.BUSY
        self._in_flight[agent.id] += 1
        try:
            result = await self.executor.execute(agent, task)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            agent.metrics.tasks_failed += 1
            raise AgentTaskError(agent.id, f"{type(e).__name__}: {e}") from e
        finally:
            self._in_flight[agent.id] -= 1
            if not self._in_flight[agent.id]:
                del self._in_flight[agent.id]
                agent.state = AgentState.READY

        agent.metrics.tasks_completed += 1
        return result

    def _record_completion(self, swarm: Swarm, duration: float) -> None:
        count = swarm.metrics.tasks_completed
        average = swarm.metrics.average_response_time
        swarm.metrics.average_response_time = (average * count + duration) / (count + 1)
        swarm.metrics.tasks_completed = count + 1
        self.metrics["tasks_executed"] += 1

    def get_metrics(self) -> Dict[str, Any]:
        swarms = self.swarms.values()
        return {
            **self.metrics,
            "active_swarms": len(swarms),
            "total_agents": sum(len(s.agents) for s in swarms),
        }
