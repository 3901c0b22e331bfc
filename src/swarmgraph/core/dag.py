"""
DAG Scheduler for swarmgraph

Builds dependency graphs from specifications, computes execution order and
runs nodes sequentially or in dependency-respecting parallel waves.
"""

import asyncio
import inspect
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Set, Union

import networkx as nx
from pydantic import ValidationError as PydanticValidationError

from ..communication.events import EventBus
from ..exceptions import (
    CyclicDependencyError,
    GraphNotFoundError,
    NodeExecutionError,
    ValidationError,
)
from ..utils.helpers import generate_id, setup_logging
from ..utils.registry import BoundedRegistry
from .cancellation import CancellationToken, check
from .models import ExecutionMode, Graph, GraphSpec, GraphState, Node, NodeState

logger = setup_logging(__name__)

Handler = Callable[[Dict[str, Any], Dict[str, Any]], Any]


def to_networkx(graph: Graph) -> nx.DiGraph:
    """Build a networkx view of the graph (dependency -> dependent)."""
    G = nx.DiGraph()
    G.add_nodes_from(graph.nodes)
    for edge in graph.edges:
        G.add_edge(edge.source, edge.target)
    return G


def find_cycle(graph: Graph, among: Optional[Set[str]] = None) -> List[str]:
    """Return the node ids of one cycle, or an empty list if there is none."""
    G = to_networkx(graph)
    if among is not None:
        G = G.subgraph(among)
    try:
        cycle_edges = nx.find_cycle(G)
    except nx.NetworkXNoCycle:
        return []
    return [source for source, _ in cycle_edges]


class DAGScheduler:
    """
    Creates and executes dependency graphs.

    Node handlers are called as ``handler(inputs, config)`` where ``inputs``
    maps every dependency id to its result. Handlers may be plain functions
    or coroutines. A handler failure aborts the whole run (fail-fast).
    """

    def __init__(
        self,
        handlers: Optional[Mapping[str, Handler]] = None,
        events: Optional[EventBus] = None,
        max_graphs: int = 256,
        default_mode: Union[ExecutionMode, str] = ExecutionMode.PARALLEL,
    ):
        """
        Initialize the scheduler.

        Args:
            handlers: Named handlers that node specs may reference by string
            events: Event bus for lifecycle notifications
            max_graphs: Capacity of the graph registry
            default_mode: Execution mode used when none is given
        """
        self.handlers: Dict[str, Handler] = dict(handlers or {})
        self.events = events or EventBus()
        self.default_mode = ExecutionMode(default_mode)
        self.graphs: BoundedRegistry[Graph] = BoundedRegistry("graph", max_graphs)
        self.metrics = {
            "graphs_executed": 0,
            "graphs_failed": 0,
            "nodes_executed": 0,
            "parallel_waves": 0,
        }

    def register_handler(self, name: str, handler: Handler) -> None:
        self.handlers[name] = handler

    def create_graph(self, spec: Union[GraphSpec, Mapping[str, Any]]) -> Graph:
        """
        Validate a specification and build a graph.

        Every edge endpoint must name a declared node and node ids must be
        unique. Cycles are not detected here; they surface when the graph is
        executed.

        Raises:
            ValidationError: If the graph definition is malformed or its id is taken
        """
        spec = self._parse_spec(spec)
        graph_id = spec.id or generate_id("dag-")
        if graph_id in self.graphs:
            raise ValidationError(f"Graph {graph_id} already exists")

        nodes: Dict[str, Node] = {}
        for node_spec in spec.nodes:
            if node_spec.id in nodes:
                raise ValidationError(f"Duplicate node id {node_spec.id!r} in graph {graph_id}")

            nodes[node_spec.id] = Node(
                id=node_spec.id,
                name=node_spec.name or node_spec.id,
                type=node_spec.type,
                handler=self._resolve_handler(node_spec.id, node_spec.handler),
                config=dict(node_spec.config),
            )

        for edge in spec.edges:
            for endpoint in (edge.source, edge.target):
                if endpoint not in nodes:
                    raise ValidationError(
                        f"Edge {edge.source}->{edge.target} references undefined node {endpoint!r}"
                    )

            target = nodes[edge.target]
            source = nodes[edge.source]
            if edge.source not in target.dependencies:
                target.dependencies.append(edge.source)
            if edge.target not in source.dependents:
                source.dependents.append(edge.target)

        graph = Graph(
            id=graph_id,
            name=spec.name or graph_id,
            nodes=nodes,
            edges=list(spec.edges),
        )

        self.graphs.register(graph.id, graph)
        logger.debug(f"Created graph {graph.id} with {len(nodes)} nodes, {len(spec.edges)} edges")
        self.events.emit("graph_created", graph.id, nodes=len(nodes), edges=len(spec.edges))
        return graph

    def get_graph(self, graph_id: str) -> Graph:
        graph = self.graphs.get(graph_id)
        if graph is None:
            raise GraphNotFoundError(f"Graph not found: {graph_id}")
        return graph

    def _parse_spec(self, spec: Union[GraphSpec, Mapping[str, Any]]) -> GraphSpec:
        if isinstance(spec, GraphSpec):
            return spec
        try:
            return GraphSpec.model_validate(spec)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid graph specification: {e}") from e

    def _resolve_handler(self, node_id: str, handler: Any) -> Optional[Handler]:
        if handler is None or callable(handler):
            return handler
        if handler not in self.handlers:
            raise ValidationError(f"Node {node_id!r} references unknown handler {handler!r}")
        return self.handlers[handler]

    def execution_order(self, graph: Graph) -> List[str]:
        """
        Topological order by depth-first post-order traversal.

        Nodes are visited in declaration order and dependencies in edge
        order, so the order is deterministic.

        Raises:
            CyclicDependencyError: If a dependency cycle is reached
        """
        order: List[str] = []
        done: Set[str] = set()
        visiting: List[str] = []

        def visit(node_id: str) -> None:
            if node_id in done:
                return
            if node_id in visiting:
                cycle = visiting[visiting.index(node_id):]
                raise CyclicDependencyError(
                    f"Graph {graph.id} has a dependency cycle: {' -> '.join(cycle + [node_id])}",
                    cycle=cycle,
                )

            visiting.append(node_id)
            for dep_id in graph.nodes[node_id].dependencies:
                visit(dep_id)
            visiting.pop()

            done.add(node_id)
            order.append(node_id)

        for node_id in graph.nodes:
            visit(node_id)

        return order

    async def run(
        self,
        spec: Union[GraphSpec, Mapping[str, Any]],
        mode: Union[ExecutionMode, str, None] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Dict[str, Any]:
        """Create a graph from ``spec`` and execute it."""
        graph = self.create_graph(spec)
        return await self.execute_graph(graph, mode=mode, cancel_token=cancel_token)

    async def execute_graph(
        self,
        graph: Union[Graph, str],
        mode: Union[ExecutionMode, str, None] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Dict[str, Any]:
        """
        Execute every node of a graph.

        Args:
            graph: Graph instance or id of a registered graph
            mode: ``parallel`` (waves) or ``sequential``
            cancel_token: Checked before every node and wave

        Returns:
            Mapping of node id to result, one entry per node

        Raises:
            CyclicDependencyError: If the graph cannot make progress
            NodeExecutionError: If a handler fails
            ExecutionCancelledError: If the token is cancelled
        """
        if isinstance(graph, str):
            graph = self.get_graph(graph)
        if graph.state != GraphState.PENDING:
            raise ValidationError(f"Graph {graph.id} has already been executed ({graph.state.value})")

        mode = ExecutionMode(mode) if mode else self.default_mode

        graph.state = GraphState.RUNNING
        graph.started_at = datetime.now(timezone.utc)
        logger.info(f"Executing graph {graph.id} ({len(graph.nodes)} nodes, {mode.value})")
        self.events.emit("graph_started", graph.id, mode=mode.value)

        try:
            if mode == ExecutionMode.SEQUENTIAL:
                await self._execute_sequential(graph, cancel_token)
            else:
                await self._execute_parallel(graph, cancel_token)
        except asyncio.CancelledError:
            graph.state = GraphState.FAILED
            graph.finished_at = datetime.now(timezone.utc)
            self.metrics["graphs_failed"] += 1
            logger.warning(f"Graph {graph.id} was cancelled")
            self.events.emit("graph_failed", graph.id, error="cancelled")
            raise
        except Exception as e:
            graph.state = GraphState.FAILED
            graph.finished_at = datetime.now(timezone.utc)
            self.metrics["graphs_failed"] += 1
            logger.error(f"Graph {graph.id} failed: {e}")
            self.events.emit("graph_failed", graph.id, error=str(e))
            raise

        graph.state = GraphState.COMPLETED
        graph.finished_at = datetime.now(timezone.utc)
        self.metrics["graphs_executed"] += 1

        logger.info(f"Graph {graph.id} completed")
        self.events.emit("graph_completed", graph.id, results=len(graph.results))
        return dict(graph.results)

    async def _execute_sequential(self, graph: Graph, cancel_token: Optional[CancellationToken]) -> None:
        for node_id in self.execution_order(graph):
            check(cancel_token, f"node {node_id}")
            await self._execute_node(graph, node_id)

    async def _execute_parallel(self, graph: Graph, cancel_token: Optional[CancellationToken]) -> None:
        completed: Set[str] = set()
        wave_index = 0

        while len(completed) < len(graph.nodes):
            check(cancel_token, f"wave {wave_index}")

            ready = [
                node_id for node_id, node in graph.nodes.items()
                if node_id not in completed
                and all(dep in completed for dep in node.dependencies)
            ]

            # Waves are awaited in full, so nothing is ever in flight here.
            if not ready:
                remaining = set(graph.nodes) - completed
                cycle = find_cycle(graph, remaining)
                detail = f": {' -> '.join(cycle + cycle[:1])}" if cycle else ""
                raise CyclicDependencyError(
                    f"Graph {graph.id} cannot make progress, "
                    f"{len(remaining)} nodes blocked by a cycle{detail}",
                    cycle=cycle,
                )

            logger.debug(f"Graph {graph.id} wave {wave_index}: {ready}")
            self.metrics["parallel_waves"] += 1
            await self._execute_wave(graph, ready)

            completed.update(ready)
            wave_index += 1

    async def _execute_wave(self, graph: Graph, ready: List[str]) -> None:
        tasks = [
            asyncio.ensure_future(self._execute_node(graph, node_id))
            for node_id in ready
        ]

        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        failure: Optional[BaseException] = None
        for task in tasks:
            if task in done and not task.cancelled() and task.exception() is not None:
                failure = task.exception()
                break

        if failure is not None:
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            raise failure

    async def _execute_node(self, graph: Graph, node_id: str) -> Any:
        node = graph.nodes[node_id]

        for dep_id in node.dependencies:
            if graph.nodes[dep_id].state != NodeState.COMPLETED:
                raise NodeExecutionError(node_id, f"dependency {dep_id!r} not completed")

        inputs = {dep_id: graph.results[dep_id] for dep_id in node.dependencies}

        node.state = NodeState.RUNNING
        self.events.emit("node_started", graph.id, node_id=node_id)

        try:
            if node.handler is None:
                result: Any = {"inputs": inputs, "node_id": node_id}
            else:
                result = node.handler(inputs, node.config)
                if inspect.isawaitable(result):
                    result = await result
        except asyncio.CancelledError:
            node.state = NodeState.FAILED
            node.error = "cancelled"
            raise
        except Exception as e:
            node.state = NodeState.FAILED
            node.error = f"{type(e).__name__}: {e}"
            self.events.emit("node_failed", graph.id, node_id=node_id, error=node.error)
            raise NodeExecutionError(node_id, node.error) from e

        node.state = NodeState.COMPLETED
        node.result = result
        graph.results[node_id] = result
        self.metrics["nodes_executed"] += 1

        logger.debug(f"Node {node_id} of graph {graph.id} completed")
        self.events.emit("node_completed", graph.id, node_id=node_id)
        return result

    def get_metrics(self) -> Dict[str, int]:
        graphs = self.graphs.values()
        return {
            **self.metrics,
            "active_graphs": len([g for g in graphs if g.state == GraphState.RUNNING]),
            "total_graphs": len(graphs),
        }
