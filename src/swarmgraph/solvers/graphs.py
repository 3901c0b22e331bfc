"""Multi-source shortest paths over a weighted directed graph."""

import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from ..exceptions import ValidationError


def _node_id(node: Any) -> Any:
    if isinstance(node, Mapping):
        return node["id"]
    return node


def _vertices(nodes: Iterable[Any], edges: Sequence[Mapping[str, Any]]) -> List[Any]:
    vertices: List[Any] = []
    seen = set()
    for vertex in [_node_id(n) for n in nodes] + [v for e in edges for v in (e["from"], e["to"])]:
        if vertex not in seen:
            seen.add(vertex)
            vertices.append(vertex)
    return vertices


def dijkstra(
    nodes: Iterable[Any],
    edges: Sequence[Mapping[str, Any]],
    source: Any,
) -> Dict[Any, float]:
    """
    Greedy O(V^2) Dijkstra from one source.

    Edges are ``{"from", "to", "weight"}`` mappings (weight defaults to 1).
    Vertices missing from ``nodes`` but named by an edge are included.
    Unreachable vertices keep an infinite distance.
    """
    vertices = _vertices(nodes, edges)
    if source not in vertices:
        vertices.append(source)

    adjacency: Dict[Any, List[tuple]] = {}
    for edge in edges:
        weight = edge.get("weight", 1)
        if weight < 0:
            raise ValidationError(f"Negative edge weight {edge['from']}->{edge['to']}: {weight}")
        adjacency.setdefault(edge["from"], []).append((edge["to"], weight))

    distances = {v: math.inf for v in vertices}
    distances[source] = 0
    visited = set()

    while len(visited) < len(vertices):
        current = None
        current_dist = math.inf
        for vertex in vertices:
            if vertex not in visited and distances[vertex] < current_dist:
                current = vertex
                current_dist = distances[vertex]

        if current is None:
            break

        visited.add(current)
        for neighbour, weight in adjacency.get(current, []):
            candidate = current_dist + weight
            if candidate < distances[neighbour]:
                distances[neighbour] = candidate

    return distances


def shortest_paths(
    graph: Mapping[str, Any],
    sources: Optional[Sequence[Any]] = None,
    targets: Optional[Sequence[Any]] = None,
) -> Dict[str, Any]:
    """
    Shortest distances from each source to each target.

    Args:
        graph: ``{"nodes": [...], "edges": [{"from", "to", "weight"}]}``
        sources: Source vertices (defaults to the first node)
        targets: Target vertices (defaults to every vertex)

    Returns:
        ``{paths: {"src->dst": distance}, sources, targets}``
    """
    nodes = list(graph.get("nodes") or [])
    edges = list(graph.get("edges") or [])
    vertices = _vertices(nodes, edges)

    if sources is None:
        if not vertices:
            raise ValidationError("shortest_paths needs at least one node or source")
        sources = [vertices[0]]
    if targets is None:
        targets = vertices

    paths: Dict[str, float] = {}
    for source in sources:
        distances = dijkstra(nodes, edges, source)
        for target in targets:
            if target != source:
                paths[f"{source}->{target}"] = distances.get(target, math.inf)

    return {"paths": paths, "sources": len(sources), "targets": len(targets)}
