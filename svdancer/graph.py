"""An undirected graph with integer edge weights."""

from __future__ import annotations

from typing import Dict, Generic, Hashable, Iterator, List, Optional, TypeVar

V = TypeVar("V", bound=Hashable)


class UndirectedWeightedGraph(Generic[V]):
    """Undirected graph storing each edge in both endpoint adjacency maps."""

    def __init__(self) -> None:
        self._graph: Dict[V, Dict[V, int]] = {}

    def num_vertices(self) -> int:
        return len(self._graph)

    def __len__(self) -> int:
        return len(self._graph)

    def __contains__(self, vertex: object) -> bool:
        return vertex in self._graph

    def __iter__(self) -> Iterator[V]:
        return iter(sorted(self._graph))

    def vertices(self) -> List[V]:
        """Return the vertices in ascending order."""
        return sorted(self._graph)

    def edges(self, vertex: V) -> Dict[V, int]:
        """Return the live adjacency map of ``vertex``; raise KeyError if absent."""
        return self._graph[vertex]

    def remove_vertex(self, vertex: V) -> None:
        """Remove ``vertex`` and its adjacency map, if present."""
        self._graph.pop(vertex, None)

    def erase_edge(self, src: V, dst: V) -> None:
        """Remove the edge in both directions, keeping the vertices."""
        self._graph.get(src, {}).pop(dst, None)
        self._graph.get(dst, {}).pop(src, None)

    def increment_edge_weight(self, v1: V, v2: V) -> None:
        """Add one to the weight of the edge between ``v1`` and ``v2``."""
        row = self._graph.setdefault(v1, {})
        row[v2] = row.get(v2, 0) + 1
        if v1 != v2:
            row = self._graph.setdefault(v2, {})
            row[v1] = row.get(v1, 0) + 1

    def get_edge_weight(self, v1: V, v2: V, default: Optional[int] = None) -> Optional[int]:
        """Return the weight of the edge, or ``default`` if there is none."""
        return self._graph.get(v1, {}).get(v2, default)

    def clear(self) -> None:
        self._graph.clear()

    def __str__(self) -> str:
        return "".join(
            f"({v1}, {v2}): {self._graph[v1][v2]}\n"
            for v1 in sorted(self._graph)
            for v2 in sorted(self._graph[v1])
        )