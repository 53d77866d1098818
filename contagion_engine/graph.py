"""
Graph index for the contagion engine.

Builds an undirected weighted adjacency map from an edge list.  Convention:
an edge (u, v) inserts v into u's neighbour list and u into v's neighbour
list.  Duplicate edges are additive (the neighbour appears once per edge) and
self-loops are kept, so a loop (u, u) lists u twice in its own neighbours.

NetworkX is used only for structural analysis (``to_multigraph``); the
propagation step reads the plain adjacency map.
"""

from __future__ import annotations

from functools import lru_cache
from types import MappingProxyType
from typing import Iterable, Mapping, NamedTuple, Sequence

import networkx as nx

from .state import Edge


DEFAULT_EDGE_WEIGHT: float = 1.0


class Neighbor(NamedTuple):
    id: str
    weight: float


AdjacencyMap = Mapping[str, Sequence[Neighbor]]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _split_edge(edge: Edge) -> tuple[str, str, float]:
    """Unpack a 2- or 3-element edge into (u, v, weight)."""
    if len(edge) == 2:
        u, v = edge
        return u, v, DEFAULT_EDGE_WEIGHT
    if len(edge) == 3:
        u, v, w = edge
        return u, v, float(w)
    raise ValueError(f"Edge {edge!r} must have 2 or 3 elements.")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build_adjacency(edges: Iterable[Edge]) -> dict[str, list[Neighbor]]:
    """Build an undirected adjacency map from an edge list.

    Parameters
    ----------
    edges : iterable of (str, str) or (str, str, float)
        Undirected edges.  Ids need not belong to any known unit.

    Returns
    -------
    dict of str -> list of Neighbor
        Fresh, caller-owned adjacency map.

    Raises
    ------
    ValueError
        If an edge does not have 2 or 3 elements.
    """
    adj: dict[str, list[Neighbor]] = {}
    for edge in edges:
        u, v, w = _split_edge(edge)
        adj.setdefault(u, []).append(Neighbor(v, w))
        adj.setdefault(v, []).append(Neighbor(u, w))
    return adj


@lru_cache(maxsize=64)
def _frozen_adjacency(connections: tuple[Edge, ...]) -> AdjacencyMap:
    adj = build_adjacency(connections)
    return MappingProxyType({k: tuple(v) for k, v in adj.items()})


def adjacency_for(connections: Sequence[Edge]) -> AdjacencyMap:
    """Return a read-only adjacency map, cached by edge-list content.

    The cache key is the connection tuple itself, so any change to the edges
    produces a new key and a freshly built map.
    """
    return _frozen_adjacency(tuple(tuple(e) for e in connections))


def neighbors(adj: AdjacencyMap, unit_id: str) -> Sequence[Neighbor]:
    """Neighbour list of ``unit_id``; empty when the id has no edges."""
    return adj.get(unit_id, ())


def total_weight(nbrs: Sequence[Neighbor]) -> float:
    """Sum of neighbour weights, substituting 1.0 for a zero total."""
    return sum(n.weight for n in nbrs) or 1.0


def to_multigraph(connections: Iterable[Edge], nodes: Iterable[str] = ()) -> nx.MultiGraph:
    """Convert an edge list to a NetworkX MultiGraph.

    Parallel edges and self-loops are preserved.  ``nodes`` adds isolated
    units so they appear in the graph even without edges.
    """
    G: nx.MultiGraph = nx.MultiGraph()
    G.add_nodes_from(nodes)
    for edge in connections:
        u, v, w = _split_edge(edge)
        G.add_edge(u, v, weight=w)
    return G
