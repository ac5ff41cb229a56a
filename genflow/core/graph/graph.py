# genflow/core/graph/graph.py
"""Invocation graph: nodes keyed by id plus field-level edges.

``GraphBuilder`` accumulates nodes and edges (append only); ``build()`` freezes
the result into a ``Graph`` that is serialized and sent to the engine.
"""
from __future__ import annotations

import json
import logging
from collections import OrderedDict, deque
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from omegaconf import OmegaConf

from .nodes import BaseNode

logger = logging.getLogger(__name__)


class GraphStructureError(ValueError):
    """Structural defect: duplicate node id, dangling edge, rewritten topology."""


# ---------------------------------------------------------------------------
# Edge
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EdgeConnection:
    """One end of an edge: a node id and one of its fields."""
    node_id: str
    field: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "node_id", str(self.node_id))
        for name in ("node_id", "field"):
            v = getattr(self, name)
            if not v or not v.strip():
                raise ValueError(f"{name} must be non-empty")

    def to_dict(self) -> Dict[str, str]:
        return {"node_id": self.node_id, "field": self.field}

    def __repr__(self) -> str:
        return f"{self.node_id}.{self.field}"


@dataclass(frozen=True)
class Edge:
    """Data dependency: ``source`` output field -> ``destination`` input field.

    Attributes:
        source: Producing node and its output field.
        destination: Consuming node and its input field.
    """
    source: EdgeConnection
    destination: EdgeConnection

    @classmethod
    def connect(cls, src: str, src_field: str, dst: str, dst_field: str) -> Edge:
        return cls(EdgeConnection(src, src_field), EdgeConnection(dst, dst_field))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Edge:
        src, dst = data["source"], data["destination"]
        return cls.connect(src["node_id"], src["field"], dst["node_id"], dst["field"])

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        return {"source": self.source.to_dict(), "destination": self.destination.to_dict()}

    def __repr__(self) -> str:
        return f"{self.source!r} -> {self.destination!r}"


# ---------------------------------------------------------------------------
# Validation helpers shared by builder and graph
# ---------------------------------------------------------------------------

def _structural_errors(nodes: Mapping[str, BaseNode], edges: Iterable[Edge]) -> List[str]:
    errors: List[str] = []
    for key, node in nodes.items():
        if node.id != key:
            errors.append(f"Node stored under '{key}' has id '{node.id}'")
    for edge in edges:
        if edge.source.node_id not in nodes:
            errors.append(f"Edge {edge!r} references non-existent source node '{edge.source.node_id}'")
        if edge.destination.node_id not in nodes:
            errors.append(f"Edge {edge!r} references non-existent destination node '{edge.destination.node_id}'")
    return errors


def _topological_order(nodes: Mapping[str, BaseNode], edges: Iterable[Edge]) -> List[str]:
    in_degree: Dict[str, int] = {name: 0 for name in nodes}
    adj: Dict[str, List[str]] = {name: [] for name in nodes}

    for edge in edges:
        src, dst = edge.source.node_id, edge.destination.node_id
        if src in adj and dst in in_degree:
            adj[src].append(dst)
            in_degree[dst] += 1

    # Kahn's algorithm
    queue = deque([n for n, d in in_degree.items() if d == 0])
    result: List[str] = []
    while queue:
        node = queue.popleft()
        result.append(node)
        for neighbor in adj[node]:
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                queue.append(neighbor)

    if len(result) != len(nodes):
        remaining = sorted(set(nodes) - set(result))
        raise GraphStructureError(f"Graph contains a cycle involving nodes: {remaining}")
    return result


# ---------------------------------------------------------------------------
# GraphBuilder
# ---------------------------------------------------------------------------

class GraphBuilder:
    """Append-only accumulator for a ``Graph``.

    Nodes and edges can only be added; nothing already added can be removed
    or replaced. Feature extenders receive the builder, not the graph.

    Example::

        builder = GraphBuilder()
        builder.add_node(NoiseNode(NodeRole.NOISE, seed=42, width=512, height=512))
        builder.add_node(TextToLatentsNode(NodeRole.TEXT_TO_LATENTS, steps=30))
        builder.connect(NodeRole.NOISE, "noise", NodeRole.TEXT_TO_LATENTS, "noise")
        graph = builder.build()
    """

    def __init__(self) -> None:
        self._nodes: OrderedDict[str, BaseNode] = OrderedDict()
        self._edges: List[Edge] = []

    @property
    def nodes(self) -> Mapping[str, BaseNode]:
        return MappingProxyType(self._nodes)

    @property
    def edges(self) -> Tuple[Edge, ...]:
        return tuple(self._edges)

    def add_node(self, node: BaseNode) -> GraphBuilder:
        """Add a node under its own id.

        Raises:
            GraphStructureError: If a node with this id is already present.
        """
        if node.id in self._nodes:
            raise GraphStructureError(
                f"Node '{node.id}' already exists ({self._nodes[node.id].type}); "
                f"cannot add {node.type} node with the same id"
            )
        self._nodes[node.id] = node
        return self

    def add_edge(self, edge: Edge) -> GraphBuilder:
        """Append an edge whose endpoints are already in the builder.

        Raises:
            GraphStructureError: If either endpoint node is missing.
        """
        if edge.source.node_id not in self._nodes:
            raise GraphStructureError(f"Source node '{edge.source.node_id}' not found for edge {edge!r}")
        if edge.destination.node_id not in self._nodes:
            raise GraphStructureError(f"Destination node '{edge.destination.node_id}' not found for edge {edge!r}")
        self._edges.append(edge)
        return self

    def connect(self, src: str, src_field: str, dst: str, dst_field: str) -> GraphBuilder:
        """Connect ``src.src_field`` to ``dst.dst_field``."""
        return self.add_edge(Edge.connect(src, src_field, dst, dst_field))

    def __contains__(self, node_id: str) -> bool:
        return str(node_id) in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def build(self, validate: bool = True) -> Graph:
        """Freeze into a ``Graph``. With ``validate`` the result is checked strictly."""
        graph = Graph(self._nodes, self._edges)
        if validate:
            graph.validate(strict=True)
        return graph


# ---------------------------------------------------------------------------
# Graph
# ---------------------------------------------------------------------------

class Graph:
    """Immutable invocation graph.

    ``nodes`` is a read-only id -> node mapping (insertion ordered), ``edges``
    a tuple in insertion order. Two graphs are equal when they hold equal
    nodes under the same ids and the same edges in the same order.
    """

    def __init__(self, nodes: Mapping[str, BaseNode], edges: Iterable[Edge]) -> None:
        self._nodes: Mapping[str, BaseNode] = MappingProxyType(OrderedDict(nodes))
        self._edges: Tuple[Edge, ...] = tuple(edges)

    @property
    def nodes(self) -> Mapping[str, BaseNode]:
        return self._nodes

    @property
    def edges(self) -> Tuple[Edge, ...]:
        return self._edges

    # ==================== VALIDATION ====================

    def validate(self, strict: bool = False) -> List[str]:
        """Validate graph structure.

        Checks:
        1. Every node's id equals its key
        2. All edges reference existing nodes
        3. Graph is acyclic

        Args:
            strict: If True, raise GraphStructureError when anything is wrong.

        Returns:
            List of error strings (empty = all good).
        """
        errors = _structural_errors(self._nodes, self._edges)
        try:
            self.topological_sort()
        except GraphStructureError as e:
            errors.append(str(e))

        if strict and errors:
            raise GraphStructureError(
                "Graph validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )
        return errors

    def topological_sort(self) -> List[str]:
        """Node ids in dependency order.

        Raises:
            GraphStructureError: If the graph contains a cycle.
        """
        return _topological_order(self._nodes, self._edges)

    # ==================== QUERY ====================

    def get_edges_from(self, node_id: str) -> List[Edge]:
        return [e for e in self._edges if e.source.node_id == node_id]

    def get_edges_to(self, node_id: str) -> List[Edge]:
        return [e for e in self._edges if e.destination.node_id == node_id]

    def get_node_dependencies(self, node_id: str) -> Set[str]:
        """All nodes the given node depends on (recursively)."""
        deps: Set[str] = set()
        queue = deque([str(node_id)])
        while queue:
            current = queue.popleft()
            for edge in self.get_edges_to(current):
                if edge.source.node_id not in deps:
                    deps.add(edge.source.node_id)
                    queue.append(edge.source.node_id)
        return deps

    # ==================== SERIALIZATION ====================

    def to_dict(self) -> Dict[str, Any]:
        """Wire form accepted by the execution engine."""
        return {
            "nodes": {node_id: node.to_dict() for node_id, node in self._nodes.items()},
            "edges": [edge.to_dict() for edge in self._edges],
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def to_yaml(self, path: str | Path | None = None) -> str:
        """YAML text of ``to_dict()``; also written to ``path`` when given."""
        conf = OmegaConf.create(self.to_dict())
        if path is not None:
            path = Path(path)
            path.parent.mkdir(parents=True, exist_ok=True)
            OmegaConf.save(conf, path)
        return OmegaConf.to_yaml(conf)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Graph:
        """Rebuild a graph from its wire form (nodes are checked against their keys)."""
        builder = GraphBuilder()
        for node_id, node_conf in (data.get("nodes") or {}).items():
            node_conf = dict(node_conf)
            node_conf.setdefault("id", node_id)
            if node_conf["id"] != node_id:
                raise GraphStructureError(f"Node stored under '{node_id}' has id '{node_conf['id']}'")
            builder.add_node(BaseNode.from_dict(node_conf))
        for edge_def in data.get("edges") or []:
            builder.add_edge(Edge.from_dict(edge_def))
        return builder.build()

    # ==================== VISUALIZATION ====================

    def visualize(self) -> str:
        """Mermaid diagram of the graph."""
        lines = ["graph LR"]
        for node_id, node in self._nodes.items():
            lines.append(f'    {node_id}["{node_id}\\n{node.type}"]')
        for edge in self._edges:
            label = f"{edge.source.field} -> {edge.destination.field}"
            lines.append(f'    {edge.source.node_id} -->|"{label}"| {edge.destination.node_id}')
        return "\n".join(lines)

    # ==================== DUNDER ====================

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: str) -> bool:
        return str(node_id) in self._nodes

    def __getitem__(self, node_id: str) -> BaseNode:
        return self._nodes[str(node_id)]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Graph):
            return NotImplemented
        return dict(self._nodes) == dict(other._nodes) and self._edges == other._edges

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"<Graph nodes={len(self._nodes)} edges={len(self._edges)} ids={list(self._nodes)}>"
