"""Invocation graph: nodes, field-level edges and the graph builders.

Graph is an immutable DAG of engine invocations; GraphBuilder assembles it
append-only, and templates turn a settings snapshot into a Graph.
"""

from .graph import Edge, EdgeConnection, Graph, GraphBuilder, GraphStructureError
from .nodes import BaseNode, ImageField, NodeRole, get_node_class, list_node_types, register_node
from .seed_policy import SeedPolicy, SeedSource, add_seed_source
from .adapters import FeatureExtender, add_controlnet_to_linear_graph, get_valid_control_nets, noop_extender

__all__ = [
    "BaseNode",
    "Edge",
    "EdgeConnection",
    "FeatureExtender",
    "Graph",
    "GraphBuilder",
    "GraphStructureError",
    "ImageField",
    "NodeRole",
    "SeedPolicy",
    "SeedSource",
    "add_controlnet_to_linear_graph",
    "add_seed_source",
    "get_node_class",
    "get_valid_control_nets",
    "list_node_types",
    "noop_extender",
    "register_node",
]
