"""genflow: builds text-to-image invocation graphs for an external execution engine.

Usage::

    from genflow import GenerationConfig, build_text_to_image_graph
    graph = build_text_to_image_graph(GenerationConfig(positive_prompt="a cat", seed=42))
    payload = graph.to_dict()

    # From the command line
    python -m genflow build settings.yaml --set iterations=4
"""
__version__ = "0.1.0"

from genflow.schema import ControlNetConfig, ControlNetSettings, GenerationConfig
from genflow.core.graph import Edge, Graph, GraphBuilder, GraphStructureError, NodeRole, SeedPolicy
from genflow.core.graph.templates import get_template, list_templates
from genflow.core.graph.templates.image_pipelines import build_text_to_image_graph

__all__ = [
    "__version__",
    "ControlNetConfig",
    "ControlNetSettings",
    "Edge",
    "GenerationConfig",
    "Graph",
    "GraphBuilder",
    "GraphStructureError",
    "NodeRole",
    "SeedPolicy",
    "build_text_to_image_graph",
    "get_template",
    "list_templates",
]
