# genflow/core/graph/templates/image_pipelines.py
"""Graph templates for image generation.

Text to image:

    positive_conditioning.conditioning -> text_to_latents.positive_conditioning
    negative_conditioning.conditioning -> text_to_latents.negative_conditioning
    <seed source> -> noise.seed          (see seed_policy)
    noise.noise -> text_to_latents.noise
    text_to_latents.latents -> latents_to_image.latents
"""
from __future__ import annotations

import logging
from typing import Optional

from genflow.core.graph.adapters import FeatureExtender, add_controlnet_to_linear_graph
from genflow.core.graph.graph import Graph, GraphBuilder, GraphStructureError
from genflow.core.graph.nodes import (
    CompelNode,
    LatentsToImageNode,
    NodeRole,
    NoiseNode,
    TextToLatentsNode,
)
from genflow.core.graph.seed_policy import SeedPolicy, add_seed_source
from genflow.core.graph.templates import register_template
from genflow.schema import GenerationConfig

logger = logging.getLogger(__name__)


def _add_base_pipeline(builder: GraphBuilder, config: GenerationConfig) -> None:
    """Conditioning, denoise and decode nodes with their fixed edges."""
    builder.add_node(CompelNode(NodeRole.POSITIVE_CONDITIONING, prompt=config.positive_prompt, model=config.model))
    builder.add_node(CompelNode(NodeRole.NEGATIVE_CONDITIONING, prompt=config.negative_prompt, model=config.model))
    builder.add_node(TextToLatentsNode(
        NodeRole.TEXT_TO_LATENTS,
        cfg_scale=config.cfg_scale,
        model=config.model,
        scheduler=config.scheduler,
        steps=config.steps,
    ))
    builder.add_node(LatentsToImageNode(NodeRole.LATENTS_TO_IMAGE, model=config.model))

    builder.connect(NodeRole.POSITIVE_CONDITIONING, "conditioning", NodeRole.TEXT_TO_LATENTS, "positive_conditioning")
    builder.connect(NodeRole.NEGATIVE_CONDITIONING, "conditioning", NodeRole.TEXT_TO_LATENTS, "negative_conditioning")
    builder.connect(NodeRole.TEXT_TO_LATENTS, "latents", NodeRole.LATENTS_TO_IMAGE, "latents")


def _add_noise(builder: GraphBuilder, config: GenerationConfig, policy: SeedPolicy) -> None:
    """Seed generators of ``policy``, the noise node, and noise -> text_to_latents."""
    source = add_seed_source(builder, policy, config)
    builder.add_node(NoiseNode(NodeRole.NOISE, seed=source.seed, width=config.width, height=config.height))

    if source.feed is not None:
        builder.connect(source.feed.node_id, source.feed.field, NodeRole.NOISE, "seed")
    builder.connect(NodeRole.NOISE, "noise", NodeRole.TEXT_TO_LATENTS, "noise")


def _check_append_only(before: Graph, builder: GraphBuilder) -> None:
    """Raise if an extender changed or dropped anything already in the graph."""
    nodes = builder.nodes
    for node_id, node in before.nodes.items():
        if nodes.get(node_id) != node:
            raise GraphStructureError(f"Feature extender rewrote node '{node_id}'")
    if builder.edges[:len(before.edges)] != before.edges:
        raise GraphStructureError("Feature extender rewrote edges of the base graph")


@register_template("txt2img")
def build_text_to_image_graph(
    config: GenerationConfig,
    extender: Optional[FeatureExtender] = add_controlnet_to_linear_graph,
) -> Graph:
    """Build the text-to-image graph for one settings snapshot.

    The seed topology is chosen by ``SeedPolicy.select``; the extender (ControlNet
    by default, ``None`` to skip) is attached to ``text_to_latents`` last.

    Args:
        config: Settings snapshot.
        extender: Feature extender, called as ``extender(builder, "text_to_latents", config)``.

    Returns:
        A validated, immutable Graph.

    Raises:
        GraphStructureError: If the result is structurally broken.
    """
    builder = GraphBuilder()
    _add_base_pipeline(builder, config)

    policy = SeedPolicy.select(config.should_randomize_seed, config.iterations)
    logger.debug(f"txt2img: seed policy {policy.value} (iterations={config.iterations})")
    _add_noise(builder, config, policy)

    if extender is not None:
        base = builder.build()
        extender(builder, NodeRole.TEXT_TO_LATENTS.value, config)
        _check_append_only(base, builder)

    graph = builder.build()
    logger.debug(f"txt2img: built {len(graph.nodes)} nodes, {len(graph.edges)} edges")
    return graph
