# genflow/core/graph/adapters.py
"""Feature extenders: attach optional side pipelines (ControlNet, ...) to a built graph.

An extender receives the ``GraphBuilder`` after the base topology is wired,
the id of the node auxiliary conditioning attaches to, and the settings
snapshot. Extenders only append; the assembler checks that afterwards.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Protocol

from genflow.schema import ControlNetConfig, ControlNetSettings, GenerationConfig

from .graph import GraphBuilder
from .nodes import CollectNode, ControlNetNode, ImageField, NodeRole

logger = logging.getLogger(__name__)


class FeatureExtender(Protocol):
    def __call__(self, builder: GraphBuilder, attachment_node_id: str, config: GenerationConfig) -> None:
        ...


def noop_extender(builder: GraphBuilder, attachment_node_id: str, config: GenerationConfig) -> None:
    """Extender that adds nothing."""


# ==================== CONTROLNET ====================

def control_net_node_id(control_net: ControlNetConfig) -> str:
    return f"control_net_{control_net.control_net_id}"


def _control_image_name(control_net: ControlNetConfig) -> Optional[str]:
    """Preprocessed image when a processor ran, otherwise the raw upload."""
    if control_net.processed_control_image and control_net.processor_type != "none":
        return control_net.processed_control_image
    return control_net.control_image or None


def get_valid_control_nets(settings: ControlNetSettings) -> List[ControlNetConfig]:
    """Enabled ControlNets that have both a model and an image to condition on.

    Raises ValueError when two of them share a ``control_net_id``, or when an id
    maps onto the reserved ``control_net_collect`` node.
    """
    valid = []
    node_ids = set()
    for control_net in settings.control_nets:
        if not control_net.is_enabled:
            continue
        if not control_net.model or _control_image_name(control_net) is None:
            logger.debug(f"Skipping ControlNet '{control_net.control_net_id}': no model or image")
            continue
        node_id = control_net_node_id(control_net)
        if node_id == NodeRole.CONTROL_NET_COLLECT.value:
            raise ValueError(f"ControlNet id '{control_net.control_net_id}' is reserved (node '{node_id}')")
        if node_id in node_ids:
            raise ValueError(f"Duplicate ControlNet id '{control_net.control_net_id}'")
        node_ids.add(node_id)
        valid.append(control_net)
    return valid


def add_controlnet_to_linear_graph(
    builder: GraphBuilder,
    attachment_node_id: str,
    config: GenerationConfig,
) -> None:
    """Add the configured ControlNets and feed them into ``attachment_node_id.control``.

    One ControlNet connects directly; several are gathered by a collect node
    first::

        control_net_<id>.control -> <attachment>.control
        control_net_<id>.control -> control_net_collect.item
        control_net_collect.collection -> <attachment>.control

    Does nothing when ControlNet is disabled or no entry is usable.
    """
    settings = config.controlnet
    if not settings.is_enabled:
        return
    control_nets = get_valid_control_nets(settings)
    if not control_nets:
        return

    if attachment_node_id not in builder:
        raise ValueError(f"Graph must have node '{attachment_node_id}' to attach ControlNet to")

    collect = len(control_nets) > 1
    if collect:
        builder.add_node(CollectNode(NodeRole.CONTROL_NET_COLLECT))
        builder.connect(NodeRole.CONTROL_NET_COLLECT, "collection", attachment_node_id, "control")

    for control_net in control_nets:
        node = ControlNetNode(
            control_net_node_id(control_net),
            image=ImageField(_control_image_name(control_net)),
            control_model=control_net.model,
            control_weight=control_net.weight,
            begin_step_percent=control_net.begin_step_pct,
            end_step_percent=control_net.end_step_pct,
            control_mode=control_net.control_mode,
        )
        builder.add_node(node)
        if collect:
            builder.connect(node.id, "control", NodeRole.CONTROL_NET_COLLECT, "item")
        else:
            builder.connect(node.id, "control", attachment_node_id, "control")

    logger.info(f"Attached {len(control_nets)} ControlNet(s) to '{attachment_node_id}'")
