# genflow/core/graph/nodes.py
"""Invocation nodes understood by the execution engine.

Each node kind is a frozen dataclass tagged with the engine's ``type`` string.
Kinds register themselves with ``@register_node`` so a serialized graph can
be rebuilt from its wire form.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from difflib import get_close_matches
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Optional, Type


class NodeRole(str, Enum):
    """Fixed node ids of the text-to-image graph (wire values)."""
    POSITIVE_CONDITIONING = "positive_conditioning"
    NEGATIVE_CONDITIONING = "negative_conditioning"
    TEXT_TO_LATENTS = "text_to_latents"
    LATENTS_TO_IMAGE = "latents_to_image"
    NOISE = "noise"
    RANDOM_INT = "rand_int"
    RANGE_OF_SIZE = "range_of_size"
    ITERATE = "iterate"
    CONTROL_NET_COLLECT = "control_net_collect"

    def __str__(self) -> str:
        return self.value


_NODE_TYPES: Dict[str, Type["BaseNode"]] = {}


def register_node(node_type: str):
    """Decorator: @register_node("noise")"""
    def decorator(node_cls: Type[BaseNode]) -> Type[BaseNode]:
        if node_type in _NODE_TYPES:
            raise ValueError(f"Node type '{node_type}' already registered by {_NODE_TYPES[node_type].__name__}")
        _NODE_TYPES[node_type] = node_cls
        node_cls.type = node_type
        return node_cls
    return decorator


def get_node_class(node_type: str) -> Type[BaseNode]:
    """Get node class by wire type. Raises KeyError with suggestions."""
    if node_type not in _NODE_TYPES:
        similar = get_close_matches(node_type, _NODE_TYPES.keys(), n=3, cutoff=0.4)
        msg = f"Node type '{node_type}' is not registered."
        if similar:
            msg += f" Did you mean: {', '.join(similar)}?"
        raise KeyError(msg)
    return _NODE_TYPES[node_type]


def list_node_types() -> list[str]:
    return sorted(_NODE_TYPES)


@dataclass(frozen=True)
class BaseNode:
    """Common part of every node: ``id`` (equal to its key in the graph) and ``type``."""
    type: ClassVar[str] = "base"

    id: str

    def __post_init__(self) -> None:
        # NodeRole members are str subclasses; keep the plain value
        object.__setattr__(self, "id", str(self.id))
        if not self.id.strip():
            raise ValueError("node id must be non-empty")

    def to_dict(self) -> Dict[str, Any]:
        """Wire form. Unset optional parameters are left out, not sent as null."""
        data: Dict[str, Any] = {"id": self.id, "type": self.type}
        for f in dataclasses.fields(self):
            if f.name == "id":
                continue
            value = getattr(self, f.name)
            if value is None:
                continue
            data[f.name] = dataclasses.asdict(value) if dataclasses.is_dataclass(value) else value
        return data

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> BaseNode:
        """Rebuild a node of the registered kind named by ``data["type"]``."""
        params = dict(data)
        node_type = params.pop("type", None)
        if node_type is None:
            raise KeyError("node data must contain 'type'")
        node_cls = get_node_class(node_type)
        known = {f.name for f in dataclasses.fields(node_cls)}
        unknown = set(params) - known
        if unknown:
            raise KeyError(f"Unknown parameters for '{node_type}' node: {sorted(unknown)}")
        return node_cls(**params)


# ==================== PROMPT / DENOISE / DECODE ====================

@register_node("compel")
@dataclass(frozen=True)
class CompelNode(BaseNode):
    """Encodes one prompt into conditioning."""
    prompt: str = ""
    model: Optional[str] = None


@register_node("t2l")
@dataclass(frozen=True)
class TextToLatentsNode(BaseNode):
    """Denoising stage; the attachment point for auxiliary conditioning."""
    cfg_scale: Optional[float] = None
    model: Optional[str] = None
    scheduler: Optional[str] = None
    steps: Optional[int] = None


@register_node("l2i")
@dataclass(frozen=True)
class LatentsToImageNode(BaseNode):
    model: Optional[str] = None


# ==================== SEED SOURCES ====================

@register_node("noise")
@dataclass(frozen=True)
class NoiseNode(BaseNode):
    """Initial noise. ``seed`` stays unset when it is fed by an edge."""
    seed: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None


@register_node("rand_int")
@dataclass(frozen=True)
class RandomIntNode(BaseNode):
    """Random integer drawn by the engine at run time (output field ``a``)."""


@register_node("range_of_size")
@dataclass(frozen=True)
class RangeOfSizeNode(BaseNode):
    """Collection of ints ``start .. start + size``; ``start`` may come from an edge."""
    start: Optional[int] = None
    size: Optional[int] = None


@register_node("iterate")
@dataclass(frozen=True)
class IterateNode(BaseNode):
    """Fans a collection out into one run per item."""


@register_node("collect")
@dataclass(frozen=True)
class CollectNode(BaseNode):
    """Gathers items into a collection."""


# ==================== ADAPTERS ====================

@dataclass(frozen=True)
class ImageField:
    """Reference to an image stored by the engine. Wire form: ``{"image_name": ...}``."""
    image_name: str


@register_node("controlnet")
@dataclass(frozen=True)
class ControlNetNode(BaseNode):
    image: Optional[ImageField] = None
    control_model: Optional[str] = None
    control_weight: Optional[float] = None
    begin_step_percent: Optional[float] = None
    end_step_percent: Optional[float] = None
    control_mode: Optional[str] = None

    def __post_init__(self) -> None:
        super().__post_init__()
        # Wire form arrives as a plain mapping
        if isinstance(self.image, Mapping):
            object.__setattr__(self, "image", ImageField(**self.image))
