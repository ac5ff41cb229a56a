"""Workflow templates: functions that turn a GenerationConfig into a Graph.

Each template is registered under a name and looked up by the CLI::

    @register_template("txt2img")
    def build_text_to_image_graph(config, extender=...) -> Graph: ...

    get_template("txt2img")(config)
"""
from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Callable, Dict, NamedTuple, Protocol

if TYPE_CHECKING:
    from genflow.core.graph.graph import Graph
    from genflow.schema import GenerationConfig


class TemplateBuilder(Protocol):
    def __call__(self, config: GenerationConfig) -> Graph:
        ...


class _Template(NamedTuple):
    builder: TemplateBuilder
    description: str


_TEMPLATES: Dict[str, _Template] = {}

# Modules whose @register_template calls populate the registry
_TEMPLATE_MODULES = ("genflow.core.graph.templates.image_pipelines",)


def register_template(name: str, description: str = ""):
    """Decorator registering a graph builder under ``name``.

    The description defaults to the first line of the builder's docstring.
    Registering a second builder under a taken name raises ``ValueError``.
    """
    def decorator(fn: Callable) -> Callable:
        if name in _TEMPLATES:
            raise ValueError(f"Template '{name}' already registered by {_TEMPLATES[name].builder.__name__}")
        doc_line = (fn.__doc__ or "").strip().splitlines()[:1]
        _TEMPLATES[name] = _Template(fn, description or "".join(doc_line))
        return fn
    return decorator


def get_template(name: str) -> TemplateBuilder:
    """Graph builder registered under ``name``. Raises KeyError listing the known names."""
    _ensure_templates_loaded()
    if name not in _TEMPLATES:
        raise KeyError(f"Template '{name}' not found. Available: {sorted(_TEMPLATES)}")
    return _TEMPLATES[name].builder


def list_templates() -> list[str]:
    _ensure_templates_loaded()
    return sorted(_TEMPLATES)


def describe_templates() -> Dict[str, str]:
    """Template name -> one-line description, sorted by name."""
    _ensure_templates_loaded()
    return {name: _TEMPLATES[name].description for name in sorted(_TEMPLATES)}


def _ensure_templates_loaded() -> None:
    for module in _TEMPLATE_MODULES:
        importlib.import_module(module)
