from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Mapping, Union

from omegaconf import DictConfig, OmegaConf

from genflow.schema import GenerationConfig

logger = logging.getLogger(__name__)

ConfigLike = Union[str, Path, DictConfig, Mapping[str, Any]]


def load_config(path: ConfigLike) -> DictConfig:
    """Load a YAML/JSON config, resolving ``_base_`` inheritance.

    ``_base_`` is a path relative to the file that names it; the child's keys
    win over the base's.
    """
    if isinstance(path, (str, Path)):
        path = Path(path)
        logger.debug(f"Loading config {path}")
        cfg = OmegaConf.load(path)
        base_dir = path.parent
    else:
        cfg = OmegaConf.create(dict(path) if not isinstance(path, DictConfig) else path)
        base_dir = Path.cwd()

    if "_base_" in cfg:
        base_path = Path(cfg._base_)
        if not base_path.is_absolute():
            base_path = base_dir / base_path
        base = load_config(base_path)
        cfg = OmegaConf.merge(base, cfg)
        del cfg["_base_"]

    return OmegaConf.create(cfg)


def save_config(config: DictConfig, path: str | Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    OmegaConf.save(config, path)


def merge_configs(*configs: DictConfig) -> DictConfig:
    """Merge several configs (last one wins)."""
    return OmegaConf.merge(*configs)


def apply_overrides(config: DictConfig, overrides: Iterable[str]) -> DictConfig:
    """Apply ``key=value`` dotlist overrides, e.g. ``["steps=30", "controlnet.is_enabled=true"]``."""
    overrides = list(overrides)
    if not overrides:
        return config
    return OmegaConf.merge(config, OmegaConf.from_dotlist(overrides))


def to_generation_config(config: ConfigLike) -> GenerationConfig:
    """DictConfig / mapping -> GenerationConfig.

    Settings may sit at the top level or under a ``generation:`` key.
    """
    if not isinstance(config, DictConfig):
        config = OmegaConf.create(dict(config))
    data = OmegaConf.to_container(config, resolve=True)
    if "generation" in data:
        data = data["generation"]
    return GenerationConfig.model_validate(data)


def load_generation_config(path: ConfigLike, overrides: Iterable[str] = ()) -> GenerationConfig:
    """Load a settings file, apply overrides and validate into a GenerationConfig."""
    cfg = apply_overrides(load_config(path), overrides)
    return to_generation_config(cfg)
