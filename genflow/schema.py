# genflow/schema.py
"""Pydantic schemas for the generation settings snapshot.

One contract for every caller (CLI, config file, UI state): the assembler only
ever reads a ``GenerationConfig``.
"""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ==================== CONTROLNET ====================

class ControlNetConfig(BaseModel):
    """One ControlNet entry as configured by the user."""
    model_config = ConfigDict(frozen=True)

    control_net_id: str = Field(description="Unique among enabled entries; the graph node becomes control_net_<id>, so 'collect' is reserved")
    is_enabled: bool = True
    model: Optional[str] = Field(default=None, description="ControlNet model name")

    # Raw upload and the preprocessed (canny, depth, ...) image name
    control_image: Optional[str] = None
    processed_control_image: Optional[str] = None
    processor_type: str = Field(default="none", description="Preprocessor; 'none' = use control_image as is")

    weight: float = 1.0
    begin_step_pct: float = 0.0
    end_step_pct: float = 1.0
    control_mode: str = "balanced"


class ControlNetSettings(BaseModel):
    """ControlNet section of the generation settings."""
    model_config = ConfigDict(frozen=True)

    is_enabled: bool = False
    control_nets: List[ControlNetConfig] = Field(default_factory=list)


# ==================== GENERATION ====================

class GenerationConfig(BaseModel):
    """Read-only snapshot of the text-to-image settings.

    Values are taken as given: semantic checks (positive steps, sane sizes)
    belong to whoever builds the snapshot.
    """
    model_config = ConfigDict(frozen=True)

    positive_prompt: str = ""
    negative_prompt: str = ""
    model: str = "stable-diffusion-1.5"

    # Sampler
    cfg_scale: float = 7.5
    scheduler: str = "euler"
    steps: int = 50

    # Output size
    width: int = 512
    height: int = 512

    # Seed policy
    iterations: int = 1
    seed: int = 0
    should_randomize_seed: bool = True

    controlnet: ControlNetSettings = Field(default_factory=ControlNetSettings)
