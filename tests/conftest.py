"""Shared fixtures: settings snapshots for the graph builders."""
import pytest

from genflow.schema import ControlNetConfig, ControlNetSettings, GenerationConfig


@pytest.fixture
def make_config():
    """Factory: GenerationConfig with test defaults, overridable per field."""
    def _make(**overrides) -> GenerationConfig:
        values = {
            "positive_prompt": "a cat in a spacesuit",
            "negative_prompt": "blurry",
            "model": "stable-diffusion-1.5",
            "cfg_scale": 7.5,
            "scheduler": "euler",
            "steps": 30,
            "width": 512,
            "height": 512,
            "iterations": 1,
            "seed": 42,
            "should_randomize_seed": False,
        }
        values.update(overrides)
        return GenerationConfig(**values)
    return _make


@pytest.fixture
def controlnet_settings():
    """Two usable ControlNets (canny preprocessed, raw depth) and one disabled."""
    return ControlNetSettings(
        is_enabled=True,
        control_nets=[
            ControlNetConfig(
                control_net_id="canny",
                model="sd-controlnet-canny",
                control_image="upload.png",
                processed_control_image="upload_canny.png",
                processor_type="canny_image_processor",
                weight=0.8,
            ),
            ControlNetConfig(
                control_net_id="depth",
                model="sd-controlnet-depth",
                control_image="depth.png",
                begin_step_pct=0.1,
                end_step_pct=0.9,
                control_mode="more_prompt",
            ),
            ControlNetConfig(
                control_net_id="off",
                is_enabled=False,
                model="sd-controlnet-openpose",
                control_image="pose.png",
            ),
        ],
    )
