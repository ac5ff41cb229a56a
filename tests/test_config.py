"""Tests for config loading (OmegaConf) and the GenerationConfig schema."""
import json

import pytest
from omegaconf import OmegaConf
from pydantic import ValidationError

from genflow.core.config import (
    apply_overrides,
    load_config,
    load_generation_config,
    merge_configs,
    save_config,
    to_generation_config,
)
from genflow.schema import GenerationConfig


@pytest.fixture
def settings_file(tmp_path):
    base = tmp_path / "base.yaml"
    base.write_text(
        "model: stable-diffusion-1.5\n"
        "scheduler: euler\n"
        "steps: 50\n"
        "width: 512\n"
        "height: 512\n"
    )
    child = tmp_path / "txt2img.yaml"
    child.write_text(
        "_base_: base.yaml\n"
        "positive_prompt: a lighthouse at dusk\n"
        "steps: 25\n"
        "seed: 1234\n"
        "should_randomize_seed: false\n"
    )
    return child


class TestGenerationConfig:
    def test_defaults(self):
        config = GenerationConfig()
        assert config.iterations == 1
        assert config.should_randomize_seed is True
        assert config.controlnet.is_enabled is False
        assert config.controlnet.control_nets == []

    def test_frozen(self):
        config = GenerationConfig()
        with pytest.raises(ValidationError):
            config.steps = 3

    def test_no_semantic_checks(self):
        config = GenerationConfig(steps=0, iterations=1, width=-1)
        assert config.steps == 0

    def test_type_errors_propagate(self):
        with pytest.raises(ValidationError):
            GenerationConfig(steps="many")


class TestLoadConfig:
    def test_base_inheritance(self, settings_file):
        cfg = load_config(settings_file)
        assert "_base_" not in cfg
        assert cfg.steps == 25
        assert cfg.scheduler == "euler"
        assert cfg.positive_prompt == "a lighthouse at dusk"

    def test_json(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"seed": 5, "iterations": 3}))
        assert to_generation_config(load_config(path)).iterations == 3

    def test_from_mapping(self):
        assert load_config({"seed": 9}).seed == 9

    def test_merge_last_wins(self):
        merged = merge_configs(OmegaConf.create({"steps": 10, "seed": 1}), OmegaConf.create({"steps": 20}))
        assert (merged.steps, merged.seed) == (20, 1)

    def test_overrides(self, settings_file):
        cfg = apply_overrides(load_config(settings_file), ["iterations=4", "controlnet.is_enabled=true"])
        assert cfg.iterations == 4
        assert cfg.controlnet.is_enabled is True

    def test_no_overrides_returns_same(self, settings_file):
        cfg = load_config(settings_file)
        assert apply_overrides(cfg, []) is cfg

    def test_save_roundtrip(self, tmp_path, settings_file):
        cfg = load_config(settings_file)
        out = tmp_path / "saved" / "settings.yaml"
        save_config(cfg, out)
        assert load_config(out) == cfg


class TestToGenerationConfig:
    def test_flat(self, settings_file):
        config = load_generation_config(settings_file, ["iterations=3"])
        assert isinstance(config, GenerationConfig)
        assert (config.steps, config.seed, config.iterations) == (25, 1234, 3)
        assert config.should_randomize_seed is False

    def test_nested_under_generation(self):
        config = to_generation_config({"generation": {"seed": 77, "iterations": 2}})
        assert (config.seed, config.iterations) == (77, 2)

    def test_controlnet_section(self):
        config = to_generation_config({
            "controlnet": {
                "is_enabled": True,
                "control_nets": [{"control_net_id": "c", "model": "m", "control_image": "i.png"}],
            },
        })
        assert config.controlnet.control_nets[0].control_net_id == "c"

    def test_unknown_types_raise(self):
        with pytest.raises(ValidationError):
            to_generation_config({"iterations": "lots"})
