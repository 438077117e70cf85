"""Tests for pipeline configuration loading and validation."""

from __future__ import annotations

import json

import pytest

from laserweed.config import (
    ClassifierParams,
    CropSegmentationParams,
    PipelineConfig,
    load_config,
    save_config,
)


def test_default_constants() -> None:
    config = load_config()
    assert config.weed.hsv_low == (95, 0, 0)
    assert config.weed.hsv_high == (179, 117, 105)
    assert config.weed.area_threshold == 50.0
    assert config.crop.lab_low == (0, 82, 123)
    assert config.crop.lab_high == (240, 131, 134)
    assert config.crop.area_threshold == 500.0
    assert config.classifier.score_threshold == 4.0
    assert config.classifier.max_plant_area == 100_000.0
    assert config.laser_removal.hsv_low == (80, 80, 80)
    assert config.lines.target_lab == (163, 101, 139)
    assert config.jet.weed_margin == 5


def test_from_dict_overrides_only_given_values() -> None:
    config = PipelineConfig.from_dict(
        {
            "classifier": {"score_threshold": 6},
            "weed": {"hsv_low": [90, 10, 0]},
            "lines": {"color_filter": 1},
        }
    )
    assert config.classifier.score_threshold == 6.0
    assert isinstance(config.classifier.score_threshold, float)
    assert config.weed.hsv_low == (90, 10, 0)
    assert config.weed.hsv_high == (179, 117, 105)
    assert config.lines.color_filter is True
    assert config.crop == CropSegmentationParams()


@pytest.mark.parametrize(
    "data",
    [
        {"unknown": {}},
        {"classifier": {"no_such_key": 1.0}},
        {"classifier": 3.0},
        {"weed": {"hsv_low": [1, 2]}},
        {"crop": {"lab_low": [250, 0, 0]}},
        {"crop": {"aspect_ratio_min": 6.0}},
        {"classifier": {"area_divisor": 0}},
        {"lines": {"canny_low": 200.0}},
        {"jet": {"weed_tolerance": -1}},
    ],
)
def test_from_dict_rejects_bad_values(data) -> None:
    with pytest.raises(ValueError):
        PipelineConfig.from_dict(data)


def test_load_config_from_json(tmp_path) -> None:
    config_path = tmp_path / "params.json"
    config_path.write_text(
        json.dumps({"jet": {"weed_margin": 8}}), encoding="utf-8"
    )
    config = load_config(config_path)
    assert config.jet.weed_margin == 8
    assert config.classifier == ClassifierParams()


def test_load_config_rejects_non_object(tmp_path) -> None:
    config_path = tmp_path / "params.json"
    config_path.write_text("[1, 2, 3]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(config_path)


def test_save_then_load_keeps_values(tmp_path) -> None:
    config = PipelineConfig.from_dict({"classifier": {"score_threshold": 3.5}})
    target = tmp_path / "nested" / "params.json"
    save_config(config, target)
    assert load_config(target) == config
