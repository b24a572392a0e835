"""
Tests for ProcessingOptions validation and record conversion.
"""

import dataclasses
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from iconmatte.engine.options import ProcessingOptions


def test_defaults():
    options = ProcessingOptions()
    assert options.threshold == 30
    assert options.edge_smoothing is True
    assert options.erode_pixels == 0
    assert options.glass_outline_width == 2
    assert options.glass_brightness == 200
    assert options.target_background_color is None
    assert options.quality_method is None


def test_hex_color_is_normalized():
    assert ProcessingOptions(target_background_color="#ff0000").target_background_color == (255, 0, 0)
    assert ProcessingOptions(target_background_color=[1, 2, 3]).target_background_color == (1, 2, 3)


@pytest.mark.parametrize("kwargs", [
    {"threshold": 0},
    {"threshold": 101},
    {"threshold": 30.5},
    {"erode_pixels": 4},
    {"glass_outline_width": 0},
    {"glass_brightness": 300},
    {"edge_cleanup": "yes"},
    {"target_background_color": "#gg0000"},
    {"quality_method": "magic"},
    {"quality_method": "gaussian", "quality_params": {"sigma": 1}},
    {"quality_params": {"radius": 1}},
    {"quality_method": "gaussian", "quality_params": {"radius": 2.5}},
    {"quality_method": "gaussian", "quality_params": {"radius": True}},
    {"quality_method": "gaussian", "quality_params": {"passes": 9}},
    {"quality_method": "morphological", "quality_params": {"dilate_radius": 1.5}},
    {"quality_method": "supersampling", "quality_params": {"scale": 2.5}},
    {"quality_method": "vector", "quality_params": {"num_colors": "16"}},
    {"quality_method": "edge_bezier", "quality_params": {"strength": "0.5"}},
])
def test_invalid_values_are_rejected(kwargs):
    with pytest.raises(ValueError):
        ProcessingOptions(**kwargs)


def test_options_are_frozen():
    options = ProcessingOptions()
    with pytest.raises(dataclasses.FrozenInstanceError):
        options.threshold = 50


def test_from_dict_accepts_camel_case():
    options = ProcessingOptions.from_dict({
        "threshold": 45,
        "edgeSmoothing": False,
        "targetBackgroundColor": "#00ff00",
        "erodePixels": 2,
        "removeLiquidGlass": True,
        "glassOutlineWidth": 3,
        "qualityMethod": "supersampling",
        "qualityParams": {"scale": 2},
        "unrelated": "ignored",
    })
    assert options.threshold == 45
    assert options.edge_smoothing is False
    assert options.target_background_color == (0, 255, 0)
    assert options.erode_pixels == 2
    assert options.remove_liquid_glass is True
    assert options.glass_outline_width == 3
    assert options.quality_method == "supersampling"
    assert options.quality_params == {"scale": 2}


def test_to_dict_round_trips():
    options = ProcessingOptions(
        threshold=12,
        target_background_color="#123456",
        edge_cleanup=True,
        quality_method="edge_bezier",
        quality_params={"strength": 0.5},
    )
    record = options.to_dict()
    assert record["target_background_color"] == [0x12, 0x34, 0x56]
    assert ProcessingOptions.from_dict(record) == options


def test_whole_numbers_accepted_for_float_params():
    options = ProcessingOptions(quality_method="edge_bezier", quality_params={"strength": 1})
    assert options.quality_params == {"strength": 1}
