"""
Tests for persisted user defaults.
"""

import json
import logging
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from iconmatte.engine.options import ProcessingOptions
from iconmatte.utils.config import DEFAULT_CONFIG, ConfigManager


def test_missing_file_gives_defaults(tmp_path):
    config = ConfigManager(tmp_path / "settings.json")
    assert config.get_all() == DEFAULT_CONFIG
    assert config.get("missing", 7) == 7


def test_set_persists(tmp_path):
    path = tmp_path / "settings.json"
    ConfigManager(path).set("threshold", 55)

    assert json.loads(path.read_text())["threshold"] == 55
    assert ConfigManager(path).get("threshold") == 55


def test_corrupt_file_falls_back_to_defaults(tmp_path, caplog):
    path = tmp_path / "settings.json"
    path.write_text("{not json")

    with caplog.at_level(logging.WARNING):
        config = ConfigManager(path)

    assert config.get("threshold") == DEFAULT_CONFIG["threshold"]
    assert "Could not load config" in caplog.text


def test_reset_restores_defaults(tmp_path):
    config = ConfigManager(tmp_path / "settings.json")
    config.update({"threshold": 80, "erode_pixels": 2})
    config.reset("threshold")
    assert config.get("threshold") == 30
    assert config.get("erode_pixels") == 2
    config.reset()
    assert config.get("erode_pixels") == 0


def test_processing_options_from_stored_values(tmp_path):
    config = ConfigManager(tmp_path / "settings.json")
    config.update({"threshold": 40, "edge_cleanup": True})

    options = config.processing_options(erode_pixels=1)

    assert options == ProcessingOptions(threshold=40, edge_cleanup=True, erode_pixels=1)


def test_invalid_stored_values_raise(tmp_path):
    config = ConfigManager(tmp_path / "settings.json")
    config.set("threshold", 500)
    with pytest.raises(ValueError):
        config.processing_options()


def test_store_processing_options(tmp_path):
    path = tmp_path / "settings.json"
    ConfigManager(path).store_processing_options(
        ProcessingOptions(target_background_color="#ffffff", remove_liquid_glass=True)
    )

    reloaded = ConfigManager(path)
    assert reloaded.get("target_background_color") == [255, 255, 255]
    assert reloaded.processing_options().remove_liquid_glass is True
