"""
Tests for the iconmatte command-line driver.
"""

import json
import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from iconmatte.engine.buffer import PixelBuffer
from iconmatte.main import _parse_param, collect_images, main
from iconmatte.utils.image_utils import load_image, save_image


@pytest.fixture(autouse=True)
def isolated_config_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.setenv("APPDATA", str(tmp_path / "xdg"))


def write_icon(path):
    buf = PixelBuffer.blank(16, 16, (255, 255, 255, 255))
    buf.pixels[4:12, 4:12] = (30, 60, 200, 255)
    return save_image(buf, path)


def test_processes_directory(tmp_path):
    inputs = tmp_path / "in"
    write_icon(inputs / "alpha.png")
    write_icon(inputs / "beta.png")
    out_dir = tmp_path / "out"

    code = main([str(inputs), "-o", str(out_dir), "--config", str(tmp_path / "settings.json")])

    assert code == 0
    result = load_image(out_dir / "alpha_no_bg.png")
    assert result.alpha[0, 0] == 0
    assert result.alpha[8, 8] == 255
    assert (out_dir / "beta_no_bg.png").exists()


def test_failed_image_sets_exit_status(tmp_path):
    inputs = tmp_path / "in"
    write_icon(inputs / "good.png")
    (inputs / "bad.png").write_bytes(b"nope")

    code = main([str(inputs), "--config", str(tmp_path / "settings.json")])

    assert code == 1
    assert (inputs / "good_no_bg.png").exists()
    assert not (inputs / "bad_no_bg.png").exists()


def test_reference_and_overlay(tmp_path):
    icon = write_icon(tmp_path / "icon.png")
    reference = save_image(PixelBuffer.blank(16, 16, (255, 255, 255, 255)), tmp_path / "ref.png")
    overlay = save_image(PixelBuffer.blank(32, 32, (0, 200, 0, 255)), tmp_path / "bg.png")
    out_dir = tmp_path / "out"

    code = main([
        str(icon), "-r", str(reference), "--overlay", str(overlay), "--icon-scale", "0.5",
        "-o", str(out_dir), "--config", str(tmp_path / "settings.json"),
    ])

    assert code == 0
    result = load_image(out_dir / "icon_no_bg.png")
    assert result.size == (32, 32)
    assert tuple(result.pixels[0, 0]) == (0, 200, 0, 255)
    assert tuple(result.pixels[16, 16, :3]) == (30, 60, 200)


def test_missing_reference_fails(tmp_path):
    icon = write_icon(tmp_path / "icon.png")
    code = main([str(icon), "-r", str(tmp_path / "nope.png"), "--config", str(tmp_path / "settings.json")])
    assert code == 1


def test_save_defaults_persists_options(tmp_path):
    icon = write_icon(tmp_path / "icon.png")
    settings = tmp_path / "settings.json"

    main([str(icon), "-t", "45", "--erode", "1", "--save-defaults", "--config", str(settings)])

    stored = json.loads(settings.read_text())
    assert stored["threshold"] == 45
    assert stored["erode_pixels"] == 1


def test_quality_method_with_params(tmp_path):
    icon = write_icon(tmp_path / "icon.png")
    code = main([
        str(icon), "-m", "gaussian", "-p", "radius=1", "-p", "passes=3",
        "--config", str(tmp_path / "settings.json"),
    ])
    assert code == 0


def test_invalid_options_exit_with_usage_error(tmp_path):
    icon = write_icon(tmp_path / "icon.png")
    settings = str(tmp_path / "settings.json")
    with pytest.raises(SystemExit):
        main([str(icon), "-t", "0", "--config", settings])
    with pytest.raises(SystemExit):
        main([str(icon), "-p", "radius=1", "--config", settings])
    with pytest.raises(SystemExit):
        main([str(icon), "-m", "gaussian", "-p", "sigma=1", "--config", settings])
    with pytest.raises(SystemExit):
        main([str(icon), "-m", "gaussian", "-p", "radius=2.5", "--config", settings])


def test_run_with_output_dir_leaves_settings_untouched(tmp_path):
    icon = write_icon(tmp_path / "icon.png")
    settings = tmp_path / "settings.json"

    code = main([str(icon), "-o", str(tmp_path / "out"), "--config", str(settings)])

    assert code == 0
    assert (tmp_path / "out" / "icon_no_bg.png").exists()
    assert not settings.exists()


def test_parse_param():
    assert _parse_param("scale=4") == ("scale", 4)
    assert _parse_param("strength=0.5") == ("strength", 0.5)
    assert _parse_param("name=soft") == ("name", "soft")


def test_collect_images_skips_previous_outputs(tmp_path):
    write_icon(tmp_path / "b.png")
    write_icon(tmp_path / "a.png")
    write_icon(tmp_path / "a_no_bg.png")
    (tmp_path / "readme.txt").write_text("x")

    found = collect_images([tmp_path], "_no_bg")

    assert [p.name for p in found] == ["a.png", "b.png"]
