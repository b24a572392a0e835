"""Utility functions and helpers."""

from .config import ConfigManager
from .image_utils import composite_on_background, decode_image, encode_png, load_image, save_image
from .logging_utils import setup_logging
from .paths import get_config_dir, get_logs_dir

__all__ = [
    "ConfigManager",
    "composite_on_background",
    "decode_image",
    "encode_png",
    "load_image",
    "save_image",
    "setup_logging",
    "get_config_dir",
    "get_logs_dir",
]
