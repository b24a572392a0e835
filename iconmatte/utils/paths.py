"""Per-user directories for iconmatte settings and logs."""

import os
import sys
from pathlib import Path


APP_NAME = "iconmatte"


def get_config_dir() -> Path:
    """
    Get the user configuration directory.

    Returns ~/.config/iconmatte on Unix-like systems,
    or %APPDATA%/iconmatte on Windows.
    """
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))

    config_dir = base / APP_NAME
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_logs_dir() -> Path:
    """Get the logs directory."""
    logs_dir = get_config_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir
