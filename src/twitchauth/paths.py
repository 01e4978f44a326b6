from __future__ import annotations

import os
import platform
from pathlib import Path
from typing import Tuple


def default_data_dir(app_name: str = "TwitchAuth") -> Path:
    """Return a writable per-platform data directory, creating it if needed.

    `TWITCHAUTH_DATA_DIR` wins when set. Otherwise:
      - Windows: %LOCALAPPDATA% (fallback %APPDATA%)
      - macOS: ~/Library/Application Support/{app_name}
      - Linux/Unix: $XDG_DATA_HOME or ~/.local/share/{app_name}
    """
    override = os.environ.get("TWITCHAUTH_DATA_DIR")
    if override:
        p = Path(override).expanduser()
    else:
        system = platform.system()
        if system == "Windows":
            base = os.environ.get("LOCALAPPDATA") or os.environ.get("APPDATA")
            p = Path(base) / app_name if base else Path.home() / app_name
        elif system == "Darwin":
            p = Path.home() / "Library" / "Application Support" / app_name
        else:
            xdg = os.environ.get("XDG_DATA_HOME")
            p = (Path(xdg) if xdg else Path.home() / ".local" / "share") / app_name
    p.mkdir(parents=True, exist_ok=True)
    return p


def default_cert_paths() -> Tuple[Path, Path]:
    """Return (cert, key) paths for the localhost redirect listener."""
    d = default_data_dir()
    return d / "localhost-cert.pem", d / "localhost-key.pem"
