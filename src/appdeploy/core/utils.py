"""Common utilities for appdeploy."""

import os
import platform
import re
import socket
from datetime import datetime
from pathlib import Path
from typing import Any


def is_windows() -> bool:
    """Check whether we are running on Windows."""
    return platform.system() == "Windows"


def computer_name() -> str:
    """Get the local computer name."""
    return os.environ.get("COMPUTERNAME") or socket.gethostname()


def get_config_dir() -> Path:
    """Get the appdeploy config directory."""
    return Path(os.environ.get("APPDEPLOY_CONFIG_DIR", "~/.appdeploy")).expanduser()


def merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_dicts(result[key], value)
        else:
            result[key] = value
    return result


def sanitize_filename(name: str) -> str:
    """Sanitize a string for use as a filename.

    Args:
        name: String to sanitize

    Returns:
        Sanitized filename
    """
    sanitized = re.sub(r'[<>:"/\\|?*]', "_", name)
    sanitized = sanitized.strip(". ")
    return sanitized or "unnamed"


def files_modified_since(directory: str | Path, since: datetime) -> list[Path]:
    """List files directly under a directory modified at or after a point in time.

    Args:
        directory: Directory to scan
        since: Naive local timestamp

    Returns:
        Matching files sorted by name; empty if the directory does not exist
    """
    path = Path(directory)
    if not path.is_dir():
        return []

    cutoff = since.timestamp()
    return sorted(
        p for p in path.iterdir() if p.is_file() and p.stat().st_mtime >= cutoff
    )


def host_reachable(host: str, port: int, timeout: float = 3.0) -> bool:
    """Test TCP connectivity to a host.

    Args:
        host: Hostname or address
        port: TCP port
        timeout: Connect timeout in seconds

    Returns:
        True if a connection could be opened
    """
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False
