"""
Server configuration: store-config option lines and the YAML server config file.

The store configuration is a list of ``key=value`` strings, one of which
names the backend, e.g.::

    store_config:
      - backend=B2CS
      - b2csBucketName=my-bucket
      - b2csAccount=...
      - b2csAppKey=...
"""

import logging
import os
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .storage.exceptions import StorageInvalidError

log = logging.getLogger(__name__)

SERVER_CONFIG_FILE = "server_config.yaml"
STORE_CONFIG_KEY = "store_config"
BACKEND_KEY = "backend"


def default_where() -> Path:
    """Directory holding per-domain private configuration. Overridable with B2CS_DEPLOY_DIR."""
    env = os.getenv("B2CS_DEPLOY_DIR")
    if env:
        return Path(env)
    return Path.home() / "b2cs" / "deploy"


def parse_store_config(lines: Iterable[str]) -> tuple[str, Dict[str, str]]:
    """
    Split ``key=value`` lines into the backend name and the remaining options.

    Raises:
        StorageInvalidError: If a line is malformed or no backend is named.
    """
    backend = ""
    opts: Dict[str, str] = {}
    for line in lines:
        key, sep, value = str(line).partition("=")
        key = key.strip()
        if not sep or not key:
            raise StorageInvalidError(f"malformed store config line {line!r}", op="config.parse")
        if key == BACKEND_KEY:
            backend = value.strip()
        else:
            opts[key] = value.strip()
    if not backend:
        raise StorageInvalidError(f"store config must contain a {BACKEND_KEY!r} entry", op="config.parse")
    return backend, opts


def format_store_config(backend: str, opts: Dict[str, str]) -> list[str]:
    return [f"{BACKEND_KEY}={backend}"] + [f"{k}={v}" for k, v in opts.items()]


def server_config_path(where: Path, domain: str) -> Path:
    return Path(where) / domain / SERVER_CONFIG_FILE


def read_server_config(path: Path) -> Dict[str, Any]:
    """Load the server config at *path*; a missing file yields an empty config."""
    path = Path(path)
    if not path.exists():
        log.debug("No server config at %s, starting empty", path)
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Server config {path} must be a mapping, got {type(data).__name__}")
    return data


def write_server_config(path: Path, config: Dict[str, Any]) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)
    log.info("Wrote server config %s", path)


def load_store_config(path: Path) -> tuple[str, Dict[str, str]]:
    """Read *path* and parse its store configuration."""
    config = read_server_config(path)
    lines: Optional[list] = config.get(STORE_CONFIG_KEY)
    if not lines:
        raise StorageInvalidError(f"{path} has no {STORE_CONFIG_KEY!r} entries", op="config.load")
    return parse_store_config(lines)
