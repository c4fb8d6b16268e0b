import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Union

from filelock import FileLock

from .config import DEFAULT_USERNAME, LAUNCHER_CONFIG_NAME, LOCK_TIMEOUT
from .content_store import write_atomic
from .errors import FilesystemError, ParseError

logger = logging.getLogger(__name__)

__all__ = ['LauncherConfig', 'config_path', 'load_config', 'save_config', 'ensure_config']


@dataclass
class LauncherConfig:
    username: str = DEFAULT_USERNAME


def config_path(instance_dir: Union[str, Path]) -> Path:
    return Path(instance_dir) / LAUNCHER_CONFIG_NAME


def _lock_for(path: Path) -> FileLock:
    return FileLock(str(path) + ".lock", timeout=LOCK_TIMEOUT)


def _read(path: Path) -> LauncherConfig:
    if not path.exists():
        return LauncherConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise FilesystemError(f"Failed to read {path}: {e}", path=path) from e
    except ValueError as e:
        raise ParseError(f"Launcher config {path} is not valid JSON: {e}", path=path) from e

    username = data.get("username") if isinstance(data, dict) else None
    if not isinstance(username, str) or not username:
        raise ParseError(f"Launcher config {path} has no usable 'username'", path=path)
    return LauncherConfig(username=username)


def load_config(instance_dir: Union[str, Path]) -> LauncherConfig:
    """Read the instance's launcher config, falling back to defaults when there is none."""
    path = config_path(instance_dir)
    if not path.exists():
        return LauncherConfig()
    with _lock_for(path):
        return _read(path)


def save_config(instance_dir: Union[str, Path], config: LauncherConfig) -> Path:
    path = config_path(instance_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    with _lock_for(path):
        write_atomic(path, json.dumps(asdict(config), indent=2).encode("utf-8"))
    logger.debug(f"Saved launcher config to {path}")
    return path


def ensure_config(instance_dir: Union[str, Path]) -> LauncherConfig:
    """Create the default config on first install; an existing file is never rewritten."""
    path = config_path(instance_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    with _lock_for(path):
        if path.exists():
            return _read(path)
        config = LauncherConfig()
        write_atomic(path, json.dumps(asdict(config), indent=2).encode("utf-8"))
    logger.info(f"Created launcher config at {path}")
    return config
