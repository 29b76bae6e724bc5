"""Runtime configuration from environment variables and an optional YAML file."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import yaml  # type: ignore
except ImportError as exc:  # pragma: no cover
    raise SystemExit("PyYAML is required but not installed") from exc

from hwmanager.constants import (
    DEFAULT_CONFIG_DIR,
    DEFAULT_CONFIG_FILE_NAME,
    DEFAULT_LOCK_TIMEOUT,
    DEFAULT_VMRUN_TIMEOUT,
    DEFAULT_WORKERS,
    EXECUTABLE_SUBDIR,
    LOCK_DIR_NAME,
    TRUTHY,
)
from hwmanager.exceptions import ManagerError
from hwmanager.utils import get_env, get_env_bool, log, parse_int_env

_FILE_KEYS = {
    "config_dir",
    "vmrun",
    "executable_subdir",
    "vmrun_timeout",
    "lock_timeout",
    "workers",
    "strict_profiles",
    "strict_exit",
}


@dataclass
class AppConfig:
    config_dir: Path
    vmrun: Optional[str]
    executable_subdir: str
    vmrun_timeout: int
    lock_timeout: int
    workers: int
    strict_profiles: bool
    strict_exit: bool

    @property
    def lock_dir(self) -> Path:
        return self.config_dir / LOCK_DIR_NAME


def load_config_file(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """Read the optional YAML file; a missing file yields an empty mapping."""
    if config_path is None:
        config_path = DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILE_NAME
    if not config_path.exists():
        return {}
    try:
        data = yaml.safe_load(config_path.read_text())
    except yaml.YAMLError as exc:
        raise ManagerError(f"Invalid YAML in {config_path}: {exc}")
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ManagerError(f"{config_path} must contain a mapping at the top level")
    unknown = sorted(set(data) - _FILE_KEYS)
    if unknown:
        log("WARN", f"Ignoring unknown keys in {config_path}: {', '.join(unknown)}")
    return {key: value for key, value in data.items() if key in _FILE_KEYS}


def _bool_setting(env_name: str, file_value: Any) -> bool:
    if get_env(env_name) is not None:
        return get_env_bool(env_name)
    if isinstance(file_value, bool):
        return file_value
    if file_value is None:
        return False
    return str(file_value).lower() in TRUTHY


def _int_setting(env_name: str, file_value: Any, default: int, min_val: int = 1) -> int:
    fallback = str(file_value) if file_value is not None else str(default)
    return parse_int_env(env_name, fallback, min_val=min_val)


def parse_env(config_path: Optional[Path] = None) -> AppConfig:
    """Resolve the configuration; environment variables win over the YAML file."""
    env_file = get_env("HWMANAGER_CONFIG")
    if config_path is None and env_file:
        config_path = Path(env_file)
    file_values = load_config_file(config_path)

    config_dir_raw = get_env("HWMANAGER_CONFIG_DIR") or file_values.get("config_dir")
    config_dir = Path(config_dir_raw).expanduser() if config_dir_raw else DEFAULT_CONFIG_DIR

    vmrun = get_env("HWMANAGER_VMRUN") or file_values.get("vmrun")
    if vmrun is not None:
        vmrun = str(vmrun).strip() or None

    executable_subdir = get_env("HWMANAGER_EXECUTABLE_SUBDIR")
    if executable_subdir is None:
        executable_subdir = file_values.get("executable_subdir", EXECUTABLE_SUBDIR)
    executable_subdir = str(executable_subdir or "").strip().strip("/\\")

    return AppConfig(
        config_dir=config_dir,
        vmrun=vmrun,
        executable_subdir=executable_subdir,
        vmrun_timeout=_int_setting("HWMANAGER_VMRUN_TIMEOUT", file_values.get("vmrun_timeout"), DEFAULT_VMRUN_TIMEOUT),
        lock_timeout=_int_setting("HWMANAGER_LOCK_TIMEOUT", file_values.get("lock_timeout"), DEFAULT_LOCK_TIMEOUT),
        workers=_int_setting("HWMANAGER_WORKERS", file_values.get("workers"), DEFAULT_WORKERS),
        strict_profiles=_bool_setting("HWMANAGER_STRICT_PROFILES", file_values.get("strict_profiles")),
        strict_exit=_bool_setting("HWMANAGER_STRICT_EXIT", file_values.get("strict_exit")),
    )
