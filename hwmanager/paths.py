"""Installation layout and discovery for VMware Workstation."""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from hwmanager.constants import (
    BACKUP_SUFFIX,
    BIOS_FILENAME,
    DEFAULT_PROFILE_ID,
    DEFAULT_PROFILE_NAME,
    EXECUTABLE_NAME,
    EXECUTABLE_SUBDIR,
    REGISTRY_KEYS,
    REGISTRY_VALUE,
    VMRUN_NAMES,
)
from hwmanager.exceptions import InstallationNotFoundError, ValidationError
from hwmanager.models import HardwareProfile
from hwmanager.utils import get_env, log


@dataclass(frozen=True)
class InstallLayout:
    """Concrete file locations inside one installation root."""

    root: Path
    executable_subdir: str = EXECUTABLE_SUBDIR
    executable_name: str = EXECUTABLE_NAME

    @property
    def bios_path(self) -> Path:
        return self.root / BIOS_FILENAME

    @property
    def executable_dir(self) -> Path:
        if not self.executable_subdir:
            return self.root
        return self.root / self.executable_subdir

    @property
    def executable_path(self) -> Path:
        return self.executable_dir / self.executable_name

    @property
    def backup_path(self) -> Path:
        return self.executable_path.with_name(self.executable_name + BACKUP_SUFFIX)

    def vmrun_path(self) -> Optional[Path]:
        for name in VMRUN_NAMES:
            candidate = self.root / name
            if candidate.is_file():
                return candidate
        return None


def validate_installation(root, executable_subdir: str = EXECUTABLE_SUBDIR) -> InstallLayout:
    """Check that ``root`` looks like an installation and return its layout."""
    layout = InstallLayout(Path(root), executable_subdir=executable_subdir)
    if not layout.root.is_dir():
        raise ValidationError(f"Installation directory not found: {layout.root}")
    if not layout.executable_dir.is_dir():
        raise ValidationError(f"Executable directory not found: {layout.executable_dir}")
    if not layout.executable_path.is_file():
        raise ValidationError(f"Hypervisor executable not found: {layout.executable_path}")
    return layout


def _read_registry_install_path() -> Optional[str]:
    try:
        import winreg  # type: ignore
    except ImportError:
        return None

    for subkey in REGISTRY_KEYS:
        try:
            with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, subkey) as key:
                value, _ = winreg.QueryValueEx(key, REGISTRY_VALUE)
        except OSError:
            continue
        if value:
            return str(value)
    return None


def discover_installation() -> str:
    """Return the VMware Workstation install root for this host."""
    override = get_env("HWMANAGER_INSTALL_PATH")
    if override:
        log("DEBUG", f"Using HWMANAGER_INSTALL_PATH={override}")
        return override

    registry_path = _read_registry_install_path()
    if registry_path:
        log("DEBUG", f"Found VMware Workstation in registry: {registry_path}")
        return registry_path

    vmrun = shutil.which("vmrun")
    if vmrun:
        return os.path.dirname(vmrun)

    raise InstallationNotFoundError("VMware Workstation installation not found")


def probe_default_profile(root, executable_subdir: str = EXECUTABLE_SUBDIR) -> Optional[HardwareProfile]:
    """Describe the vendor BIOS/executable pair as the reserved default profile."""
    layout = InstallLayout(Path(root), executable_subdir=executable_subdir)
    if not (layout.bios_path.is_file() and layout.executable_path.is_file()):
        log("DEBUG", f"No default hardware found under {layout.root}")
        return None
    return HardwareProfile(
        id=DEFAULT_PROFILE_ID,
        name=DEFAULT_PROFILE_NAME,
        bios_path=str(layout.bios_path),
        executable_path=str(layout.executable_path),
    )
