"""Global constants and path configuration for the VMware hardware manager."""

from __future__ import annotations

import os
from pathlib import Path

APP_DIR_NAME = "vmware-manager"


def _platform_config_root() -> Path:
    appdata = os.environ.get("APPDATA")
    if os.name == "nt" and appdata:
        return Path(appdata)
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg)
    return Path.home() / ".config"


# HWMANAGER_CONFIG_DIR relocates every persisted document at once.
_CONFIG_DIR = os.environ.get("HWMANAGER_CONFIG_DIR")
if _CONFIG_DIR:
    DEFAULT_CONFIG_DIR = Path(_CONFIG_DIR)
else:
    DEFAULT_CONFIG_DIR = _platform_config_root() / APP_DIR_NAME
DEFAULT_CONFIG_FILE_NAME = "hwmanager.yaml"

PROFILES_FILENAME = "hardware_config.json"
CONTAINERS_FILENAME = "container_config.json"
SETTINGS_FILENAME = "settings.json"
LOCK_DIR_NAME = "locks"

# Layout of a VMware Workstation installation root.
BIOS_FILENAME = "BIOS.440.ROM"
EXECUTABLE_NAME = "vmware-vmx.exe"
EXECUTABLE_SUBDIR = "x64"
BACKUP_SUFFIX = ".backup"
VMRUN_NAMES = ("vmrun.exe", "vmrun")

DEFAULT_PROFILE_ID = "default"
DEFAULT_PROFILE_NAME = "Default hardware"

VMX_EXTENSION = ".vmx"

REGISTRY_KEYS = (
    r"SOFTWARE\WOW6432Node\VMware, Inc.\VMware Workstation",
    r"SOFTWARE\VMware, Inc.\VMware Workstation",
)
REGISTRY_VALUE = "InstallPath"

# verb -> trailing vmrun arguments after the .vmx path
VMRUN_VERBS = {
    "start": ("gui",),
    "stop": ("soft",),
    "pause": (),
    "reset": ("soft",),
}

DEFAULT_VMRUN_TIMEOUT = 300
DEFAULT_LOCK_TIMEOUT = 600
DEFAULT_WORKERS = 4

TRUTHY = {"1", "true", "yes", "on"}

_LOG_VERBOSE = os.environ.get("LOG_VERBOSE", "").lower() in TRUTHY
