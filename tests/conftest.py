"""Shared test fixtures: temporary installations, stores and a fake vmrun."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import pytest

from hwmanager.config import AppConfig
from hwmanager.exceptions import ExternalProcessError
from hwmanager.models import HardwareProfile, ProcessOutput, Settings
from hwmanager.store import ConfigStore
from hwmanager.vmrun import VMControlPort, build_vmrun_args

ORIGINAL_BYTES = b"vendor vmware-vmx original"
CUSTOM_BYTES = b"patched vmware-vmx"


class FakeController(VMControlPort):
    """Records invocations; optionally fails or runs a hook during invoke."""

    def __init__(self, fail: bool = False, running: Optional[List[str]] = None, on_invoke=None) -> None:
        self.fail = fail
        self.running = running or []
        self.on_invoke = on_invoke
        self.calls: List[tuple] = []

    def invoke(self, verb: str, vm_definition_path: str) -> ProcessOutput:
        args = build_vmrun_args(verb, vm_definition_path)
        self.calls.append((verb, vm_definition_path))
        if self.on_invoke is not None:
            self.on_invoke(verb, vm_definition_path)
        if self.fail:
            raise ExternalProcessError("Failed to run vmrun: simulated failure")
        return ProcessOutput(args=["vmrun", *args], returncode=0)

    def list_running(self) -> List[str]:
        return list(self.running)


@pytest.fixture
def install_root(tmp_path) -> Path:
    """A minimal VMware Workstation layout."""
    root = tmp_path / "VMware Workstation"
    (root / "x64").mkdir(parents=True)
    (root / "x64" / "vmware-vmx.exe").write_bytes(ORIGINAL_BYTES)
    (root / "BIOS.440.ROM").write_bytes(b"bios")
    return root


@pytest.fixture
def installed_executable(install_root) -> Path:
    return install_root / "x64" / "vmware-vmx.exe"


@pytest.fixture
def backup_executable(install_root) -> Path:
    return install_root / "x64" / "vmware-vmx.exe.backup"


@pytest.fixture
def custom_executable(tmp_path) -> Path:
    path = tmp_path / "profiles" / "custom-vmx.exe"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(CUSTOM_BYTES)
    return path


@pytest.fixture
def custom_bios(tmp_path) -> Path:
    path = tmp_path / "profiles" / "custom.rom"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"custom bios")
    return path


@pytest.fixture
def config_dir(tmp_path) -> Path:
    return tmp_path / "config"


@pytest.fixture
def store(config_dir) -> ConfigStore:
    return ConfigStore(config_dir)


@pytest.fixture
def profile(custom_bios, custom_executable) -> HardwareProfile:
    return HardwareProfile(
        id="profile-1",
        name="Custom",
        bios_path=str(custom_bios),
        executable_path=str(custom_executable),
    )


@pytest.fixture
def configured_store(store, install_root, profile) -> ConfigStore:
    """A store with the installation path set and one saved profile."""
    store.save_settings(Settings(installation_path=str(install_root)))
    store.save_profiles([profile])
    return store


@pytest.fixture
def app_config(config_dir) -> AppConfig:
    return AppConfig(
        config_dir=config_dir,
        vmrun="vmrun",
        executable_subdir="x64",
        vmrun_timeout=30,
        lock_timeout=5,
        workers=2,
        strict_profiles=False,
        strict_exit=False,
    )


@pytest.fixture
def fake_controller() -> FakeController:
    return FakeController()


@pytest.fixture
def controller_factory():
    return FakeController


# Environment variables that parse_env() reads, cleared for a clean slate.
_PARSE_ENV_VARS = [
    "HWMANAGER_CONFIG",
    "HWMANAGER_CONFIG_DIR",
    "HWMANAGER_VMRUN",
    "HWMANAGER_EXECUTABLE_SUBDIR",
    "HWMANAGER_VMRUN_TIMEOUT",
    "HWMANAGER_LOCK_TIMEOUT",
    "HWMANAGER_WORKERS",
    "HWMANAGER_STRICT_PROFILES",
    "HWMANAGER_STRICT_EXIT",
    "HWMANAGER_INSTALL_PATH",
]


@pytest.fixture
def clean_env(monkeypatch):
    for key in _PARSE_ENV_VARS:
        monkeypatch.delenv(key, raising=False)

