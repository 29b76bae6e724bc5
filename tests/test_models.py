"""Tests for hwmanager.models module."""

from __future__ import annotations

import pytest

from hwmanager.exceptions import ExternalProcessError, ManagerError
from hwmanager.models import CommandResult, Container, HardwareProfile, OperationResult, Settings


class TestRecords:
    def test_profile_defaults(self):
        profile = HardwareProfile(id="p", name="n", bios_path="b", executable_path="e")
        assert profile.created_at

    def test_profile_missing_field(self):
        with pytest.raises(ManagerError, match="missing 'bios_path'"):
            HardwareProfile.from_dict({"id": "p", "name": "n", "executable_path": "e"})

    def test_container_optional_profile(self):
        container = Container.from_dict({"id": "c", "name": "n", "vm_definition_path": "a.vmx"})
        assert container.hardware_profile_id is None

    def test_settings_ignore_unknown_keys(self):
        assert Settings.from_dict({"installation_path": "C:/VMware", "theme": "dark"}) == Settings(
            installation_path="C:/VMware"
        )

    def test_profiles_are_immutable(self):
        profile = HardwareProfile(id="p", name="n", bios_path="b", executable_path="e")
        with pytest.raises(AttributeError):
            profile.name = "other"  # type: ignore[misc]


class TestOperationResult:
    def test_ok(self):
        result = OperationResult(verb="start", vm_definition_path="a.vmx")
        assert result.ok
        assert result.describe_error() is None
        result.raise_for_error()

    def test_operation_error_first(self):
        result = OperationResult(
            verb="start",
            vm_definition_path="a.vmx",
            operation_error=ExternalProcessError("spawn failed"),
            restore_error=ManagerError("restore failed"),
        )
        assert str(result.error) == "spawn failed"
        assert "restore also failed" in result.describe_error()


def test_command_result_constructors():
    assert CommandResult.success(3) == CommandResult(ok=True, value=3)
    assert CommandResult.failure("bad") == CommandResult(ok=False, error="bad")
