"""Data models for the VMware hardware manager."""

from __future__ import annotations

import enum
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar

from hwmanager.exceptions import ManagerError
from hwmanager.utils import now_timestamp


def new_record_id() -> str:
    return str(uuid.uuid4())


def _require(data: Dict[str, Any], key: str, kind: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ManagerError(f"{kind} record is missing '{key}'")


@dataclass(frozen=True)
class HardwareProfile:
    id: str
    name: str
    bios_path: str
    executable_path: str
    created_at: str = field(default_factory=now_timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HardwareProfile":
        # documents written by the first releases called the executable "vmx_path"
        executable = data.get("executable_path", data.get("vmx_path"))
        if executable is None:
            raise ManagerError("HardwareProfile record is missing 'executable_path'")
        return cls(
            id=_require(data, "id", "HardwareProfile"),
            name=_require(data, "name", "HardwareProfile"),
            bios_path=_require(data, "bios_path", "HardwareProfile"),
            executable_path=executable,
            created_at=data.get("created_at") or now_timestamp(),
        )


@dataclass(frozen=True)
class Container:
    id: str
    name: str
    vm_definition_path: str
    created_at: str = field(default_factory=now_timestamp)
    hardware_profile_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Container":
        vm_path = data.get("vm_definition_path", data.get("vmx_path"))
        if vm_path is None:
            raise ManagerError("Container record is missing 'vm_definition_path'")
        return cls(
            id=_require(data, "id", "Container"),
            name=_require(data, "name", "Container"),
            vm_definition_path=vm_path,
            created_at=data.get("created_at") or now_timestamp(),
            hardware_profile_id=data.get("hardware_profile_id", data.get("hardwareId")),
        )


@dataclass(frozen=True)
class Settings:
    installation_path: Optional[str] = None
    original_bios_path: Optional[str] = None
    original_executable_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        return cls(
            installation_path=data.get("installation_path"),
            original_bios_path=data.get("original_bios_path"),
            original_executable_path=data.get("original_executable_path"),
        )


@dataclass
class VMDefinitionEntry:
    path: str
    name: str
    raw_config: Optional[str] = None


class SubstitutionState(enum.Enum):
    ORIGINAL = "original"
    BACKED_UP = "backed_up"
    SWAPPED = "swapped"
    RESTORED = "restored"


@dataclass
class ProcessOutput:
    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""


@dataclass
class OperationResult:
    """Outcome of one lifecycle operation.

    The VM operation error and the restore error are kept apart so that
    "the VM ran but the executable could not be restored" stays visible.
    """

    verb: str
    vm_definition_path: str
    profile_id: Optional[str] = None
    swapped: bool = False
    output: Optional[ProcessOutput] = None
    operation_error: Optional[ManagerError] = None
    restore_error: Optional[ManagerError] = None

    @property
    def error(self) -> Optional[ManagerError]:
        return self.operation_error or self.restore_error

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error

    def describe_error(self) -> Optional[str]:
        if self.operation_error and self.restore_error:
            return f"{self.operation_error} (restore also failed: {self.restore_error})"
        if self.restore_error:
            return f"VM operation '{self.verb}' completed but restore failed: {self.restore_error}"
        if self.operation_error:
            return str(self.operation_error)
        return None


T = TypeVar("T")


@dataclass
class CommandResult(Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "CommandResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "CommandResult[T]":
        return cls(ok=False, error=error)
