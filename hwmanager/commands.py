"""Command surface used by the CLI and any other front end.

Every command returns a CommandResult: either a value or a human-readable
error string. Long-running commands also have ``submit_*`` variants that run
on a thread pool and hand back a cancellable future.
"""

from __future__ import annotations

import functools
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace
from pathlib import Path
from typing import Callable, Dict, List, Optional

from hwmanager.config import AppConfig
from hwmanager.exceptions import ManagerError, ValidationError
from hwmanager.models import (
    CommandResult,
    Container,
    HardwareProfile,
    OperationResult,
    Settings,
    VMDefinitionEntry,
    new_record_id,
)
from hwmanager.orchestrator import Orchestrator
from hwmanager.paths import InstallLayout, discover_installation, probe_default_profile, validate_installation
from hwmanager.scanner import scan_vm_definitions
from hwmanager.store import ConfigStore
from hwmanager.substitution import SubstitutionEngine
from hwmanager.utils import log
from hwmanager.vmrun import VMControlPort, VmrunController


def _command(func: Callable) -> Callable:
    """Turn a method's return value or ManagerError into a CommandResult."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> CommandResult:
        try:
            return CommandResult.success(func(*args, **kwargs))
        except ManagerError as exc:
            return CommandResult.failure(str(exc))
        except OSError as exc:
            return CommandResult.failure(f"I/O error: {exc}")

    return wrapper


class CommandSurface:
    def __init__(
        self,
        config: AppConfig,
        *,
        store: Optional[ConfigStore] = None,
        controller: Optional[VMControlPort] = None,
    ) -> None:
        self.config = config
        self.store = store or ConfigStore(config.config_dir)
        self.engine = SubstitutionEngine(config.executable_subdir)
        self._controller = controller
        self._executor: Optional[ThreadPoolExecutor] = None

    # ------------------------------------------------------------------ wiring
    def controller(self) -> VMControlPort:
        if self._controller is not None:
            return self._controller
        vmrun = self.config.vmrun
        if vmrun is None:
            installation = self.store.load_settings().installation_path
            found = InstallLayout(Path(installation), self.config.executable_subdir).vmrun_path() if installation else None
            vmrun = str(found) if found else "vmrun"
        return VmrunController(vmrun, timeout=self.config.vmrun_timeout, strict_exit=self.config.strict_exit)

    def orchestrator(self) -> Orchestrator:
        return Orchestrator(
            self.store,
            self.engine,
            self.controller(),
            self.config.lock_dir,
            lock_timeout=self.config.lock_timeout,
            strict_profiles=self.config.strict_profiles,
        )

    @property
    def executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self.config.workers, thread_name_prefix="hwmanager")
        return self._executor

    def shutdown(self, cancel_pending: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=cancel_pending)
            self._executor = None

    # ------------------------------------------------------------------ installation
    @_command
    def get_installation_path(self) -> str:
        return discover_installation()

    @_command
    def validate_installation_path(self, path: str) -> str:
        return str(validate_installation(path, self.config.executable_subdir).root)

    @_command
    def scan_vm_definitions(self, root: str, include_config: bool = True) -> List[VMDefinitionEntry]:
        return list(scan_vm_definitions(root, include_config=include_config))

    def submit_scan(self, root: str, include_config: bool = True) -> "Future[CommandResult]":
        return self.executor.submit(self.scan_vm_definitions, root, include_config)

    # ------------------------------------------------------------------ profiles
    @_command
    def scan_default_profiles(self, installation_path: Optional[str] = None) -> List[HardwareProfile]:
        if installation_path is None:
            installation_path = self.store.load_settings().installation_path
        if not installation_path:
            raise ValidationError("No installation path given or configured")
        profile = probe_default_profile(installation_path, self.config.executable_subdir)
        return [profile] if profile else []

    @_command
    def list_profiles(self) -> List[HardwareProfile]:
        return self.store.load_profiles()

    @_command
    def add_profile(self, name: str, bios_path: str, executable_path: str, save: bool = True) -> HardwareProfile:
        if not Path(bios_path).is_file():
            raise ValidationError(f"BIOS file not found: {bios_path}")
        if not Path(executable_path).is_file():
            raise ValidationError(f"Executable file not found: {executable_path}")
        profile = HardwareProfile(
            id=new_record_id(),
            name=name,
            bios_path=str(bios_path),
            executable_path=str(executable_path),
        )
        if save:
            self.store.merge_profiles([profile])
        log("SUCCESS", f"Added hardware profile '{name}' ({profile.id})")
        return profile

    @_command
    def import_profiles(self, profiles: List[HardwareProfile]) -> List[HardwareProfile]:
        return self.store.merge_profiles(profiles)

    @_command
    def delete_profile(self, profile_id: str) -> None:
        # Removal happens when the caller saves the collection without it.
        log("DEBUG", f"delete_profile({profile_id}) acknowledged")

    @_command
    def remove_profile(self, profile_id: str) -> List[HardwareProfile]:
        profiles = self.store.load_profiles()
        remaining = [profile for profile in profiles if profile.id != profile_id]
        if len(remaining) == len(profiles):
            raise ManagerError(f"Hardware profile '{profile_id}' not found")
        if not remaining:
            raise ValidationError(f"Cannot remove '{profile_id}': at least one hardware profile must stay saved")
        self.store.save_profiles(remaining)
        return remaining

    @_command
    def save_profiles(self, profiles: List[HardwareProfile]) -> None:
        self.store.save_profiles(profiles)

    # ------------------------------------------------------------------ containers
    @_command
    def list_containers(self) -> List[Container]:
        return self.store.load_containers()

    @_command
    def add_container(
        self,
        vm_definition_path: str,
        name: Optional[str] = None,
        profile_id: Optional[str] = None,
        save: bool = True,
    ) -> Container:
        container = Container(
            id=new_record_id(),
            name=name or Path(vm_definition_path).stem,
            vm_definition_path=str(vm_definition_path),
            hardware_profile_id=profile_id,
        )
        if save:
            self.store.merge_containers([container])
        log("SUCCESS", f"Added container '{container.name}' ({container.id})")
        return container

    @_command
    def import_containers(self, entries: List[VMDefinitionEntry]) -> List[Container]:
        """Create one container per scanned entry not already saved."""
        known = {container.vm_definition_path for container in self.store.load_containers()}
        new = [
            Container(id=new_record_id(), name=entry.name, vm_definition_path=entry.path)
            for entry in entries
            if entry.path not in known
        ]
        return self.store.merge_containers(new)

    @_command
    def delete_container(self, container_id: str) -> None:
        log("DEBUG", f"delete_container({container_id}) acknowledged")

    @_command
    def remove_container(self, container_id: str) -> List[Container]:
        containers = self.store.load_containers()
        remaining = [container for container in containers if container.id != container_id]
        if len(remaining) == len(containers):
            raise ManagerError(f"Container '{container_id}' not found")
        self.store.save_containers(remaining)
        return remaining

    @_command
    def save_containers(self, containers: List[Container]) -> None:
        self.store.save_containers(containers)

    @_command
    def assign_profile(self, container_id: str, profile_id: Optional[str]) -> Container:
        return self.store.assign_profile(container_id, profile_id)

    # ------------------------------------------------------------------ settings
    @_command
    def load_settings(self) -> Settings:
        return self.store.load_settings()

    @_command
    def save_settings(self, settings: Settings) -> None:
        self.store.save_settings(settings)

    @_command
    def set_installation_path(self, path: str) -> Settings:
        layout = validate_installation(path, self.config.executable_subdir)
        settings = replace(
            self.store.load_settings(),
            installation_path=str(layout.root),
            original_bios_path=str(layout.bios_path) if layout.bios_path.is_file() else None,
            original_executable_path=str(layout.executable_path),
        )
        self.store.save_settings(settings)
        return settings

    # ------------------------------------------------------------------ VMs
    @_command
    def list_running_vms(self) -> List[str]:
        return self.controller().list_running()

    def submit_list_running(self) -> "Future[CommandResult]":
        return self.executor.submit(self.list_running_vms)

    @_command
    def container_statuses(self) -> Dict[str, str]:
        running = set(self.controller().list_running())
        return {
            container.id: "running" if container.vm_definition_path in running else "stopped"
            for container in self.store.load_containers()
        }

    def vm_operation(self, verb: str, vm_definition_path: str, profile_id: Optional[str] = None) -> CommandResult:
        return self._run_operation(lambda orch: orch.perform_operation(verb, vm_definition_path, profile_id))

    def container_operation(self, verb: str, container_id: str) -> CommandResult:
        return self._run_operation(lambda orch: orch.perform_container_operation(verb, container_id))

    def submit_operation(
        self, verb: str, vm_definition_path: str, profile_id: Optional[str] = None
    ) -> "Future[CommandResult]":
        return self.executor.submit(self.vm_operation, verb, vm_definition_path, profile_id)

    def batch_operation(self, verb: str, container_ids: List[str]) -> List[CommandResult]:
        """Run ``verb`` on each container in turn; one failure does not stop the rest."""
        return [self.container_operation(verb, container_id) for container_id in container_ids]

    def _run_operation(self, perform: Callable[[Orchestrator], OperationResult]) -> CommandResult:
        try:
            result = perform(self.orchestrator())
        except ManagerError as exc:
            return CommandResult.failure(str(exc))
        except OSError as exc:
            return CommandResult.failure(f"I/O error: {exc}")
        return self._from_operation(result)

    @staticmethod
    def _from_operation(result: OperationResult) -> CommandResult:
        if result.ok:
            return CommandResult.success(result)
        command_result = CommandResult.failure(result.describe_error() or "operation failed")
        command_result.value = result
        return command_result
