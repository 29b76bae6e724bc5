"""Lifecycle operations with optional hardware profile substitution."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from hwmanager.exceptions import (
    ConfigurationMissingError,
    ManagerError,
    ProfileNotFoundError,
)
from hwmanager.locking import InstallationLock
from hwmanager.models import HardwareProfile, OperationResult
from hwmanager.store import ConfigStore
from hwmanager.substitution import SubstitutionEngine
from hwmanager.utils import log
from hwmanager.vmrun import VMControlPort, build_vmrun_args


class Orchestrator:
    """Run one vmrun verb, wrapping it in a swap/restore when a profile is given.

    The swap, the vmrun call and the restore happen under an
    InstallationLock so concurrent operations on the same installation never
    interleave. Once a swap has touched the installation, restore runs no
    matter how the VM operation ended.
    """

    def __init__(
        self,
        store: ConfigStore,
        engine: SubstitutionEngine,
        controller: VMControlPort,
        lock_dir: Path,
        *,
        lock_timeout: Optional[float] = None,
        strict_profiles: bool = False,
    ) -> None:
        self.store = store
        self.engine = engine
        self.controller = controller
        self.lock_dir = Path(lock_dir)
        self.lock_timeout = lock_timeout
        self.strict_profiles = strict_profiles

    def _resolve_profile(self, profile_id: str) -> Optional[HardwareProfile]:
        try:
            return self.store.find_profile(profile_id)
        except ProfileNotFoundError:
            if self.strict_profiles:
                raise
            log("WARN", f"Hardware profile '{profile_id}' not found; running without substitution")
            return None

    def perform_operation(
        self,
        verb: str,
        vm_definition_path: str,
        profile_id: Optional[str] = None,
    ) -> OperationResult:
        result = OperationResult(verb=verb, vm_definition_path=str(vm_definition_path), profile_id=profile_id)

        try:
            build_vmrun_args(verb, vm_definition_path)
            settings = self.store.load_settings()
            if not settings.installation_path:
                raise ConfigurationMissingError("VMware installation path is not set")
            install_root = settings.installation_path
            profile = self._resolve_profile(profile_id) if profile_id else None
        except ManagerError as exc:
            result.operation_error = exc
            log("ERROR", str(exc))
            return result

        try:
            with InstallationLock(self.lock_dir, install_root, timeout=self.lock_timeout):
                self._run_locked(result, install_root, profile)
        except ManagerError as exc:
            # lock acquisition failed; nothing was touched yet
            result.operation_error = exc
            log("ERROR", str(exc))
        return result

    def _run_locked(self, result: OperationResult, install_root: str, profile: Optional[HardwareProfile]) -> None:
        needs_restore = False
        try:
            if profile is not None:
                log("INFO", f"Applying hardware profile '{profile.name}' ({profile.id})")
                try:
                    self.engine.swap(install_root, profile.executable_path)
                except ManagerError:
                    # an attempted swap is undone whenever there is a backup to restore from
                    needs_restore = self.engine.layout(install_root).backup_path.is_file()
                    raise
                needs_restore = True
                result.swapped = True
            result.output = self.controller.invoke(result.verb, result.vm_definition_path)
        except ManagerError as exc:
            result.operation_error = exc
            log("ERROR", str(exc))
        finally:
            if needs_restore:
                self._restore(result, install_root)

    def _restore(self, result: OperationResult, install_root: str) -> None:
        try:
            self.engine.restore(install_root)
        except ManagerError as exc:
            result.restore_error = exc
            log("ERROR", f"Restore failed for {install_root}: {exc}")

    def perform_container_operation(self, verb: str, container_id: str) -> OperationResult:
        """Run ``verb`` against a saved container, using its profile if any."""
        try:
            container = self.store.find_container(container_id)
        except ManagerError as exc:
            log("ERROR", str(exc))
            return OperationResult(verb=verb, vm_definition_path="", operation_error=exc)
        return self.perform_operation(verb, container.vm_definition_path, container.hardware_profile_id)
