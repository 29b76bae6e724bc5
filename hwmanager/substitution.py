"""Backup, swap and restore of the installed hypervisor executable."""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Dict

from hwmanager.constants import EXECUTABLE_SUBDIR
from hwmanager.exceptions import SubstitutionIOError, ValidationError
from hwmanager.models import SubstitutionState
from hwmanager.paths import InstallLayout
from hwmanager.utils import log, same_content


def _copy(source: Path, destination: Path, action: str) -> None:
    try:
        shutil.copyfile(source, destination)
    except OSError as exc:
        raise SubstitutionIOError(
            f"Failed to {action}: copy {source} -> {destination}: {exc}",
            source=source,
            destination=destination,
        ) from exc


class SubstitutionEngine:
    """Swap a profile's executable into an installation and put the original back.

    The first swap copies the vendor executable to ``<name>.backup`` next to
    it. That backup is never overwritten or deleted afterwards, so it keeps the
    true original across any number of swap/restore cycles. A vendor update of
    the executable therefore leaves a stale backup behind until it is removed
    by hand.
    """

    def __init__(self, executable_subdir: str = EXECUTABLE_SUBDIR) -> None:
        self.executable_subdir = executable_subdir
        self._transitions: Dict[Path, SubstitutionState] = {}

    def layout(self, install_root) -> InstallLayout:
        return InstallLayout(Path(install_root), executable_subdir=self.executable_subdir)

    def _check_installation(self, layout: InstallLayout) -> None:
        if not layout.executable_dir.is_dir():
            raise ValidationError(f"Executable directory not found: {layout.executable_dir}")
        if not layout.executable_path.is_file():
            raise ValidationError(f"Hypervisor executable not found: {layout.executable_path}")

    def state(self, install_root) -> SubstitutionState:
        """Observed state of the installation.

        Files alone cannot tell a fresh backup from a completed restore, so the
        last transition made by this engine breaks the tie.
        """
        layout = self.layout(install_root)
        if not layout.backup_path.is_file():
            return SubstitutionState.ORIGINAL
        if not layout.executable_path.is_file() or not same_content(layout.executable_path, layout.backup_path):
            return SubstitutionState.SWAPPED
        if self._transitions.get(layout.root) is SubstitutionState.BACKED_UP:
            return SubstitutionState.BACKED_UP
        return SubstitutionState.RESTORED

    def ensure_backup(self, install_root) -> Path:
        """Create the one-time backup if it does not exist yet."""
        layout = self.layout(install_root)
        self._check_installation(layout)
        if layout.backup_path.exists():
            log("DEBUG", f"Backup already present: {layout.backup_path}")
            return layout.backup_path
        try:
            _copy(layout.executable_path, layout.backup_path, "back up original executable")
        except SubstitutionIOError:
            layout.backup_path.unlink(missing_ok=True)
            raise
        self._transitions[layout.root] = SubstitutionState.BACKED_UP
        log("INFO", f"Backed up {layout.executable_path} -> {layout.backup_path}")
        return layout.backup_path

    def swap(self, install_root, custom_executable) -> None:
        layout = self.layout(install_root)
        custom = Path(custom_executable)
        self._check_installation(layout)
        if not custom.is_file():
            raise ValidationError(f"Profile executable not found: {custom}")

        backup = self.ensure_backup(install_root)
        source = custom
        if os.path.samefile(custom, layout.executable_path):
            # a profile pointing at the installed file means "vendor original"
            source = backup
        _copy(source, layout.executable_path, "swap in profile executable")
        self._transitions[layout.root] = SubstitutionState.SWAPPED
        log("INFO", f"Swapped {layout.executable_path} with {source}")

    def restore(self, install_root) -> None:
        layout = self.layout(install_root)
        if not layout.backup_path.is_file():
            raise ValidationError(f"No backup to restore from: {layout.backup_path}")
        _copy(layout.backup_path, layout.executable_path, "restore original executable")
        self._transitions[layout.root] = SubstitutionState.RESTORED
        log("INFO", f"Restored {layout.executable_path} from {layout.backup_path}")
