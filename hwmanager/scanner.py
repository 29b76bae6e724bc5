"""Discovery of VM definition (.vmx) files."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator, Optional

from hwmanager.constants import VMX_EXTENSION
from hwmanager.exceptions import ValidationError
from hwmanager.models import VMDefinitionEntry
from hwmanager.utils import log


def _read_config(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        log("DEBUG", f"Could not read {path}: {exc}")
        return None


def scan_vm_definitions(root, *, include_config: bool = True) -> Iterator[VMDefinitionEntry]:
    """Yield every .vmx file below ``root``, walking lazily in sorted order."""
    root_path = Path(root)
    if not root_path.is_dir():
        raise ValidationError(f"Directory not found: {root_path}")

    def _on_error(exc: OSError) -> None:
        log("WARN", f"Skipping unreadable directory: {exc}")

    for dirpath, dirnames, filenames in os.walk(root_path, onerror=_on_error):
        dirnames.sort()
        for filename in sorted(filenames):
            if not filename.lower().endswith(VMX_EXTENSION):
                continue
            path = Path(dirpath) / filename
            yield VMDefinitionEntry(
                path=str(path),
                name=path.stem or "Unknown",
                raw_config=_read_config(path) if include_config else None,
            )
