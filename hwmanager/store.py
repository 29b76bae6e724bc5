"""JSON persistence for hardware profiles, containers and settings."""

from __future__ import annotations

import enum
import json
import threading
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from hwmanager.constants import CONTAINERS_FILENAME, PROFILES_FILENAME, SETTINGS_FILENAME
from hwmanager.exceptions import ManagerError, ProfileNotFoundError, RecordNotFoundError
from hwmanager.models import Container, HardwareProfile, Settings
from hwmanager.utils import ensure_directory, log


class CollectionKind(enum.Enum):
    PROFILES = "profiles"
    CONTAINERS = "containers"
    SETTINGS = "settings"


_FILENAMES = {
    CollectionKind.PROFILES: PROFILES_FILENAME,
    CollectionKind.CONTAINERS: CONTAINERS_FILENAME,
    CollectionKind.SETTINGS: SETTINGS_FILENAME,
}

_RECORD_TYPES = {
    CollectionKind.PROFILES: HardwareProfile,
    CollectionKind.CONTAINERS: Container,
}


class ConfigStore:
    """Owns the three persisted documents under one configuration directory.

    Every save replaces a whole document; there is no per-record update.
    Writes go straight to the target file, so a crash mid-write can leave a
    truncated document behind. Loads treat such a document as empty.
    """

    def __init__(self, config_dir: Path) -> None:
        self.config_dir = Path(config_dir)
        self._locks = {kind: threading.Lock() for kind in CollectionKind}

    def path_for(self, kind: CollectionKind) -> Path:
        return self.config_dir / _FILENAMES[kind]

    # ------------------------------------------------------------------ raw documents
    def _read_document(self, kind: CollectionKind) -> Optional[Any]:
        path = self.path_for(kind)
        if not path.exists():
            log("DEBUG", f"{path} does not exist")
            return None
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:
            log("WARN", f"Could not read {path}: {exc}")
            return None
        if not content.strip():
            log("DEBUG", f"{path} is empty")
            return None
        try:
            return json.loads(content)
        except json.JSONDecodeError as exc:
            log("WARN", f"Ignoring unreadable document {path}: {exc}")
            return None

    def _write_document(self, kind: CollectionKind, payload: Any) -> None:
        path = self.path_for(kind)
        ensure_directory(path.parent)
        try:
            path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as exc:
            raise ManagerError(f"Failed to write {path}: {exc}")

    # ------------------------------------------------------------------ generic API
    def load(self, kind: CollectionKind):
        """Return every record of ``kind`` (settings: the single document)."""
        with self._locks[kind]:
            return self._load_unlocked(kind)

    def _load_unlocked(self, kind: CollectionKind):
        data = self._read_document(kind)
        if kind is CollectionKind.SETTINGS:
            if not isinstance(data, dict):
                return Settings()
            return Settings.from_dict(data)

        if data is None:
            return []
        if not isinstance(data, list):
            log("WARN", f"Ignoring {self.path_for(kind)}: expected a JSON list")
            return []
        record_type = _RECORD_TYPES[kind]
        records = []
        for item in data:
            if not isinstance(item, dict):
                log("WARN", f"Skipping malformed entry in {self.path_for(kind)}: {item!r}")
                continue
            try:
                records.append(record_type.from_dict(item))
            except ManagerError as exc:
                log("WARN", f"Skipping malformed entry in {self.path_for(kind)}: {exc}")
        return records

    def save(self, kind: CollectionKind, records) -> None:
        """Replace the whole document for ``kind``."""
        with self._locks[kind]:
            self._save_unlocked(kind, records)

    def _save_unlocked(self, kind: CollectionKind, records) -> None:
        if kind is CollectionKind.SETTINGS:
            self._write_document(kind, records.to_dict())
            log("DEBUG", f"Saved settings to {self.path_for(kind)}")
            return

        records = list(records)
        if kind is CollectionKind.PROFILES and not records:
            # An empty profile list is almost always an accidental clear.
            log("WARN", "Attempt to save empty hardware profile list, ignoring")
            return

        self._write_document(kind, [record.to_dict() for record in records])
        log("DEBUG", f"Saved {len(records)} {kind.value} to {self.path_for(kind)}")
        if kind is CollectionKind.PROFILES:
            verified = self._load_unlocked(kind)
            log("DEBUG", f"Verified saved hardware profile count: {len(verified)}")

    # ------------------------------------------------------------------ typed wrappers
    def load_profiles(self) -> List[HardwareProfile]:
        return self.load(CollectionKind.PROFILES)

    def save_profiles(self, profiles: List[HardwareProfile]) -> None:
        self.save(CollectionKind.PROFILES, profiles)

    def load_containers(self) -> List[Container]:
        return self.load(CollectionKind.CONTAINERS)

    def save_containers(self, containers: List[Container]) -> None:
        self.save(CollectionKind.CONTAINERS, containers)

    def load_settings(self) -> Settings:
        return self.load(CollectionKind.SETTINGS)

    def save_settings(self, settings: Settings) -> None:
        self.save(CollectionKind.SETTINGS, settings)

    def find_profile(self, profile_id: str) -> HardwareProfile:
        for profile in self.load_profiles():
            if profile.id == profile_id:
                return profile
        raise ProfileNotFoundError(f"Hardware profile '{profile_id}' not found")

    def find_container(self, container_id: str) -> Container:
        for container in self.load_containers():
            if container.id == container_id:
                return container
        raise RecordNotFoundError(f"Container '{container_id}' not found")

    # ------------------------------------------------------------------ read-modify-write helpers
    def _merge(self, kind: CollectionKind, new_records) -> list:
        with self._locks[kind]:
            merged: Dict[str, Any] = {record.id: record for record in self._load_unlocked(kind)}
            for record in new_records:
                merged[record.id] = record
            result = list(merged.values())
            self._save_unlocked(kind, result)
            return result

    def merge_profiles(self, profiles: List[HardwareProfile]) -> List[HardwareProfile]:
        """Add or replace profiles by id and save the whole collection."""
        return self._merge(CollectionKind.PROFILES, profiles)

    def merge_containers(self, containers: List[Container]) -> List[Container]:
        """Add or replace containers by id and save the whole collection."""
        return self._merge(CollectionKind.CONTAINERS, containers)

    def assign_profile(self, container_id: str, profile_id: Optional[str]) -> Container:
        """Point a saved container at ``profile_id`` (``None`` clears it)."""
        kind = CollectionKind.CONTAINERS
        with self._locks[kind]:
            containers = self._load_unlocked(kind)
            updated: Optional[Container] = None
            result = []
            for container in containers:
                if container.id == container_id:
                    updated = replace(container, hardware_profile_id=profile_id)
                    result.append(updated)
                else:
                    result.append(container)
            if updated is None:
                raise RecordNotFoundError(f"Container '{container_id}' not found")
            self._save_unlocked(kind, result)
            return updated
