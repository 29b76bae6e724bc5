"""Mutual exclusion around changes to an installation's hypervisor executable."""

from __future__ import annotations

import hashlib
import os
import threading
import time
from pathlib import Path
from typing import Dict, Optional

try:  # pragma: no cover - platform-specific
    import fcntl
except ImportError:  # pragma: no cover - Windows
    fcntl = None  # type: ignore

try:  # pragma: no cover - platform-specific
    import msvcrt
except ImportError:  # pragma: no cover - non-Windows
    msvcrt = None  # type: ignore

from hwmanager.exceptions import LockTimeoutError, ManagerError
from hwmanager.utils import ensure_directory, log

_THREAD_LOCKS: Dict[str, threading.RLock] = {}
_THREAD_LOCKS_GUARD = threading.Lock()


def _thread_lock_for(key: str) -> threading.RLock:
    with _THREAD_LOCKS_GUARD:
        lock = _THREAD_LOCKS.get(key)
        if lock is None:
            lock = threading.RLock()
            _THREAD_LOCKS[key] = lock
        return lock


def _lock_key(install_root) -> str:
    normalised = os.path.normcase(os.path.abspath(str(install_root)))
    return hashlib.sha256(normalised.encode("utf-8")).hexdigest()[:16]


class InstallationLock:
    """Serialise swap/invoke/restore for one installation root.

    Threads of this process share an RLock per root; other processes are kept
    out by an advisory lock on ``<lock_dir>/<hash>.lock``.
    """

    def __init__(
        self,
        lock_dir: Path,
        install_root,
        *,
        timeout: Optional[float] = None,
        poll_interval: float = 0.2,
    ) -> None:
        self.install_root = str(install_root)
        self.key = _lock_key(install_root)
        self.lock_path = Path(lock_dir) / f"{self.key}.lock"
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._thread_lock = _thread_lock_for(self.key)
        self._handle = None
        self._depth = 0

    # ------------------------------------------------------------------ helpers
    def _try_file_lock(self) -> bool:
        try:
            ensure_directory(self.lock_path.parent)
            handle = self.lock_path.open("a+")
        except OSError as exc:
            raise ManagerError(f"Cannot open lock file {self.lock_path}: {exc}") from exc
        try:
            if fcntl:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
            elif msvcrt:  # pragma: no cover - Windows
                handle.seek(0)
                msvcrt.locking(handle.fileno(), msvcrt.LK_NBLCK, 1)
        except OSError:
            handle.close()
            return False
        handle.seek(0)
        handle.truncate()
        handle.write(str(os.getpid()))
        handle.flush()
        self._handle = handle
        return True

    def _release_file_lock(self) -> None:
        handle = self._handle
        self._handle = None
        if handle is None:
            return
        try:
            if fcntl:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
            elif msvcrt:  # pragma: no cover - Windows
                handle.seek(0)
                msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)
        finally:
            handle.close()

    # ------------------------------------------------------------------ API
    def acquire(self) -> bool:
        deadline = time.monotonic() + self.timeout if self.timeout is not None else None
        if deadline is None:
            self._thread_lock.acquire()
        elif not self._thread_lock.acquire(timeout=max(self.timeout, 0)):
            return False

        if self._depth:
            self._depth += 1
            return True

        waited = False
        try:
            while not self._try_file_lock():
                if not waited:
                    log("INFO", f"Waiting for another operation on {self.install_root} to finish")
                    waited = True
                if deadline is not None and time.monotonic() >= deadline:
                    self._thread_lock.release()
                    return False
                time.sleep(self.poll_interval)
        except ManagerError:
            self._thread_lock.release()
            raise
        self._depth = 1
        return True

    def release(self) -> None:
        if not self._depth:
            return
        self._depth -= 1
        if not self._depth:
            self._release_file_lock()
        self._thread_lock.release()

    def __enter__(self) -> "InstallationLock":
        if not self.acquire():
            raise LockTimeoutError(f"Installation {self.install_root} is busy (lock: {self.lock_path})")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
