"""vmware-hardware-manager package."""

__all__ = [
    "cli",
    "commands",
    "config",
    "constants",
    "exceptions",
    "locking",
    "models",
    "orchestrator",
    "paths",
    "scanner",
    "store",
    "substitution",
    "utils",
    "vmrun",
]
