"""Custom exceptions for the VMware hardware manager."""


class ManagerError(RuntimeError):
    """Raised on unrecoverable configuration or runtime errors."""


class ConfigurationMissingError(ManagerError):
    """No installation path has been configured."""


class InstallationNotFoundError(ManagerError):
    """VMware Workstation could not be located on this host."""


class ValidationError(ManagerError):
    """A referenced file or directory does not exist."""


class RecordNotFoundError(ManagerError):
    """An id did not match any record of a collection."""


class ProfileNotFoundError(RecordNotFoundError):
    """A hardware profile id did not match any saved profile."""


class SubstitutionIOError(ManagerError):
    """Copying an executable during swap or restore failed."""

    def __init__(self, message: str, source=None, destination=None) -> None:
        super().__init__(message)
        self.source = source
        self.destination = destination


class UnsupportedOperationError(ManagerError):
    """The requested VM verb is not part of the vmrun grammar."""


class ExternalProcessError(ManagerError):
    """vmrun could not be spawned, timed out, or (strict mode) failed."""


class LockTimeoutError(ManagerError):
    """The installation lock could not be acquired in time."""
