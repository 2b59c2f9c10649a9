"""Custom exception hierarchy for devedores."""


class DevedoresError(Exception):
    """Base exception for all devedores errors."""


class EntityNotFoundError(DevedoresError):
    """Raised when a referenced entity does not exist."""


class ReferentialIntegrityError(EntityNotFoundError):
    """Raised when a foreign key reference is violated."""


class InvalidEntityStateError(DevedoresError):
    """Raised when an entity is in an invalid state for the operation."""


class ImmutableFieldError(InvalidEntityStateError):
    """Raised when a patch tries to change an identity or owned field."""


class StorageError(DevedoresError):
    """Raised when the local durable medium misbehaves."""


class StorageWriteError(StorageError):
    """Raised when the document could not be written to the local medium."""


class QuotaExceededError(StorageError, OSError):
    """Raised by a medium when a write would exceed its quota."""


class SyncError(DevedoresError):
    """Raised when directory synchronization fails."""


class FolderNotConfiguredError(SyncError):
    """Raised when no sync folder has been configured."""


class FolderPermissionError(SyncError):
    """Raised when access to the sync folder was denied or revoked."""


class PickerCancelledError(SyncError):
    """Raised when the user dismisses the folder picker."""


class EnvironmentUnsupportedError(SyncError):
    """Raised when directory access is unavailable in this environment."""


class ConfigurationError(DevedoresError):
    """Raised when configuration is invalid or missing."""


class CalculationError(DevedoresError, ValueError):
    """Raised when interest calculator inputs are out of range."""
