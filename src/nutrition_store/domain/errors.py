"""Errors raised by the nutrition store."""


class StoreError(Exception):
    """Base class for nutrition store failures."""


class SchemaMigrationError(StoreError):
    """The schema could not be brought to the supported version."""

    def __init__(self, version: int, message: str) -> None:
        super().__init__(f"Migration to schema version {version} failed: {message}")
        self.version = version


class StoreClosedError(StoreError):
    """The store handle was used after it was closed."""


class InvalidRecordError(StoreError):
    """A record field holds a value the store refuses to persist."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"Invalid value for '{field}': {message}")
        self.field = field


class SourceMissingError(StoreError):
    """The live store file to back up does not exist."""


class BackupMissingError(StoreError):
    """The backup file to restore from does not exist."""


class CorruptBackupError(StoreError):
    """The backup file is not a readable store file."""


class DocumentImportError(StoreError):
    """An export document could not be imported; nothing was changed."""


class CacheWriteError(StoreError):
    """The derived nutrition cache could not be written."""


class MaintenanceError(StoreError):
    """A maintenance operation failed on I/O."""
