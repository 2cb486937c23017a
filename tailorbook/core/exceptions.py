"""Domain exceptions raised by the store and the maintenance services."""


class TailorbookError(Exception):
    """Base exception for all Tailorbook errors."""
    pass


class DatabaseInitializationError(TailorbookError):
    """The database could not be opened, created or migrated."""
    pass


class BackupError(TailorbookError):
    """Writing a backup copy failed."""
    pass


class RestoreError(TailorbookError):
    """Restoring from a backup failed."""
    pass


class BackupNotFoundError(RestoreError, FileNotFoundError):
    """The backup file to restore from does not exist."""
    pass


class ExportError(TailorbookError):
    """Writing the CSV export failed."""
    pass


class ImportFileNotFoundError(TailorbookError, FileNotFoundError):
    """The legacy import file does not exist."""
    pass
