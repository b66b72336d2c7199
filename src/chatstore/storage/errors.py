"""Error types for the storage layer.

Absence is never an error here: lookups return ``None`` or an empty value.
Only invalid input and device failures raise. ``OSError`` from the
filesystem propagates unchanged.
"""


class StorageError(Exception):
    """Base class for storage errors."""

    pass


class InvalidPathError(StorageError, ValueError):
    """Raised when a logical path is empty or escapes the storage root."""

    pass


class InvalidSkillError(StorageError, ValueError):
    """Raised when saving a skill whose name or description is invalid."""

    pass


class ArchiveError(StorageError):
    """Raised when an archive cannot be read."""

    pass
