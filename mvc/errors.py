"""Error types raised by mvc.

All errors inherit from MvcError and carry a `details` dict with the path
or snapshot id involved, so the CLI can report them without parsing messages.
"""


class MvcError(Exception):
    """Base exception for all mvc errors."""

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details


class StorageError(MvcError):
    """A filesystem read, write or create failed."""


class ArchiveError(StorageError):
    """Packing, unpacking or cleaning a tree failed."""


class NotFoundError(StorageError):
    """A referenced snapshot has no archive or metadata file."""


class NotInitializedError(NotFoundError):
    """The repository has no HEAD file. Run init first."""


class ParseError(MvcError):
    """HEAD or a metadata record is not in the expected shape."""


class FieldError(MvcError):
    """A metadata field is missing or has the wrong type."""

    def __init__(self, message, field=None, **details):
        super().__init__(message, field=field, **details)
        self.field = field


class SerializationError(MvcError):
    """A snapshot record could not be encoded."""


class IntegrityError(MvcError):
    """The recorded archive hash does not match the archive on disk."""

    def __init__(self, message, expected=None, actual=None, **details):
        super().__init__(message, expected=expected, actual=actual, **details)
        self.expected = expected
        self.actual = actual


class RepositoryExistsError(MvcError):
    """init was called on a repository that already has a HEAD."""


class ConfigError(MvcError):
    """A config file exists but cannot be used."""
