from mvc.errors import (
    ArchiveError,
    FieldError,
    IntegrityError,
    MvcError,
    NotFoundError,
    NotInitializedError,
    ParseError,
    RepositoryExistsError,
    SerializationError,
    StorageError,
)
from mvc.history import HistoryStore, Snapshot
from mvc.repository import Repository, User
