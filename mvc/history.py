"""On-disk history: the HEAD pointer and one metadata record per snapshot.

Layout under the repository root:
    HEAD                 decimal id of the newest snapshot (0 = none)
    archives/<id>.tar    archive of snapshot <id>
    metadata/<id>.json   {"hash", "message", "email", "name"}
    LOCK                 advisory lock held while HEAD is advanced
"""

import json
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from pathlib import Path

from mvc.errors import (
    FieldError,
    NotFoundError,
    NotInitializedError,
    ParseError,
    SerializationError,
    StorageError,
)

try:
    import fcntl
    _FCNTL_AVAILABLE = True
except ImportError:
    _FCNTL_AVAILABLE = False  # Windows fallback — no locking

HEAD_PATH = "HEAD"
LOCK_PATH = "LOCK"
SNAP_ARCHIVE_PATH = "archives"
SNAP_METADATA_PATH = "metadata"

SNAPSHOT_FIELDS = ("hash", "message", "email", "name")


@dataclass(frozen=True)
class Snapshot:
    """Metadata recorded for one snapshot."""

    hash: str
    message: str
    email: str
    name: str

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, data):
        """Build a Snapshot, raising FieldError on a missing or non-string field."""
        if not isinstance(data, dict):
            raise FieldError(f"Snapshot record must be an object, got {type(data).__name__}")
        values = {}
        for field in SNAPSHOT_FIELDS:
            if field not in data:
                raise FieldError(f"Snapshot record is missing {field!r}", field=field)
            if not isinstance(data[field], str):
                raise FieldError(
                    f"Snapshot field {field!r} must be a string, got {type(data[field]).__name__}",
                    field=field,
                )
            values[field] = data[field]
        return cls(**values)


class HistoryStore:

    def __init__(self, root):
        self.root = Path(root)

    @property
    def head_file(self):
        return self.root / HEAD_PATH

    @property
    def archives_dir(self):
        return self.root / SNAP_ARCHIVE_PATH

    @property
    def metadata_dir(self):
        return self.root / SNAP_METADATA_PATH

    def archive_path(self, snap_id):
        return self.archives_dir / f"{snap_id}.tar"

    def metadata_path(self, snap_id):
        return self.metadata_dir / f"{snap_id}.json"

    def exists(self):
        return self.head_file.exists()

    def create_layout(self):
        try:
            self.archives_dir.mkdir(parents=True, exist_ok=True)
            self.metadata_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create repository at {self.root}: {e}", path=str(self.root)) from e

    # ------------------------------------------------------------------
    # HEAD
    # ------------------------------------------------------------------

    def read_pointer(self):
        """Parse the first line of HEAD as an unsigned integer."""
        try:
            content = self.head_file.read_text()
        except FileNotFoundError as e:
            raise NotInitializedError(
                f"No repository at {self.root} (missing {HEAD_PATH}). Run 'mvc init' first.",
                path=str(self.head_file),
            ) from e
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Cannot read {self.head_file}: {e}", path=str(self.head_file)) from e

        first = content.split("\n")[0]
        if not first:
            raise ParseError(f"{self.head_file} is empty", path=str(self.head_file))
        if not (first.isascii() and first.isdigit()):
            raise ParseError(f"Unable to parse {self.head_file}: {first!r}", path=str(self.head_file))
        return int(first)

    def write_pointer(self, value):
        if value < 0:
            raise ValueError(f"HEAD must be non-negative, got {value}")
        try:
            self.head_file.write_text(str(value))
        except OSError as e:
            raise StorageError(f"Cannot write {self.head_file}: {e}", path=str(self.head_file)) from e

    @contextmanager
    def lock(self):
        """Hold an exclusive advisory lock on the repository while advancing HEAD."""
        if not self.exists():
            raise NotInitializedError(
                f"No repository at {self.root} (missing {HEAD_PATH}). Run 'mvc init' first.",
                path=str(self.head_file),
            )
        try:
            lock_fd = open(self.root / LOCK_PATH, "w")
        except OSError as e:
            raise StorageError(f"Cannot open lock file in {self.root}: {e}", path=str(self.root)) from e
        try:
            if _FCNTL_AVAILABLE:
                fcntl.flock(lock_fd, fcntl.LOCK_EX)
            yield
        finally:
            if _FCNTL_AVAILABLE:
                fcntl.flock(lock_fd, fcntl.LOCK_UN)
            lock_fd.close()

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def write_metadata(self, snap_id, snapshot):
        path = self.metadata_path(snap_id)
        try:
            encoded = json.dumps(snapshot.to_dict())
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Cannot encode snapshot {snap_id}: {e}", id=snap_id) from e
        try:
            path.write_text(encoded)
        except OSError as e:
            raise StorageError(f"Cannot write {path}: {e}", path=str(path), id=snap_id) from e

    def read_metadata(self, snap_id):
        path = self.metadata_path(snap_id)
        try:
            raw = path.read_text()
        except FileNotFoundError as e:
            raise NotFoundError(f"Snapshot {snap_id} has no metadata", path=str(path), id=snap_id) from e
        except UnicodeDecodeError as e:
            raise ParseError(f"{path} is not valid UTF-8: {e}", path=str(path), id=snap_id) from e
        except OSError as e:
            raise StorageError(f"Cannot read {path}: {e}", path=str(path), id=snap_id) from e
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON in {path}: {e}", path=str(path), id=snap_id) from e
        if not isinstance(data, dict):
            raise ParseError(f"{path} does not hold a JSON object", path=str(path), id=snap_id)
        return Snapshot.from_dict(data)

    def ids(self):
        """Snapshot ids 1..HEAD, oldest first."""
        return list(range(1, self.read_pointer() + 1))
