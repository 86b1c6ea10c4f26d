from dataclasses import dataclass
from pathlib import Path

from mvc.archive import clean, pack, unpack
from mvc.errors import IntegrityError, NotFoundError, RepositoryExistsError
from mvc.hashing import digest
from mvc.history import HistoryStore, Snapshot
from mvc.ignore import PathFilter
from mvc.log import write_log

UNSET = "None"


@dataclass
class User:
    """Author identity attached to a snapshot. Unset fields hold "None"."""

    name: str = UNSET
    email: str = UNSET

    @classmethod
    def from_name(cls, name):
        return cls(name=name)

    @classmethod
    def from_email(cls, email):
        return cls(email=email)


def _check_id(snap_id):
    if isinstance(snap_id, bool) or not isinstance(snap_id, int) or snap_id < 1:
        raise NotFoundError(f"Invalid snapshot id: {snap_id!r}", id=snap_id)


class Repository:
    """A snapshot repository rooted at `path`.

    Usage:
        repo = Repository(".mvc")
        repo.init()
        snap_id = repo.save_snapshot("initial", {".mvc"}, User.from_name("me"), ".")
        message = repo.return_snapshot(snap_id, ".", {".mvc"})
    """

    def __init__(self, path):
        self.path = Path(path)
        self.store = HistoryStore(self.path)

    def is_initialized(self):
        return self.store.exists()

    def init(self, force=False):
        """Create archives/, metadata/ and HEAD = 0.

        Refuses to touch an existing repository unless force is set, in which
        case HEAD is reset to 0 and older archives become unreferenced.
        """
        if self.store.exists() and not force:
            raise RepositoryExistsError(
                f"Repository already initialized at {self.path}. Use force to reset HEAD.",
                path=str(self.path),
            )
        self.store.create_layout()
        self.store.write_pointer(0)
        write_log(self.path, {"event": "init", "force": force})

    def head(self):
        return self.store.read_pointer()

    def save_snapshot(self, message, ignore, identity, search_path):
        """Archive search_path (minus ignore) as the next snapshot. Returns its id.

        A failure before HEAD is written leaves HEAD unchanged but may leave a
        partial archive or metadata file at the next id.
        """
        with self.store.lock():
            snap_id = self.store.read_pointer() + 1
            archive_path = self.store.archive_path(snap_id)
            count = pack(search_path, archive_path, PathFilter(ignore, search_path))
            snapshot = Snapshot(
                hash=digest(archive_path),
                message=message,
                email=identity.email,
                name=identity.name,
            )
            self.store.write_metadata(snap_id, snapshot)
            self.store.write_pointer(snap_id)

        write_log(self.path, {
            "event": "save",
            "snapshot": snap_id,
            "message": message,
            "source": str(search_path),
            "entries": count,
            "hash": snapshot.hash,
        })
        return snap_id

    def get_snapshot(self, snap_id):
        _check_id(snap_id)
        return self.store.read_metadata(snap_id)

    def list_snapshots(self):
        """(id, Snapshot) pairs, newest first."""
        return [(snap_id, self.store.read_metadata(snap_id)) for snap_id in reversed(self.store.ids())]

    def verify(self, snap_id):
        """Recompute the archive digest and compare it to the recorded one."""
        _check_id(snap_id)
        actual = digest(self.store.archive_path(snap_id))
        return self.store.read_metadata(snap_id).hash == actual

    def return_snapshot(self, snap_id, unpack_path, ignore_list):
        """Replace the non-ignored content of unpack_path with snapshot snap_id.

        The archive is verified against its recorded hash first; on mismatch
        IntegrityError is raised and unpack_path is left untouched. Returns
        the snapshot message.
        """
        _check_id(snap_id)
        archive_path = self.store.archive_path(snap_id)
        new_hash = digest(archive_path)
        snapshot = self.store.read_metadata(snap_id)

        if snapshot.hash != new_hash:
            write_log(self.path, {"event": "restore_failed", "snapshot": snap_id, "reason": "hash mismatch"})
            raise IntegrityError(
                f"Snapshot {snap_id} is corrupt: hashes do not match",
                expected=snapshot.hash,
                actual=new_hash,
                id=snap_id,
                path=str(archive_path),
            )

        removed = clean(unpack_path, PathFilter(ignore_list, unpack_path))
        unpack(archive_path, unpack_path)

        write_log(self.path, {
            "event": "restore",
            "snapshot": snap_id,
            "target": str(unpack_path),
            "removed": removed,
        })
        return snapshot.message
