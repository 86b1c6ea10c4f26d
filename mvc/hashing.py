import hashlib

from mvc.errors import NotFoundError, StorageError

CHUNK_SIZE = 65536


def digest(path):
    """SHA-256 of a file's bytes as lowercase hex."""
    h = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                h.update(chunk)
    except FileNotFoundError as e:
        raise NotFoundError(f"File not found: {path}", path=str(path)) from e
    except OSError as e:
        raise StorageError(f"Cannot read {path}: {e}", path=str(path)) from e
    return h.hexdigest()
