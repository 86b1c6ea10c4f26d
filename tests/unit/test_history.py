"""
Unit tests for HEAD and snapshot metadata storage, and archive hashing.
"""

import hashlib
import json

import pytest

from mvc.errors import (
    FieldError,
    NotFoundError,
    NotInitializedError,
    ParseError,
    SerializationError,
)
from mvc.hashing import digest
from mvc.history import HistoryStore, Snapshot


@pytest.fixture
def store(tmp_path):
    s = HistoryStore(tmp_path / "repo")
    s.create_layout()
    s.write_pointer(0)
    return s


def _snapshot(**overrides):
    fields = {"hash": "ab" * 32, "message": "msg", "email": "a@b.c", "name": "A"}
    fields.update(overrides)
    return Snapshot(**fields)


class TestDigest:

    def test_matches_sha256(self, tmp_path):
        f = tmp_path / "data"
        f.write_bytes(b"hello")
        assert digest(f) == hashlib.sha256(b"hello").hexdigest()

    def test_large_file_streams(self, tmp_path):
        data = b"x" * 200_000
        f = tmp_path / "big"
        f.write_bytes(data)
        assert digest(f) == hashlib.sha256(data).hexdigest()

    def test_missing_file(self, tmp_path):
        with pytest.raises(NotFoundError):
            digest(tmp_path / "missing")


class TestPointer:

    def test_fresh_pointer_is_zero(self, store):
        assert store.read_pointer() == 0

    def test_write_then_read(self, store):
        store.write_pointer(42)
        assert store.head_file.read_text() == "42"
        assert store.read_pointer() == 42

    def test_only_first_line_is_parsed(self, store):
        store.head_file.write_text("7\ngarbage\n")
        assert store.read_pointer() == 7

    @pytest.mark.parametrize("content", ["", "\n", "abc", "-1", "1.5", " 3"])
    def test_bad_content(self, store, content):
        store.head_file.write_text(content)
        with pytest.raises(ParseError):
            store.read_pointer()

    def test_missing_head(self, tmp_path):
        with pytest.raises(NotInitializedError):
            HistoryStore(tmp_path / "nowhere").read_pointer()

    def test_negative_value_rejected(self, store):
        with pytest.raises(ValueError):
            store.write_pointer(-1)

    def test_lock_requires_repository(self, tmp_path):
        with pytest.raises(NotInitializedError):
            with HistoryStore(tmp_path / "nowhere").lock():
                pass

    def test_lock_creates_lock_file(self, store):
        with store.lock():
            assert (store.root / "LOCK").exists()


class TestMetadata:

    def test_round_trip(self, store):
        snap = _snapshot()
        store.write_metadata(1, snap)
        assert store.read_metadata(1) == snap

    def test_record_is_keyed_json(self, store):
        store.write_metadata(3, _snapshot(message="hi"))
        data = json.loads(store.metadata_path(3).read_text())
        assert set(data) == {"hash", "message", "email", "name"}
        assert data["message"] == "hi"

    def test_missing_record(self, store):
        with pytest.raises(NotFoundError):
            store.read_metadata(9)

    def test_invalid_json(self, store):
        store.metadata_path(1).write_text("{not json")
        with pytest.raises(ParseError):
            store.read_metadata(1)

    def test_not_utf8(self, store):
        store.metadata_path(1).write_bytes(b'{"hash": "\xff\xfe"}')
        with pytest.raises(ParseError):
            store.read_metadata(1)

    def test_not_an_object(self, store):
        store.metadata_path(1).write_text("[1, 2]")
        with pytest.raises(ParseError):
            store.read_metadata(1)

    def test_missing_field(self, store):
        store.metadata_path(1).write_text(json.dumps({"hash": "x", "name": "a", "email": "b"}))
        with pytest.raises(FieldError) as exc:
            store.read_metadata(1)
        assert exc.value.field == "message"

    def test_wrong_field_type(self, store):
        store.metadata_path(1).write_text(json.dumps({"hash": 5, "message": "m", "name": "a", "email": "b"}))
        with pytest.raises(FieldError) as exc:
            store.read_metadata(1)
        assert exc.value.field == "hash"

    def test_unencodable_snapshot(self, store):
        with pytest.raises(SerializationError):
            store.write_metadata(1, _snapshot(message=object()))

    def test_ids(self, store):
        store.write_pointer(3)
        assert store.ids() == [1, 2, 3]
