from __future__ import annotations

from typing import List, Optional

import pytest

from verifiedconfig.infrastructure.config.settings import StorageSettings
from verifiedconfig.infrastructure.storage.active_store import (
    ActiveStore,
    SqliteActiveStore,
)
from verifiedconfig.infrastructure.storage.signed_store import SignedStore
from verifiedconfig.infrastructure.storage.tree_codec import encode
from verifiedconfig.infrastructure.storage.verified_storage import VerifiedStorage
from verifiedconfig.shared.exceptions import (
    DecodeError,
    EncodeError,
    IntegrityError,
    WriteError,
)


class _FailingActiveStore(ActiveStore):
    def put(self, name: str, payload: bytes) -> None:
        raise RuntimeError("database is locked")

    def get(self, name: str) -> Optional[bytes]:
        return None

    def delete(self, name: str) -> bool:
        return False

    def list_names(self, prefix: str = "") -> List[str]:
        return []


def test_write_fans_out_to_both_backends(storage: VerifiedStorage) -> None:
    storage.write("book.admin", {"title": "Books"})

    assert storage.signed_store.exists("book.admin") is True
    assert storage.active_store.get("book.admin") == storage.signed_store.read("book.admin")
    assert storage.read("book.admin") == {"title": "Books"}
    assert storage.read_file("book.admin") == {"title": "Books"}


def test_read_of_unset_name_is_empty_map(storage: VerifiedStorage) -> None:
    assert storage.read("never.written") == {}
    assert storage.read_file("never.written") == {}


def test_read_uses_active_store_as_authority(storage: VerifiedStorage) -> None:
    storage.write("book.admin", {"title": "Books"})
    storage.active_store.put("book.admin", encode({"title": "Active"}))

    assert storage.read("book.admin") == {"title": "Active"}
    assert storage.read_file("book.admin") == {"title": "Books"}


def test_read_surfaces_decode_error(storage: VerifiedStorage) -> None:
    storage.active_store.put("book.admin", b"<config><broken></config>")
    with pytest.raises(DecodeError):
        storage.read("book.admin")


def test_active_failure_after_file_write_raises_write_error(
    settings: StorageSettings,
) -> None:
    storage = VerifiedStorage(SignedStore(settings), _FailingActiveStore())

    with pytest.raises(WriteError) as exc:
        storage.write("book.admin", {"title": "Books"})
    assert isinstance(exc.value.__cause__, RuntimeError)
    # 不回滚：签名文件保持已写入状态
    assert storage.signed_store.read("book.admin") is not None


def test_encode_failure_touches_neither_backend(storage: VerifiedStorage) -> None:
    with pytest.raises(EncodeError):
        storage.write("book.admin", {"bad key": "x"})
    assert storage.signed_store.exists("book.admin") is False
    assert storage.active_store.get("book.admin") is None


def test_delete_removes_both_halves_and_tolerates_missing(storage: VerifiedStorage) -> None:
    storage.write("book.admin", {"title": "Books"})
    storage.delete("book.admin")

    assert storage.signed_store.exists("book.admin") is False
    assert storage.read("book.admin") == {}

    storage.delete("book.admin")

    storage.write_raw("file.only", b"<config/>")
    storage.delete("file.only")
    assert storage.list_file_names() == []


def test_list_names_active_vs_file(storage: VerifiedStorage) -> None:
    for name in ("foo.bar", "foo.baz", "biff.bang"):
        storage.write(name, {"k": "v"})
    storage.write_raw("foo.raw", encode({"k": "raw"}))

    assert storage.list_names("foo") == ["foo.bar", "foo.baz"]
    assert storage.list_names("foo.bar") == ["foo.bar"]
    assert storage.list_names("bar") == []
    assert storage.list_file_names("foo") == ["foo.bar", "foo.baz", "foo.raw"]


def test_write_raw_writes_verbatim_to_file_only(storage: VerifiedStorage) -> None:
    data = b'<?xml version="1.0"?>\n<config><k>raw</k></config>\n'
    storage.write_raw("module.defaults", data)

    assert storage.signed_store.read("module.defaults") == data
    assert storage.active_store.get("module.defaults") is None
    assert storage.read("module.defaults") == {}


def test_import_file_populates_active_store(storage: VerifiedStorage) -> None:
    storage.write_raw("module.defaults", encode({"k": "raw"}))

    assert storage.import_file("module.defaults") is True
    assert storage.read("module.defaults") == {"k": "raw"}
    assert storage.import_file("never.written") is False


def test_import_file_rejects_tampered_or_undecodable_files(
    storage: VerifiedStorage, settings: StorageSettings
) -> None:
    storage.write_raw("not.xml", b"plain text")
    with pytest.raises(DecodeError):
        storage.import_file("not.xml")
    assert storage.active_store.get("not.xml") is None

    storage.write_raw("tampered", encode({"k": "v"}))
    path = settings.base_dir / "tampered.xml"
    path.write_bytes(path.read_bytes() + b"<!-- edit -->")
    with pytest.raises(IntegrityError):
        storage.import_file("tampered")
    assert storage.active_store.get("tampered") is None


def test_import_files_imports_by_prefix(storage: VerifiedStorage) -> None:
    storage.write_raw("mod.a", encode({"k": "a"}))
    storage.write_raw("mod.b", encode({"k": "b"}))
    storage.write_raw("other.c", encode({"k": "c"}))

    assert storage.import_files("mod.") == ["mod.a", "mod.b"]
    assert storage.list_names() == ["mod.a", "mod.b"]


def test_verify_all_reports_each_file(
    storage: VerifiedStorage, settings: StorageSettings
) -> None:
    storage.write("good", {"k": "v"})
    storage.write("bad", {"k": "v"})
    path = settings.base_dir / "bad.xml"
    path.write_bytes(path.read_bytes().replace(b"<k>v</k>", b"<k>x</k>"))

    assert storage.verify("good") is True
    assert storage.verify_all() == {"bad": False, "good": True}


def test_foreign_xml_files_are_ignored_by_bulk_operations(
    storage: VerifiedStorage, settings: StorageSettings
) -> None:
    storage.write_raw("mod.a", encode({"k": "a"}))
    (settings.base_dir / "mod+draft.xml").write_bytes(b"not signed")

    assert storage.list_file_names("mod") == ["mod.a"]
    assert storage.verify_all() == {"mod.a": True}
    assert storage.import_files("mod") == ["mod.a"]


def test_from_settings_uses_sqlite_backend(settings: StorageSettings) -> None:
    storage = VerifiedStorage.from_settings(settings)
    try:
        assert isinstance(storage.active_store, SqliteActiveStore)
        assert storage.active_store.db_path == settings.active_db_path
    finally:
        storage.close()
