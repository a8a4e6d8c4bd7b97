"""Tests for the key-value store adapters."""

from __future__ import annotations

import pytest

from climacare.core.storage.codecs import EncryptedCodec
from climacare.core.storage.kv_store import (
    InMemoryKeyValueStore,
    KeyValueStore,
    SqliteKeyValueStore,
    StorageError,
)


class TestInMemoryKeyValueStore:
    def test_satisfies_protocol(self, kv_store):
        assert isinstance(kv_store, KeyValueStore)

    def test_missing_key_is_none(self, kv_store):
        assert kv_store.get("healthProfile") is None

    def test_set_then_get(self, kv_store):
        kv_store.set("alertHistory", [{"id": "1"}])
        assert kv_store.get("alertHistory") == [{"id": "1"}]

    def test_values_are_copied(self, kv_store):
        value = [{"id": "1"}]
        kv_store.set("alertHistory", value)
        value.append({"id": "2"})
        kv_store.get("alertHistory").append({"id": "3"})
        assert kv_store.get("alertHistory") == [{"id": "1"}]

    def test_delete_is_idempotent(self, kv_store):
        kv_store.set("healthProfile", {"id": "1"})
        kv_store.delete("healthProfile")
        kv_store.delete("healthProfile")
        assert kv_store.get("healthProfile") is None
        assert kv_store.keys() == []


class TestSqliteKeyValueStore:
    def test_satisfies_protocol(self, advisory_db):
        assert isinstance(SqliteKeyValueStore(advisory_db), KeyValueStore)

    def test_plain_roundtrip_and_overwrite(self, advisory_db):
        store = SqliteKeyValueStore(advisory_db)
        store.set("healthProfile", {"name": "Ana"})
        store.set("healthProfile", {"name": "Bia"})
        assert store.get("healthProfile") == {"name": "Bia"}
        assert store.keys() == ["healthProfile"]

    def test_encrypted_blob_at_rest(self, advisory_db, encrypted_kv_store):
        encrypted_kv_store.set("healthProfile", {"conditions": ["asma"]})
        raw = advisory_db.connection.execute(
            "SELECT value FROM kv_store WHERE key = 'healthProfile'"
        ).fetchone()[0]
        assert "asma" not in raw
        assert encrypted_kv_store.get("healthProfile") == {"conditions": ["asma"]}

    def test_wrong_key_raises_storage_error(self, advisory_db, encrypted_kv_store):
        encrypted_kv_store.set("symptomHistory", [])
        other = SqliteKeyValueStore(advisory_db, EncryptedCodec(EncryptedCodec.generate_key()))
        with pytest.raises(StorageError, match="symptomHistory"):
            other.get("symptomHistory")

    def test_unencodable_value_raises_storage_error(self, advisory_db):
        store = SqliteKeyValueStore(advisory_db)
        with pytest.raises(StorageError):
            store.set("alertHistory", {"bad": object()})
        assert store.get("alertHistory") is None

    def test_delete(self, advisory_db):
        store = SqliteKeyValueStore(advisory_db)
        store.set("familyProfiles", [])
        store.delete("familyProfiles")
        store.delete("familyProfiles")
        assert store.get("familyProfiles") is None

    def test_data_survives_reopen(self, tmp_path):
        from climacare.core.storage.database import AdvisoryDatabase

        path = str(tmp_path / "advisory.db")
        with AdvisoryDatabase(path) as db:
            SqliteKeyValueStore(db).set("alertHistory", [{"id": "1"}])
        with AdvisoryDatabase(path) as db:
            assert SqliteKeyValueStore(db).get("alertHistory") == [{"id": "1"}]
