"""Shared test fixtures for ClimaCare tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DB_PATH", ":memory:")
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("OPENWEATHERMAP_API_KEY", "")
    monkeypatch.setenv("WEATHER_PROVIDER", "static")
    monkeypatch.setenv("CONDITION_MATCH_MODE", "exact")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from climacare.core.storage.kv_store import InMemoryKeyValueStore  # noqa: E402


# ---------------------------------------------------------------------------
# Storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def advisory_db():
    """Create an in-memory AdvisoryDatabase for testing."""
    from climacare.core.storage.database import AdvisoryDatabase

    db = AdvisoryDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def encrypted_kv_store(advisory_db):
    """SQLite-backed key-value store with a fresh Fernet key."""
    from climacare.core.storage.codecs import EncryptedCodec
    from climacare.core.storage.kv_store import SqliteKeyValueStore

    return SqliteKeyValueStore(advisory_db, EncryptedCodec(EncryptedCodec.generate_key()))


@pytest.fixture
def profile_store(kv_store):
    from climacare.domains.advisory.stores.profile_store import ProfileStore

    return ProfileStore(kv_store)


@pytest.fixture
def alert_store(kv_store):
    from climacare.domains.advisory.stores.alert_history import AlertHistoryStore

    return AlertHistoryStore(kv_store)


@pytest.fixture
def symptom_store(kv_store):
    from climacare.domains.advisory.stores.symptom_history import SymptomHistoryStore

    return SymptomHistoryStore(kv_store)


@pytest.fixture
def audit_logger(advisory_db):
    """Create an AuditLogger backed by in-memory SQLite."""
    from climacare.core.audit.logger import AuditLogger

    return AuditLogger(advisory_db)
