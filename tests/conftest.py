from __future__ import annotations

import sys
from pathlib import Path

import pytest


def pytest_configure() -> None:
    """
    Ensure `src/` is importable when running pytest in a src-layout project.

    This only affects the test environment.
    """
    project_root = Path(__file__).resolve().parents[1]
    src_dir = project_root / "src"
    if str(src_dir) not in sys.path:
        sys.path.insert(0, str(src_dir))


TEST_SECRET_KEY = "test-secret-key"


@pytest.fixture
def settings(tmp_path: Path):
    from verifiedconfig.infrastructure.config.settings import StorageSettings

    return StorageSettings(
        base_dir=tmp_path / "config",
        secret_key=TEST_SECRET_KEY,
        active_db_path=tmp_path / "active.sqlite3",
    )


@pytest.fixture
def storage(settings):
    from verifiedconfig.infrastructure.storage.verified_storage import VerifiedStorage

    store = VerifiedStorage.from_settings(settings)
    yield store
    store.close()
