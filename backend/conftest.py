# backend/conftest.py
import os
import sys
from pathlib import Path

import pytest

# Add repository root to PYTHONPATH so "backend.*" imports resolve
REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture(scope="session")
def db_url():
    """
    Provide TEST_DATABASE_URL for tests.

    Returns the URL from environment, or None if not set.
    """
    return os.getenv("TEST_DATABASE_URL")


@pytest.fixture(scope="function", autouse=True)
def reset_stores():
    """
    Fresh document store and image store for every test.

    With TEST_DATABASE_URL set the documents table is emptied instead.
    """
    from backend.features.media.image_store import image_store
    from backend.features.storage.document_store import get_store, reset_store

    reset_store()
    get_store().clear()
    image_store.clear()
    yield
    get_store().clear()
    reset_store()


@pytest.fixture
def sqlite_store(tmp_path, monkeypatch):
    """Point the document store at a throwaway SQLite file."""
    from backend.core.database import dispose_engine
    from backend.features.storage.document_store import get_store, reset_store

    monkeypatch.setenv("TEST_DATABASE_URL", f"sqlite:///{tmp_path / 'goalkeeper.db'}")
    dispose_engine()
    reset_store()
    store = get_store()
    yield store
    reset_store()
    dispose_engine()
