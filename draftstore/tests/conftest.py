from __future__ import annotations

import os
import tempfile
from pathlib import Path

# Point the engine at a throwaway SQLite file before any draftstore module builds it.
_SQLITE_PATH = Path(tempfile.gettempdir()) / f"draftstore-test-{os.getpid()}.db"
os.environ["DATABASE_URL"] = os.environ.get(
    "DRAFTSTORE_TEST_DATABASE_URL", f"sqlite+aiosqlite:///{_SQLITE_PATH}"
)

import pytest  # noqa: E402

from draftstore.core.config import get_settings  # noqa: E402


@pytest.fixture(autouse=True)
def reset_settings_cache() -> None:
    # Tests that patch env vars must not leak cached settings into later tests.
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
