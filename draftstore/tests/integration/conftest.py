from __future__ import annotations

import pytest

from draftstore.persistence.db import drop_models, engine, init_models


@pytest.fixture(autouse=True)
async def fresh_schema() -> None:
    # Build the schema per test so cascade and ordering assertions start from empty tables.
    await init_models()
    yield
    await drop_models()
    # Dispose the async engine to prevent cross-loop connection reuse between tests.
    await engine.dispose()
