from __future__ import annotations

import asyncio
import logging
import sys

from draftstore.core.config import get_settings
from draftstore.persistence.db import engine, init_models


logger = logging.getLogger("draftstore.init_db")


async def _init() -> int:
    # Create tables, constraints and indexes; existing objects are left untouched.
    await init_models()
    await engine.dispose()
    logger.info("schema_initialized")
    return 0


def main() -> int:
    logging.basicConfig(level=get_settings().log_level)
    try:
        return asyncio.run(_init())
    except Exception as exc:  # noqa: BLE001 - surface any setup or DB errors
        print(f"init_db failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
