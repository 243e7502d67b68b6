"""
Create the `meal_documents` table.

Usage
-----

    python -m scripts.init_db
"""
from __future__ import annotations

import asyncio

from services import db


async def _init() -> None:
    await db.init_models()
    await db.dispose()
    print("✓ tables ready")


def main() -> None:
    asyncio.run(_init())


if __name__ == "__main__":
    main()
