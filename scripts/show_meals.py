"""
Print the stored meal record.

Usage
-----

    # the configured meals/meal document
    python -m scripts.show_meals

    # some other document
    python -m scripts.show_meals --collection meals --doc staging
"""
from __future__ import annotations

import argparse
import asyncio
import json

from config import settings
from services import db
from services.document_store import SqlDocumentStore


async def _show(collection: str, doc_id: str) -> int:
    store = SqlDocumentStore(await db.sessionmaker())
    try:
        fields = await store.get(collection, doc_id)
    finally:
        await db.dispose()

    if fields is None:
        print(f"✗ no document {collection}/{doc_id}")
        return 1
    print(json.dumps(fields, indent=2, sort_keys=True))
    return 0


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--collection", default=settings.meals_collection)
    parser.add_argument("--doc", default=settings.meals_document, help="document id")
    args = parser.parse_args()

    raise SystemExit(asyncio.run(_show(args.collection, args.doc)))


if __name__ == "__main__":
    main()
