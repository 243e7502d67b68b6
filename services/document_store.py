"""
services/document_store.py
────────────────────────────────────────────────────────────────────────
Schemaless documents on top of the `meal_documents` table.

Two write shapes are supported, matching what the meal form needs:

* `merge_upsert` – create the document, or add/overwrite only the given
  fields; everything else already stored is kept.
* `delete_fields` – drop the named fields from an existing document.
  Missing documents are an error, missing fields are not.
"""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from services.db import MealDocument

_LOG = logging.getLogger(__name__)


class DocumentNotFoundError(LookupError):
    pass


class SqlDocumentStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = session_factory

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        async with self._sessions() as db:
            row = await db.get(MealDocument, (collection, doc_id))
            return dict(row.fields or {}) if row else None

    async def merge_upsert(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        async with self._sessions() as db:
            row = await _locked(db, collection, doc_id)
            if row is None:
                db.add(MealDocument(collection=collection, doc_id=doc_id, fields=dict(fields)))
            else:
                # reassign, JSON columns do not track in-place edits
                row.fields = {**(row.fields or {}), **fields}
            await db.commit()
        _LOG.debug("merge-upserted %s/%s: %s", collection, doc_id, sorted(fields))

    async def delete_fields(self, collection: str, doc_id: str, names: list[str]) -> None:
        async with self._sessions() as db:
            row = await _locked(db, collection, doc_id)
            if row is None:
                raise DocumentNotFoundError(f"no document {collection}/{doc_id}")
            row.fields = {k: v for k, v in (row.fields or {}).items() if k not in names}
            await db.commit()
        _LOG.debug("deleted fields %s from %s/%s", names, collection, doc_id)


async def _locked(db: AsyncSession, collection: str, doc_id: str) -> MealDocument | None:
    return (
        await db.execute(
            select(MealDocument)
            .where(MealDocument.collection == collection, MealDocument.doc_id == doc_id)
            .with_for_update()
        )
    ).scalar_one_or_none()
