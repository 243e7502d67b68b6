# api/v1/deps.py
from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from config import settings
from core.form_state import MealForm
from core.persistence import PersistenceCoordinator
from services.db import sessionmaker
from services.document_store import SqlDocumentStore
from services.image_staging import ImageStaging, get_staging
from services.object_store import get_store

# one operator, one form per process
_FORM: MealForm | None = None


async def get_document_store() -> SqlDocumentStore:
    return SqlDocumentStore(await sessionmaker())


async def get_form(
    documents: SqlDocumentStore = Depends(get_document_store),
) -> MealForm:
    global _FORM
    if _FORM is None:
        coordinator = PersistenceCoordinator(
            documents,
            get_store(),
            collection=settings.meals_collection,
            doc_id=settings.meals_document,
            image_path=settings.meal_image_path,
        )
        _FORM = MealForm(
            coordinator,
            slot_count=settings.meal_slot_count,
            discard_image=get_image_staging().discard,
        )
    return _FORM


@lru_cache
def get_image_staging() -> ImageStaging:
    return get_staging()
