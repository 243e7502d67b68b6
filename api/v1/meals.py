# api/v1/meals.py
from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException, status

from api.v1.deps import get_document_store
from api.v1.schemas import MealRecordOut
from config import settings
from services.document_store import SqlDocumentStore

router = APIRouter()


@router.get(
    "",
    response_model=MealRecordOut,
    status_code=status.HTTP_200_OK,
    summary="Fetch the stored meal record",
)
async def read_meals(
    documents: SqlDocumentStore = Depends(get_document_store),
) -> MealRecordOut:
    fields = await documents.get(settings.meals_collection, settings.meals_document)
    if fields is None:
        raise HTTPException(status_code=404, detail="No meals saved yet")
    return MealRecordOut(
        collection=settings.meals_collection,
        doc_id=settings.meals_document,
        fields=fields,
    )
