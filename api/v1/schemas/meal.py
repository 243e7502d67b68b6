from __future__ import annotations
from typing import Any

from pydantic import BaseModel


class MealRecordOut(BaseModel):
    collection: str
    doc_id: str
    fields: dict[str, Any]
