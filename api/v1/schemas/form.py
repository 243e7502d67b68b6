from __future__ import annotations
from typing import Any

from pydantic import BaseModel, Field

from core.form_state import MealForm
from core.persistence import SaveResult, SaveState


class SlotOut(BaseModel):
    index: int
    name: str
    has_image: bool
    image_type: str | None = None


class FormOut(BaseModel):
    price: str
    loading: bool
    selected_row: int | None
    delete_target: int | None
    confirm_delete_prompt: bool
    slots: list[SlotOut]
    notifications: list[str] = []

    @classmethod
    def from_form(cls, form: MealForm, notifications: list[str]) -> "FormOut":
        return cls(
            price=form.price,
            loading=form.loading,
            selected_row=form.selected_row,
            delete_target=form.delete_target,
            confirm_delete_prompt=form.confirm_delete_prompt,
            slots=[
                SlotOut(
                    index=s.index,
                    name=s.name,
                    has_image=s.has_image,
                    image_type=s.image.content_type if s.image else None,
                )
                for s in form.slots
            ],
            notifications=notifications,
        )


class PriceIn(BaseModel):
    price: str = Field(..., description="free text, validated on save")


class SlotNameIn(BaseModel):
    name: str = ""


class SaveOut(BaseModel):
    state: SaveState
    fields: dict[str, Any]
    error: str | None = None
    notifications: list[str] = []

    @classmethod
    def from_result(cls, result: SaveResult, notifications: list[str]) -> "SaveOut":
        return cls(
            state=result.state,
            fields=result.fields,
            error=result.error,
            notifications=notifications,
        )


class DeleteOut(BaseModel):
    slot: int | None
    deleted: bool
    notifications: list[str] = []
