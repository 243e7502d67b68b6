# api/v1/form.py
from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from api.v1.deps import get_form, get_image_staging
from api.v1.schemas import DeleteOut, FormOut, PriceIn, SaveOut, SlotNameIn
from core.form_state import FormBusyError, FormValidationError, MealForm, NoSuchSlotError
from core.models.meal import LocalImageRef
from services.image_staging import ImageStaging, UnsupportedImageError

router = APIRouter()


def _slot_or_404(form: MealForm, index: int) -> None:
    try:
        form.slot(index)
    except NoSuchSlotError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


# ───────────────────────── read ─────────────────────────────
@router.get("", response_model=FormOut)
async def read_form(form: MealForm = Depends(get_form)) -> FormOut:
    """Current form state; pending notifications are handed out once."""
    return FormOut.from_form(form, form.drain_notifications())


# ───────────────────────── edit ─────────────────────────────
@router.put("/price", response_model=FormOut)
async def set_price(body: PriceIn, form: MealForm = Depends(get_form)) -> FormOut:
    form.set_price(body.price)
    return FormOut.from_form(form, [])


@router.put("/slots/{index}/name", response_model=FormOut)
async def set_slot_name(
    index: int,
    body: SlotNameIn,
    form: MealForm = Depends(get_form),
) -> FormOut:
    _slot_or_404(form, index)
    form.set_slot_name(index, body.name)
    return FormOut.from_form(form, [])


@router.post("/slots/{index}/image", response_model=FormOut)
async def pick_slot_image(
    index: int,
    file: UploadFile | None = File(None),
    form: MealForm = Depends(get_form),
    staging: ImageStaging = Depends(get_image_staging),
) -> FormOut:
    """
    Attach a picked image to slot `index`.

    Sending no file (or an empty one) is a cancelled pick and clears the
    slot's image.
    """
    _slot_or_404(form, index)

    async def _pick() -> LocalImageRef | None:
        if file is None or not file.filename:
            return None
        data = await file.read()
        if not data:
            return None
        return await staging.stage(data, file.content_type)

    try:
        await form.select_image_for_slot(index, _pick)
    except UnsupportedImageError as exc:
        raise HTTPException(status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, str(exc)) from exc
    return FormOut.from_form(form, [])


# ───────────────────────── delete ───────────────────────────
@router.post("/slots/{index}/delete", response_model=FormOut)
async def request_delete(index: int, form: MealForm = Depends(get_form)) -> FormOut:
    _slot_or_404(form, index)
    form.request_delete(index)
    return FormOut.from_form(form, [])


@router.post("/delete/confirm", response_model=DeleteOut)
async def confirm_delete(form: MealForm = Depends(get_form)) -> DeleteOut:
    target = form.delete_target
    if target is None:
        raise HTTPException(status.HTTP_409_CONFLICT, "no delete pending")
    deleted = await form.confirm_delete()
    return DeleteOut(slot=target, deleted=deleted, notifications=form.drain_notifications())


@router.post("/delete/cancel", response_model=FormOut)
async def cancel_delete(form: MealForm = Depends(get_form)) -> FormOut:
    form.cancel_delete()
    return FormOut.from_form(form, [])


# ───────────────────────── save ─────────────────────────────
@router.post("/save", response_model=SaveOut)
async def save_form(form: MealForm = Depends(get_form)) -> SaveOut:
    try:
        result = await form.request_save()
    except FormValidationError as exc:
        raise HTTPException(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            {"kind": exc.kind, "message": exc.message, "notifications": form.drain_notifications()},
        ) from exc
    except FormBusyError as exc:
        raise HTTPException(status.HTTP_409_CONFLICT, str(exc)) from exc
    return SaveOut.from_result(result, form.drain_notifications())
