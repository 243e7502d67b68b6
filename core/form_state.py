"""
core/form_state.py
────────────────────────────────────────────────────────────────────────
Server-held state of the meal form.

The form owns the slots, the price text and the transient UI flags
(loading, selected row, delete prompt). It validates before talking to the
`PersistenceCoordinator` and only ever changes local state in response to
the coordinator's completion callbacks.

Everything here runs on the event loop; there is no locking.
"""

from __future__ import annotations

import logging
import re
from typing import Awaitable, Callable

from core.models.meal import LocalImageRef, MealSlot
from core.persistence import PersistenceCoordinator, SaveResult, SaveState

Logger = logging.getLogger(__name__)

ImagePicker = Callable[[], Awaitable[LocalImageRef | None]]
ImageDiscard = Callable[[LocalImageRef], Awaitable[None]]

MSG_NO_CONTENT = "At least one meal section must be completed."
MSG_INVALID_PRICE = "Please enter a valid price."
MSG_SAVED = "Meals successfully saved!"
MSG_SAVE_FAILED = "Failed to save meals"
MSG_DELETED = "Meal deleted"
MSG_DELETE_FAILED = "Failed to delete meal"


class FormValidationError(ValueError):
    """Raised by `request_save` before any remote call is made."""

    NO_CONTENT = "no_content"
    INVALID_PRICE = "invalid_price"

    def __init__(self, kind: str, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


class FormBusyError(RuntimeError):
    pass


class NoSuchSlotError(LookupError):
    pass


_PRICE_RE = re.compile(r"[0-9]+(\.[0-9]*)?|\.[0-9]+")


def parse_price(text: str) -> float | None:
    """`"9.5"` → 9.5; blank, junk, signs, exponents and `1_000` → None."""
    text = (text or "").strip()
    # ASCII only; float() alone takes underscores and non-latin digits
    if not _PRICE_RE.fullmatch(text):
        return None
    return float(text)


class MealForm:
    def __init__(
        self,
        coordinator: PersistenceCoordinator,
        slot_count: int = 6,
        discard_image: ImageDiscard | None = None,
    ) -> None:
        self._coordinator = coordinator
        self._discard_image = discard_image
        self.slots: list[MealSlot] = [MealSlot(index=i) for i in range(1, slot_count + 1)]
        self.price: str = ""
        self.loading: bool = False
        self.selected_row: int | None = None
        self.delete_target: int | None = None
        self._notifications: list[str] = []
        self._deferred_drops: list[LocalImageRef] = []

    # ───────────────────────── slots ────────────────────────────
    def slot(self, index: int) -> MealSlot:
        if not 1 <= index <= len(self.slots):
            raise NoSuchSlotError(f"slot {index} out of range 1..{len(self.slots)}")
        return self.slots[index - 1]

    def set_slot_name(self, index: int, text: str) -> None:
        self.slot(index).name = text

    def set_price(self, text: str) -> None:
        self.price = text

    async def select_image_for_slot(self, index: int, picker: ImagePicker) -> LocalImageRef | None:
        slot = self.slot(index)
        self.selected_row = index
        try:
            ref = await picker()
        finally:
            self.selected_row = None
        # a cancelled picker clears whatever was there
        old, slot.image = slot.image, ref
        if old != ref:
            await self._drop_image(old)
        return ref

    async def _drop_image(self, ref: LocalImageRef | None) -> None:
        if ref is None or self._discard_image is None:
            return
        if self.loading:
            # the running save may still be uploading it
            self._deferred_drops.append(ref)
            return
        await self._discard_image(ref)

    # ───────────────────────── delete ───────────────────────────
    @property
    def confirm_delete_prompt(self) -> bool:
        return self.delete_target is not None

    def request_delete(self, index: int) -> None:
        self.slot(index)
        self.delete_target = index

    def cancel_delete(self) -> None:
        self.delete_target = None

    async def confirm_delete(self) -> bool:
        target = self.delete_target
        if target is None:
            return False

        def _done(ok: bool) -> None:
            if ok:
                self.slot(target).clear()
                self.notify(MSG_DELETED)
            else:
                self.notify(MSG_DELETE_FAILED)

        old = self.slot(target).image
        try:
            ok = await self._coordinator.delete(target, on_complete=_done)
        finally:
            self.delete_target = None
        if ok:
            await self._drop_image(old)
        return ok

    # ───────────────────────── save ─────────────────────────────
    def validate(self) -> float:
        if all(s.is_blank for s in self.slots):
            raise FormValidationError(FormValidationError.NO_CONTENT, MSG_NO_CONTENT)
        price = parse_price(self.price)
        if price is None:
            raise FormValidationError(FormValidationError.INVALID_PRICE, MSG_INVALID_PRICE)
        return price

    async def request_save(self) -> SaveResult:
        if self.loading:
            raise FormBusyError("a save is already in progress")
        try:
            price = self.validate()
        except FormValidationError as exc:
            self.notify(exc.message)
            raise

        snapshot = [s.model_copy() for s in self.slots]

        def _done(result: SaveResult) -> None:
            self.loading = False
            if result.state is SaveState.committed:
                self.notify(MSG_SAVED)
            elif result.state is SaveState.write_failed:
                self.notify(MSG_SAVE_FAILED)

        self.loading = True
        try:
            return await self._coordinator.save(snapshot, price, on_complete=_done)
        except BaseException:
            self.loading = False
            raise
        finally:
            deferred, self._deferred_drops = self._deferred_drops, []
            for ref in deferred:
                await self._drop_image(ref)

    # ───────────────────────── notifications ────────────────────
    def notify(self, message: str) -> None:
        Logger.debug("notification: %s", message)
        self._notifications.append(message)

    @property
    def notifications(self) -> list[str]:
        return list(self._notifications)

    def drain_notifications(self) -> list[str]:
        out, self._notifications = self._notifications, []
        return out
