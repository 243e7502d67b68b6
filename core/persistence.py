"""
core/persistence.py
────────────────────────────────────────────────────────────────────────
Persistence coordinator for the meal form.

`save()` turns a snapshot of the form into one sparse record:

1.   slots with neither name nor image are excluded,
2.   name-only slots resolve on the spot,
3.   slots with an image upload it first, then resolve to its public URL,
4.   once every slot in the batch has resolved, the collected fields plus
     `price` are merge-upserted in a single write.

The first failed upload abandons the batch: nothing is written and the
uploads already in flight are left to finish on their own (their objects
stay in the bucket).

The stores are duck-typed; see `services.document_store` and
`services.object_store` for the production implementations.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Protocol

from core.models.meal import (
    PRICE_FIELD,
    LocalImageRef,
    MealSlot,
    display_name,
    image_field,
    name_field,
)

_LOG = logging.getLogger(__name__)


class DocumentStore(Protocol):
    async def merge_upsert(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None: ...

    async def delete_fields(self, collection: str, doc_id: str, names: list[str]) -> None: ...


class ObjectStore(Protocol):
    async def upload_blob(self, path: str, image: LocalImageRef) -> Any: ...

    async def resolve_public_url(self, handle: Any) -> str: ...


class SaveState(str, Enum):
    idle = "idle"
    dispatching = "dispatching"
    committing = "committing"
    committed = "committed"
    aborted = "aborted"            # an upload failed, nothing written
    write_failed = "write_failed"  # every upload done, final write failed


TERMINAL_STATES = frozenset({SaveState.committed, SaveState.aborted, SaveState.write_failed})


@dataclass
class SaveResult:
    state: SaveState
    fields: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.state is SaveState.committed


# ──────────────────────────────────────────────────────────────────────
#  Join primitive
# ──────────────────────────────────────────────────────────────────────
class UploadBatch:
    """Counted barrier over the non-excluded slots of one save."""

    def __init__(self, slot_indexes: Iterable[int]) -> None:
        self._pending = set(slot_indexes)
        self.total = len(self._pending)
        self.completed = 0
        self.fields: dict[str, Any] = {}
        self.state = SaveState.idle

    @property
    def done(self) -> bool:
        return self.completed == self.total

    def complete(self, index: int, fields: dict[str, Any]) -> bool:
        """Record slot `index` as finished; True when it was the last one."""
        if self.state in TERMINAL_STATES:
            raise RuntimeError(f"batch already {self.state.value}")
        if index not in self._pending:
            raise ValueError(f"slot {index} is not pending in this batch")
        self._pending.discard(index)
        self.fields.update(fields)
        self.completed += 1
        return self.done

    def abort(self) -> None:
        self.state = SaveState.aborted


# ──────────────────────────────────────────────────────────────────────
#  Coordinator
# ──────────────────────────────────────────────────────────────────────
class PersistenceCoordinator:
    def __init__(
        self,
        documents: DocumentStore,
        objects: ObjectStore,
        *,
        collection: str = "meals",
        doc_id: str = "meal",
        image_path: str = "meal_images/meal{index}.jpg",
    ) -> None:
        self._documents = documents
        self._objects = objects
        self.collection = collection
        self.doc_id = doc_id
        self._image_path = image_path

    def image_path(self, index: int) -> str:
        return self._image_path.format(index=index)

    # ─────────────────────────────── save ─────────────────────────── #
    async def save(
        self,
        slots: Iterable[MealSlot],
        price: float,
        on_complete: Callable[[SaveResult], None] | None = None,
    ) -> SaveResult:
        result = await self._save(list(slots), price)
        if on_complete is not None:
            on_complete(result)
        return result

    async def _save(self, slots: list[MealSlot], price: float) -> SaveResult:
        contributing = [s for s in slots if not s.is_blank]
        batch = UploadBatch(s.index for s in contributing)

        if batch.total == 0:
            return await self._commit(batch, price)

        batch.state = SaveState.dispatching
        uploads: dict[asyncio.Task, MealSlot] = {}
        for slot in contributing:
            if slot.image is not None:
                task = asyncio.create_task(self._upload(slot, slot.image))
                uploads[task] = slot
            else:
                batch.complete(slot.index, {name_field(slot.index): display_name(slot.index, slot.name)})

        pending = set(uploads)
        while pending:
            finished, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_EXCEPTION)
            for task in finished:
                slot = uploads[task]
                exc = task.exception()
                if exc is not None:
                    _LOG.error(
                        "Error uploading image for meal %s", slot.index, exc_info=exc
                    )
                    batch.abort()
                    for other in uploads:
                        if other is not task:
                            _detach(other)
                    return SaveResult(SaveState.aborted, error=str(exc) or type(exc).__name__)
                batch.complete(slot.index, task.result())

        return await self._commit(batch, price)

    async def _upload(self, slot: MealSlot, image: LocalImageRef) -> dict[str, Any]:
        handle = await self._objects.upload_blob(self.image_path(slot.index), image)
        url = await self._objects.resolve_public_url(handle)

        fields: dict[str, Any] = {image_field(slot.index): url}
        if slot.has_name:
            fields[name_field(slot.index)] = display_name(slot.index, slot.name)
        return fields

    async def _commit(self, batch: UploadBatch, price: float) -> SaveResult:
        batch.state = SaveState.committing
        record = dict(batch.fields)
        record[PRICE_FIELD] = price
        try:
            await self._documents.merge_upsert(self.collection, self.doc_id, record)
        except Exception as exc:
            _LOG.error("Error updating meals in %s/%s", self.collection, self.doc_id, exc_info=exc)
            batch.state = SaveState.write_failed
            return SaveResult(SaveState.write_failed, fields=record, error=str(exc) or type(exc).__name__)

        batch.state = SaveState.committed
        _LOG.info("Meals successfully updated (%d fields)", len(record))
        return SaveResult(SaveState.committed, fields=record)

    # ─────────────────────────────── delete ───────────────────────── #
    async def delete(
        self,
        slot_index: int,
        on_complete: Callable[[bool], None] | None = None,
    ) -> bool:
        names = [name_field(slot_index), image_field(slot_index)]
        try:
            await self._documents.delete_fields(self.collection, self.doc_id, names)
        except Exception as exc:
            _LOG.error("Error deleting meal %s", slot_index, exc_info=exc)
            ok = False
        else:
            _LOG.info("Meal %s deleted", slot_index)
            ok = True

        if on_complete is not None:
            on_complete(ok)
        return ok


# uploads of an abandoned batch; held here so the loop does not drop them
_STRAGGLERS: set[asyncio.Task] = set()


def _detach(task: asyncio.Task) -> None:
    _STRAGGLERS.add(task)
    task.add_done_callback(_log_straggler)


def _log_straggler(task: asyncio.Task) -> None:
    _STRAGGLERS.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        _LOG.warning("Upload finished with error after batch was abandoned: %s", exc)
