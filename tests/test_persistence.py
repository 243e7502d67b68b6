# tests/test_persistence.py
from __future__ import annotations

import asyncio

import pytest

from conftest import image
from core.models.meal import MealSlot
from core.persistence import SaveState, UploadBatch

URL = "https://cdn.test/meal_images/meal{}.jpg"


def _slots(*pairs) -> list[MealSlot]:
    out = [MealSlot(index=i) for i in range(1, 7)]
    for slot, (name, img) in zip(out, pairs):
        slot.name, slot.image = name, img
    return out


# ── record shape ─────────────────────────────────────────────────────
def test_mixed_slots_scenario(coordinator, documents, objects):
    slots = _slots(("Burger", image("a")), ("", None), ("", image("b")))

    result = asyncio.run(coordinator.save(slots, 9.5))

    assert result.state is SaveState.committed
    assert documents.upserts == [
        {
            "meal1": "1. Burger",
            "mealImage1": URL.format(1),
            "mealImage3": URL.format(3),
            "price": 9.5,
        }
    ]
    assert sorted(objects.uploads) == ["meal_images/meal1.jpg", "meal_images/meal3.jpg"]


def test_all_blank_writes_only_price(coordinator, documents, objects):
    result = asyncio.run(coordinator.save(_slots(), 4.0))

    assert result.ok
    assert documents.upserts == [{"price": 4.0}]
    assert objects.uploads == []


def test_whitespace_name_counts_as_blank(coordinator, documents):
    asyncio.run(coordinator.save(_slots(("   ", None), ("Soup", None)), 3.0))

    assert documents.upserts == [{"meal2": "2. Soup", "price": 3.0}]


def test_name_only_slots_need_no_upload(coordinator, documents, objects):
    asyncio.run(coordinator.save(_slots(("Pizza", None), ("Pasta", None)), 12.0))

    assert objects.uploads == []
    assert documents.upserts == [{"meal1": "1. Pizza", "meal2": "2. Pasta", "price": 12.0}]


def test_merge_keeps_untouched_slots(coordinator, documents):
    asyncio.run(coordinator.save(_slots(("Pizza", None), ("Pasta", None)), 12.0))
    asyncio.run(coordinator.save(_slots(("Calzone", None)), 13.0))

    assert documents.docs[("meals", "meal")] == {
        "meal1": "1. Calzone",
        "meal2": "2. Pasta",
        "price": 13.0,
    }


# ── join ─────────────────────────────────────────────────────────────
def test_single_write_after_every_upload(coordinator, documents, objects):
    events: list[tuple[str, str]] = []
    documents.events = objects.events = events
    objects.delays = {"meal_images/meal1.jpg": 0.03, "meal_images/meal4.jpg": 0.01}
    slots = _slots(("A", image("a")), ("B", None), ("", None), ("", image("d")))

    asyncio.run(coordinator.save(slots, 1.0))

    assert [e[0] for e in events] == ["upload", "upload", "upsert"]
    assert len(documents.upserts) == 1


def test_on_complete_called_once_on_success(coordinator):
    calls = []
    asyncio.run(coordinator.save(_slots(("A", image("a"))), 1.0, on_complete=calls.append))

    assert len(calls) == 1
    assert calls[0].state is SaveState.committed


def test_upload_failure_abandons_batch(coordinator, documents, objects):
    objects.fail_paths = {"meal_images/meal2.jpg"}
    objects.delays = {"meal_images/meal1.jpg": 0.05, "meal_images/meal3.jpg": 0.05}
    slots = _slots(("A", image("a")), ("B", image("b")), ("", image("c")))
    calls = []

    result = asyncio.run(coordinator.save(slots, 2.0, on_complete=calls.append))

    assert result.state is SaveState.aborted
    assert "meal2" in result.error
    assert documents.upserts == []
    assert len(calls) == 1


def test_write_failure_still_completes(coordinator, documents):
    documents.fail_writes = True
    calls = []

    result = asyncio.run(coordinator.save(_slots(("A", None)), 2.0, on_complete=calls.append))

    assert result.state is SaveState.write_failed
    assert result.fields == {"meal1": "1. A", "price": 2.0}
    assert len(calls) == 1


def test_upload_batch_counts_to_total():
    batch = UploadBatch([1, 3])
    assert batch.total == 2

    assert batch.complete(3, {"mealImage3": "u"}) is False
    assert batch.complete(1, {"meal1": "1. x"}) is True
    assert batch.done
    assert batch.fields == {"mealImage3": "u", "meal1": "1. x"}

    with pytest.raises(ValueError):
        batch.complete(1, {})


def test_upload_batch_rejects_completion_after_abort():
    batch = UploadBatch([1])
    batch.abort()
    with pytest.raises(RuntimeError):
        batch.complete(1, {})


def test_image_path_is_per_slot(coordinator):
    assert coordinator.image_path(2) == "meal_images/meal2.jpg"


# ── delete ───────────────────────────────────────────────────────────
def test_delete_removes_exactly_slot_fields(coordinator, documents):
    documents.docs[("meals", "meal")] = {
        "meal2": "2. B",
        "meal3": "3. C",
        "mealImage3": "u3",
        "price": 5.0,
    }
    calls = []

    ok = asyncio.run(coordinator.delete(3, on_complete=calls.append))

    assert ok is True and calls == [True]
    assert documents.deletes == [["meal3", "mealImage3"]]
    assert documents.docs[("meals", "meal")] == {"meal2": "2. B", "price": 5.0}


def test_delete_without_document_fails(coordinator):
    calls = []
    ok = asyncio.run(coordinator.delete(1, on_complete=calls.append))

    assert ok is False and calls == [False]


def test_display_name_keeps_name_as_entered(coordinator, documents):
    asyncio.run(coordinator.save(_slots((" Burger ", None)), 1.0))

    assert documents.upserts == [{"meal1": "1.  Burger ", "price": 1.0}]
