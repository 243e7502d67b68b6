"""
Shared fixtures: in-memory stand-ins for the document and object stores.
"""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import pytest

from core.form_state import MealForm
from core.models.meal import LocalImageRef
from core.persistence import PersistenceCoordinator
from services.document_store import DocumentNotFoundError


class FakeDocumentStore:
    def __init__(self) -> None:
        self.docs: dict[tuple[str, str], dict[str, Any]] = {}
        self.upserts: list[dict[str, Any]] = []
        self.deletes: list[list[str]] = []
        self.fail_writes = False
        self.fail_deletes = False
        self.events: list[tuple[str, str]] | None = None

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        doc = self.docs.get((collection, doc_id))
        return dict(doc) if doc is not None else None

    async def merge_upsert(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        if self.events is not None:
            self.events.append(("upsert", doc_id))
        self.upserts.append(dict(fields))
        if self.fail_writes:
            raise ConnectionError("document store unavailable")
        self.docs.setdefault((collection, doc_id), {}).update(fields)

    async def delete_fields(self, collection: str, doc_id: str, names: list[str]) -> None:
        self.deletes.append(list(names))
        if self.fail_deletes:
            raise ConnectionError("document store unavailable")
        doc = self.docs.get((collection, doc_id))
        if doc is None:
            raise DocumentNotFoundError(f"no document {collection}/{doc_id}")
        for name in names:
            doc.pop(name, None)


class FakeObjectStore:
    def __init__(self) -> None:
        self.uploads: list[str] = []
        self.fail_paths: set[str] = set()
        self.delays: dict[str, float] = {}
        self.events: list[tuple[str, str]] | None = None

    async def upload_blob(self, path: str, image: LocalImageRef) -> str:
        await asyncio.sleep(self.delays.get(path, 0))
        if path in self.fail_paths:
            raise OSError(f"upload of {path} failed")
        self.uploads.append(path)
        if self.events is not None:
            self.events.append(("upload", path))
        return path

    async def resolve_public_url(self, handle: str) -> str:
        return f"https://cdn.test/{handle}"


def image(name: str) -> LocalImageRef:
    return LocalImageRef(path=Path(f"/tmp/{name}.jpg"))


@pytest.fixture
def documents() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
def objects() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def coordinator(documents, objects) -> PersistenceCoordinator:
    return PersistenceCoordinator(documents, objects)


@pytest.fixture
def form(coordinator) -> MealForm:
    return MealForm(coordinator)
