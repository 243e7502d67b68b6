"""
S3CompatStore with the boto3 upload call captured instead of sent.
"""
from __future__ import annotations

import asyncio

from core.models.meal import LocalImageRef
from core.persistence import PersistenceCoordinator
from services.object_store import S3CompatStore, UploadHandle


def _store(public_base_url="https://cdn.test/meal-images/") -> S3CompatStore:
    return S3CompatStore(
        endpoint_url="http://localhost:9000",
        region_name="us-east-1",
        access_key_id="test",
        secret_access_key="test",
        bucket="meal-images",
        public_base_url=public_base_url,
    )


def test_upload_uses_slot_key_and_content_type(monkeypatch, tmp_path):
    store = _store()
    calls = []
    monkeypatch.setattr(
        store.s3,
        "upload_file",
        lambda filename, bucket, key, ExtraArgs=None: calls.append((filename, bucket, key, ExtraArgs)),
    )
    picked = tmp_path / "pick.png"
    picked.write_bytes(b"png")
    key = PersistenceCoordinator(None, store).image_path(3)

    handle = asyncio.run(store.upload_blob(key, LocalImageRef(path=picked, content_type="image/png")))

    assert handle == UploadHandle(bucket="meal-images", key="meal_images/meal3.jpg")
    assert calls == [
        (str(picked), "meal-images", "meal_images/meal3.jpg", {"ContentType": "image/png"})
    ]


def test_public_url_joins_base_and_key():
    store = _store()
    handle = UploadHandle(bucket="meal-images", key="meal_images/meal1.jpg")

    url = asyncio.run(store.resolve_public_url(handle))

    assert url == "https://cdn.test/meal-images/meal_images/meal1.jpg"
