"""
Centralised settings loader.

Everything is read from the environment (or a local `.env`), so the same
image runs against sqlite + MinIO on a laptop and Cloud SQL + a real bucket
in prod.
"""

from __future__ import annotations
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# ------------------------------------------------------------------ #
#  Master settings model
# ------------------------------------------------------------------ #
class _Settings(BaseSettings):
    # ─── runtime / DB ───────────────────────────────────────────────
    env_name: str = Field("local", alias="ENV_NAME")
    database_url: str | None = Field("sqlite+aiosqlite:///./meals.db", alias="DATABASE_URL")
    cloud_sql_instance: str | None = Field(None, alias="CLOUD_SQL_CONNECTION_NAME")
    db_user: str | None = Field(None, alias="DB_USER")
    db_pass: str | None = Field(None, alias="DB_PASS")
    db_name: str | None = Field(None, alias="DB_NAME")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # ─── meal record layout ─────────────────────────────────────────
    meals_collection: str = Field("meals", alias="MEALS_COLLECTION")
    meals_document: str = Field("meal", alias="MEALS_DOCUMENT")
    meal_slot_count: int = Field(6, alias="MEAL_SLOT_COUNT", ge=1)
    # `{index}` is the 1-based slot number
    meal_image_path: str = Field("meal_images/meal{index}.jpg", alias="MEAL_IMAGE_PATH")
    image_staging_dir: str = Field("staging", alias="IMAGE_STAGING_DIR")

    # ─── object store (S3-compatible) ───────────────────────────────
    object_store_endpoint: str = Field("http://localhost:9000", alias="OBJECT_STORE_ENDPOINT")
    object_store_region: str = Field("auto", alias="OBJECT_STORE_REGION")
    object_store_bucket: str = Field("meal-images", alias="OBJECT_STORE_BUCKET")
    object_store_access_key_id: str = Field("minioadmin", alias="OBJECT_STORE_ACCESS_KEY_ID")
    object_store_secret_access_key: str = Field("minioadmin", alias="OBJECT_STORE_SECRET_ACCESS_KEY")
    object_public_base_url: str = Field(
        "http://localhost:9000/meal-images", alias="OBJECT_PUBLIC_BASE_URL"
    )

    # allow other teammates’ env-vars without crashing
    model_config = SettingsConfigDict(
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
    )


# ------------------------------------------------------------------ #
#  Cached singleton accessor
# ------------------------------------------------------------------ #
@lru_cache
def _cached() -> _Settings:  # pragma: no cover
    return _Settings()  # type: ignore[call-arg]


settings: _Settings = _cached()
