"""
services/db.py
────────────────────────────────────────────────────────────────────────
* Async SQLAlchemy v2 setup
* The one table backing the document store (`meal_documents`)
* Engine and sessionmaker shared by the document store, API deps and scripts
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncAttrs,
    AsyncEngine,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

from config import settings

# ───────── connection helper ────────────────────────────────────────
_ENGINE: AsyncEngine | None = None
_SESSIONMAKER: async_sessionmaker[AsyncSession] | None = None


async def _create_engine() -> AsyncEngine:
    # 1) plain URL (defaults to a local sqlite file) unless Cloud SQL is named
    if not settings.cloud_sql_instance:
        if not settings.database_url:
            raise RuntimeError(
                "Set either DATABASE_URL or CLOUD_SQL_CONNECTION_NAME env var"
            )
        return create_async_engine(settings.database_url, pool_pre_ping=True)

    # 2) Cloud SQL connector, lazy import here
    try:
        from google.cloud.sql.connector import IPTypes, create_async_connector  # type: ignore
    except ImportError as exc:
        raise RuntimeError(
            "cloud-sql-python-connector missing. Run:\n"
            "pip install 'cloud-sql-python-connector[asyncpg]>=1.4.0'"
        ) from exc

    connector = await create_async_connector()

    async def _getconn():  # type: ignore[name-defined]
        return await connector.connect_async(
            settings.cloud_sql_instance,
            "asyncpg",
            user=settings.db_user,
            password=settings.db_pass,
            db=settings.db_name,
            ip_type=IPTypes.PRIVATE,
        )

    return create_async_engine(
        "postgresql+asyncpg://",
        async_creator=_getconn,
        pool_pre_ping=True,
    )


async def engine() -> AsyncEngine:
    global _ENGINE
    if _ENGINE is None:
        _ENGINE = await _create_engine()
    return _ENGINE


async def sessionmaker() -> async_sessionmaker[AsyncSession]:
    global _SESSIONMAKER
    if _SESSIONMAKER is None:
        _SESSIONMAKER = async_sessionmaker(await engine(), expire_on_commit=False)
    return _SESSIONMAKER


# ───────── declarative base ──────────────────────────────────────────
Base = declarative_base(cls=AsyncAttrs)


class MealDocument(Base):
    """One schemaless document, addressed by (collection, doc_id)."""

    __tablename__ = "meal_documents"

    collection: Mapped[str] = mapped_column(String(128), primary_key=True)
    doc_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    fields: Mapped[dict] = mapped_column(JSON, default=dict)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )


async def init_models(eng: AsyncEngine | None = None) -> None:
    eng = eng or await engine()
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose() -> None:
    global _ENGINE, _SESSIONMAKER
    if _ENGINE is not None:
        await _ENGINE.dispose()
    _ENGINE = None
    _SESSIONMAKER = None
