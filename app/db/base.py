"""Async SQLAlchemy engine, session factory and declarative base."""

from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import get_settings

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./stsvend.db"


class Base(DeclarativeBase):
    """Declarative base shared by all models."""


def _build_engine():
    settings = get_settings()
    db_url = settings.DATABASE_URL or DEFAULT_DATABASE_URL
    engine_kwargs: dict[str, Any] = {"echo": settings.DEBUG, "future": True}
    if not db_url.startswith("sqlite"):
        engine_kwargs["pool_pre_ping"] = True
    return create_async_engine(db_url, **engine_kwargs)


engine = _build_engine()

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

