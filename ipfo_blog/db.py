"""Database layer backing the session-scoped post cache."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import Column, DateTime, String, Text, create_engine, delete, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


class Base(DeclarativeBase):
    pass


class CacheEntryModel(Base):
    """One serialised cache entry per browsing session and key."""

    __tablename__ = "session_cache"

    session_id = Column(String, primary_key=True)
    key = Column(String, primary_key=True)
    payload = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))


def init_engine(connection_string: str) -> Engine:
    """Initialize the database engine and create the cache table."""
    logger.info("Initializing cache database: %s", connection_string)
    if connection_string in _MEMORY_URLS:
        # A single shared connection, otherwise every thread sees its own empty database.
        engine = create_engine(
            connection_string,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        url = make_url(connection_string)
        if url.get_backend_name() == "sqlite" and url.database:
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(connection_string)
    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Return a session factory for the given engine."""
    return sessionmaker(bind=engine)


def get_payload(session: Session, session_id: str, key: str) -> Optional[str]:
    """Return the raw stored payload, or None when nothing is stored."""
    stmt = select(CacheEntryModel).where(
        CacheEntryModel.session_id == session_id,
        CacheEntryModel.key == key,
    )
    result = session.execute(stmt).scalar_one_or_none()
    if not result:
        return None
    return result.payload


def put_payload(session: Session, session_id: str, key: str, payload: str) -> None:
    """Insert or replace the payload stored under ``key``."""
    stmt = select(CacheEntryModel).where(
        CacheEntryModel.session_id == session_id,
        CacheEntryModel.key == key,
    )
    existing = session.execute(stmt).scalar_one_or_none()

    if existing:
        existing.payload = payload
        existing.updated_at = datetime.now(timezone.utc)
    else:
        session.add(
            CacheEntryModel(
                session_id=session_id,
                key=key,
                payload=payload,
                updated_at=datetime.now(timezone.utc),
            )
        )

    try:
        session.commit()
    except Exception:
        session.rollback()
        raise


def delete_session(session: Session, session_id: str) -> int:
    """Remove every entry belonging to a browsing session."""
    stmt = delete(CacheEntryModel).where(CacheEntryModel.session_id == session_id)
    try:
        result = session.execute(stmt)
        session.commit()
    except Exception:
        session.rollback()
        raise
    return result.rowcount or 0
