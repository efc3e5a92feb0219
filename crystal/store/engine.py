from __future__ import annotations

import os
from typing import Optional

from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


def create_engine(url: Optional[str] = None, *, echo: bool = False) -> Engine:
    """Create a SQLAlchemy engine.

    Resolution order for URL:
    - explicit ``url`` arg
    - env ``CRYSTAL_DATABASE_URL``
    - env ``DATABASE_URL``
    """
    database_url = url or os.getenv("CRYSTAL_DATABASE_URL") or os.getenv("DATABASE_URL")
    if not database_url:
        raise RuntimeError(
            "No database URL provided. Set CRYSTAL_DATABASE_URL or DATABASE_URL."
        )
    return _sa_create_engine(database_url, echo=echo)


def create_session_factory(engine: Engine):
    """Return a sessionmaker whose objects stay readable after commit."""
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def create_all(engine: Engine) -> None:
    """Create all tables (idempotent)."""
    from . import models  # noqa: F401 - ensure models are imported

    Base.metadata.create_all(engine)
