from pathlib import Path

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import AsyncAdaptedQueuePool

Base = declarative_base()


def build_engine(db_path: Path) -> AsyncEngine:
    """
    Create the async SQLite engine for a database file.

    The pool holds exactly one connection, so every operation against the
    file waits for the previous one to hand the connection back.
    """
    return create_async_engine(
        f"sqlite+aiosqlite:///{db_path}",
        echo=False,
        future=True,
        poolclass=AsyncAdaptedQueuePool,
        pool_size=1,
        max_overflow=0,
    )


def build_session_factory(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False
    )
