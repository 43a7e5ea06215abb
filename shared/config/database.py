import os

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm.exc import StaleDataError

from shared.errors import Conflict
from shared.observability.metrics import ecomm_conflicts_total
from .settings import SQL_ECHO

logger = structlog.get_logger(__name__)

DB_USER = os.getenv("POSTGRES_USER", "postgres")
DB_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
DB_HOST = os.getenv("POSTGRES_HOST", "localhost") # In Docker, this will be 'postgres'
DB_PORT = os.getenv("POSTGRES_PORT", "5433")
DB_NAME = os.getenv("POSTGRES_DB", "marketplace")

# DATABASE_URL wins so tests and local runs can point at sqlite+aiosqlite
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+asyncpg://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)

engine = create_async_engine(DATABASE_URL, echo=SQL_ECHO)

AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)

Base = declarative_base()


async def get_db():
    async with AsyncSessionLocal() as session:
        yield session


async def commit_or_conflict(db: AsyncSession, operation: str) -> None:
    """
    Commit the unit of work. A version mismatch on any versioned row means
    another request won the race: the whole transaction is rolled back,
    stock effects included, and the caller gets a Conflict.
    """
    try:
        await db.commit()
    except StaleDataError:
        await db.rollback()
        logger.warning("commit_conflict", operation=operation)
        ecomm_conflicts_total.labels(operation=operation).inc()
        raise Conflict(f"The record changed while {operation} was in progress; reload and retry")
