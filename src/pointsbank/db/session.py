# pointsbank/db/session.py
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from pointsbank import config

DATABASE_URL = config.DATABASE_URL

# Async engine
engine = create_async_engine(DATABASE_URL, echo=config.SQL_ECHO, future=True)

# Async session factory
AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False, autocommit=False
)

Base = declarative_base()


async def init_db(bind=None) -> None:
    """Create missing tables (idempotent). There are no migrations."""
    # models must be imported so their tables are registered on Base.metadata
    from pointsbank.db import models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
