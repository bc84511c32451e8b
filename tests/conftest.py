"""
Pytest configuration and shared fixtures for the conversation analytics tests.
"""

from typing import AsyncGenerator
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

import api.shared.entities.registry  # noqa: F401
from api.shared.entities.base import BaseEntity


@pytest.fixture
def logger() -> MagicMock:
    """structlog-shaped mock; ``bind`` returns the same mock so calls can be asserted."""
    log = MagicMock()
    log.bind.return_value = log
    return log


@pytest.fixture
def database_url(tmp_path) -> str:
    """URL of a throwaway SQLite database file."""
    return f"sqlite+aiosqlite:///{tmp_path / 'analytics.db'}"


@pytest_asyncio.fixture
async def engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Engine with every table created."""
    engine = create_async_engine(database_url)
    async with engine.begin() as conn:
        await conn.run_sync(BaseEntity.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Session configured like the application's session factory."""
    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def answer_with_references() -> str:
    """Assistant answer ending with a two-line reference block."""
    return (
        "You can install the agent with the package manager.\n"
        "\n"
        "> [1]. [Install guide](https://docs.example.com/install)\n"
        "> [2]. [FAQ](https://docs.example.com/faq)\n"
    )
