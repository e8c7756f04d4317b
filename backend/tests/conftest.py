"""
ReciHub Backend — Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session:       AsyncMock standing in for an AsyncSession
    ├── mock_session_factory:  async_sessionmaker look-alike yielding mock_db_session
    ├── engine:                in-memory SQLite engine with the schema created
    ├── session_factory:       real async_sessionmaker bound to `engine`
    ├── repository:            RecipeRepository over `session_factory`
    └── soup:                  unsaved Recipe value used by many tests
"""

import os

# Override settings for testing BEFORE any recihub imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LOG_LEVEL"] = "WARNING"

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.pool import StaticPool

from recihub.database import create_engine, create_session_factory, create_tables, dispose_engine
from recihub.repositories.recipe_repository import RecipeRepository
from recihub.schemas.recipe import Ingredient, Recipe, Step


def make_session_factory(session):
    """Callable returning an async context manager that yields `session`."""
    factory = MagicMock()
    factory.return_value.__aenter__ = AsyncMock(return_value=session)
    factory.return_value.__aexit__ = AsyncMock(return_value=False)
    return factory


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        async def test_commit(mock_db_session, mock_session_factory):
            await run_in_transaction(mock_session_factory, work)
            mock_db_session.commit.assert_awaited_once()
    """
    session = AsyncMock()
    session.begin = AsyncMock()
    session.connection = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    session.add_all = MagicMock()
    return session


@pytest.fixture
def mock_session_factory(mock_db_session):
    return make_session_factory(mock_db_session)


@pytest_asyncio.fixture
async def engine():
    """
    In-memory SQLite engine with foreign keys on and the schema created.

    StaticPool keeps the single in-memory database alive across sessions.
    """
    engine = create_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    await create_tables(engine)
    yield engine
    await dispose_engine(engine)


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def repository(session_factory):
    return RecipeRepository(session_factory)


@pytest.fixture
def soup():
    """Concrete scenario: a one-ingredient, two-step recipe owned by alice."""
    return Recipe(
        name="Soup",
        username="alice",
        ingredients=[Ingredient(name="Salt", amount="1", unit="tsp")],
        steps=[
            Step(step_number=1, description="Boil"),
            Step(step_number=2, description="Stir"),
        ],
    )
