"""
ReciHub Backend — Application Wiring
=====================================

What:  Logging setup and the lifespan context that assembles the engine,
       session factory, repository and service.
How:   `lifespan()` is an async context manager: code before `yield` runs on
       startup, code after it on shutdown.
Who:   Used by the process that hosts the service layer, and by tests.

Lifecycle:
    Startup:
    1. Configure logging
    2. Create the engine and session factory
    3. Create tables when settings.db_create_tables is set
    4. Yield a RecipeHub with repository and service

    Shutdown:
    1. Dispose the engine (close all pooled connections)

Example:
    async with lifespan() as hub:
        recipe = await hub.service.create_recipe(Recipe(name="Soup", username="alice"))
"""

import logging
import sys
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from recihub.config import settings
from recihub.database import create_engine, create_session_factory, create_tables, dispose_engine
from recihub.repositories.recipe_repository import RecipeRepository
from recihub.services.recipe_service import RecipeService

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    """
    Configure logging for the whole application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s, on stdout,
    at settings.log_level.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # SQL echo is controlled by create_engine(echo=...) instead
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


@dataclass
class RecipeHub:
    """Everything a host process needs to serve recipe requests."""

    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    repository: RecipeRepository
    service: RecipeService


@asynccontextmanager
async def lifespan(
    database_url: Optional[str] = None,
    create_schema: Optional[bool] = None,
    configure_logging: bool = True,
) -> AsyncGenerator[RecipeHub, None]:
    """
    Build the application graph for the duration of the context.

    Args:
        database_url:      Overrides settings.database_url.
        create_schema:     Overrides settings.db_create_tables.
        configure_logging: Call setup_logging() on entry.
    """
    if configure_logging:
        setup_logging()
    logger.info("ReciHub backend starting up...")

    engine = create_engine(database_url)
    try:
        if settings.db_create_tables if create_schema is None else create_schema:
            await create_tables(engine)

        session_factory = create_session_factory(engine)
        repository = RecipeRepository(session_factory)
        hub = RecipeHub(
            engine=engine,
            session_factory=session_factory,
            repository=repository,
            service=RecipeService(repository),
        )
        logger.info("ReciHub backend ready")

        yield hub
    finally:
        logger.info("ReciHub backend shutting down...")
        await dispose_engine(engine)
        logger.info("Shutdown complete.")
