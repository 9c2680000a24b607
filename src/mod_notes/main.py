"""
mod-notes Backend Application

FastAPI application entrypoint with async lifespan management.
Handles startup checks (database), builds the search services and
shuts them down gracefully.
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from mod_notes.api.v1.notes import router as notes_router
from mod_notes.core.config import settings
from mod_notes.core.database import AsyncSessionLocal, engine
from mod_notes.core.logging import setup_logging
from mod_notes.services.embeddings import EmbeddingProvider
from mod_notes.services.notes import NoteService
from mod_notes.services.vector_index import VectorIndexService

# Initialize logging before any log statements
setup_logging()
logger = logging.getLogger(__name__)


async def wait_for_db(retries: int = 10, delay: int = 1) -> bool:
    """
    Probe PostgreSQL with ``SELECT 1`` until it answers.

    The database container may come up after the API container, so startup
    retries ``retries`` times with ``delay`` seconds in between.

    Returns:
        False once every attempt has failed.
    """
    probe = create_async_engine(settings.DATABASE_URL)
    try:
        for attempt in range(1, retries + 1):
            try:
                async with probe.connect() as conn:
                    await conn.execute(text("SELECT 1"))
            except Exception as e:
                logger.warning(f"Postgres not ready ({attempt}/{retries}): {e}")
                await asyncio.sleep(delay)
            else:
                logger.info("Postgres connection established")
                return True
        return False
    finally:
        await probe.dispose()


def build_services() -> tuple[EmbeddingProvider, VectorIndexService, NoteService]:
    """Construct the embedding provider, index client and note service from settings."""
    provider = EmbeddingProvider(
        api_key=settings.OPENAI_API_KEY,
        model=settings.OPENAI_EMBEDDING_MODEL,
        timeout=settings.EMBEDDING_TIMEOUT,
    )
    index = VectorIndexService(
        url=settings.QDRANT_URL,
        api_key=settings.QDRANT_API_KEY,
        collection=settings.QDRANT_COLLECTION,
        vector_size=provider.dimension,
        timeout=settings.QDRANT_TIMEOUT,
    )
    service = NoteService(
        provider,
        index,
        session_factory=AsyncSessionLocal,
        escape_regex=settings.SEARCH_ESCAPE_REGEX,
    )
    return provider, index, service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler (FastAPI 0.109+ pattern).

    Startup:
        - Validates database connectivity (required, blocks startup on failure)
        - Initializes the vector index (optional, semantic search disabled on failure)

    Shutdown:
        - Drains pending index mirroring tasks
        - Closes the OpenAI/Qdrant clients and the database engine
    """
    logger.info("Starting mod-notes...")
    logger.info(f"Log Level: {settings.LOG_LEVEL}")

    if not await wait_for_db():
        logger.critical("Could not connect to Postgres. Shutting down.")
        raise RuntimeError("Database connection failed")

    provider, index, service = build_services()
    if not provider.is_configured:
        logger.warning("OpenAI not configured - notes will be stored without embeddings")

    state = await index.initialize()
    logger.info(f"Vector index state: {state.value}")

    app.state.embedding_provider = provider
    app.state.vector_index = index
    app.state.note_service = service

    yield  # Application runs here

    logger.info("Shutting down mod-notes...")
    await service.wait_for_mirrors()
    await provider.close()
    await index.close()
    await engine.dispose()


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

app.include_router(notes_router, prefix="/api/v1/notes", tags=["Notes"])


@app.get("/health")
async def health_check():
    """
    Health check endpoint for load balancers and orchestrators.

    Returns:
        Service status plus the vector index lifecycle state
        (unconfigured, initializing, ready, failed).
    """
    index: VectorIndexService | None = getattr(app.state, "vector_index", None)
    provider: EmbeddingProvider | None = getattr(app.state, "embedding_provider", None)
    return {
        "status": "ok",
        "service": "mod-notes",
        "environment": os.getenv("ENVIRONMENT", "unknown"),
        "db": "connected",
        "vector_index": index.state.value if index else "unconfigured",
        "embeddings": "openai" if provider and provider.is_configured else "synthetic",
    }
