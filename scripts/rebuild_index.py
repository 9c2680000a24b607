#!/usr/bin/env python3
"""
Rebuild Vector Index Script

Re-populates the Qdrant collection from the notes table, the source of
truth. Use after the index was lost, wiped or left stale by failed
background mirroring.

Usage:
    Requires PostgreSQL and Qdrant reachable with the app's env vars:
    $ python scripts/rebuild_index.py
"""

import asyncio
import logging
import sys

from mod_notes.core.database import AsyncSessionLocal, engine
from mod_notes.core.exceptions import ServiceUnavailableError
from mod_notes.core.logging import setup_logging
from mod_notes.main import build_services

logger = logging.getLogger("mod_notes.scripts.rebuild_index")


async def main() -> int:
    """Rebuild the index; returns the process exit code."""
    setup_logging()
    provider, index, service = build_services()

    try:
        state = await index.initialize()
        logger.info("Vector index state: %s", state.value)

        async with AsyncSessionLocal() as session:
            try:
                count = await service.reindex_notes(session)
            except ServiceUnavailableError as e:
                logger.error("Cannot rebuild index: %s", e)
                return 1

        logger.info("Rebuilt index with %d notes", count)
        return 0
    finally:
        await provider.close()
        await index.close()
        await engine.dispose()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
