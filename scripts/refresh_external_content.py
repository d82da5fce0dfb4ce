"""
External Content Refresh Script

Runs one aggregate Bluesky ingestion pass outside the web process, e.g.
from cron, and prints the diagnostics.

Usage:
    python scripts/refresh_external_content.py [--no-threads] [handle ...]

Handles default to BLUESKY_HANDLES from the environment.
"""

import argparse
import asyncio
import json
import os
import sys

# Make the aisle package importable when run from a checkout
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from aisle.database import engine, AsyncSessionLocal
from aisle.models import Base
from aisle.services.ingestion import refresh_external_content


async def refresh(handles: list[str] | None, fetch_threads: bool):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        report = await refresh_external_content(
            session,
            handles=handles or None,
            fetch_threads=fetch_threads,
        )

    print(f"Imported {report['imported']} posts")
    print(json.dumps(report["diagnostics"], indent=2))
    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Import civic content from Bluesky")
    parser.add_argument("handles", nargs="*", help="Handles to fetch instead of the configured list")
    parser.add_argument("--no-threads", action="store_true", help="Skip fetching thread context")
    args = parser.parse_args()

    asyncio.run(refresh(args.handles, fetch_threads=not args.no_threads))
