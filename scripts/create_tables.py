"""
create_tables.py — idempotent table creation script.
Run this before starting the service for the first time, or after schema changes.
Safe to run multiple times (all DDL uses IF NOT EXISTS).

Usage:
    python scripts/create_tables.py
"""

from __future__ import annotations

import asyncio

from mimi.database import create_tables, engine


async def main() -> None:
    """Create all tables."""
    print("Creating tables...")
    await create_tables()
    print("  ✓ All tables created (IF NOT EXISTS)")

    print("\nDone. Run `python scripts/add_eula_version.py --version V1 --url <url>` next.")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
