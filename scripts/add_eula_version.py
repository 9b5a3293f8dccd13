"""
add_eula_version.py — publish a new EULA version.

Every user who has not agreed to the newest version is asked to agree again
on their next message.

Usage:
    python scripts/add_eula_version.py --version V2 --url https://liff.line.me/xxxx
    python scripts/add_eula_version.py --version V3 --url <url> --effective-from 2026-11-01T00:00:00+08:00
"""

from __future__ import annotations

import argparse
import asyncio
from datetime import datetime
from typing import Optional

from mimi.database import AsyncSessionLocal, as_utc, create_tables, engine
from mimi.services.eula import create_eula_version, get_latest_eula


def _parse_timestamp(value: str) -> datetime:
    return as_utc(datetime.fromisoformat(value))


async def main(version: str, url: str, effective_from: Optional[datetime]) -> None:
    await create_tables()

    async with AsyncSessionLocal() as session:
        new_id = await create_eula_version(session, version, url, effective_from=effective_from)
        latest = await get_latest_eula(session)

    print(f"  ✓ EULA {version} stored (id={new_id})")
    if latest is not None and latest.id != new_id:
        print(f"  ! Latest EULA is still {latest.version} (id={latest.id}) — check effective_from")

    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Publish a new EULA version.")
    parser.add_argument("--version", required=True, help="Version label, e.g. V2")
    parser.add_argument("--url", required=True, help="URL of the agreement page (LIFF link)")
    parser.add_argument(
        "--effective-from",
        type=_parse_timestamp,
        default=None,
        help="ISO-8601 timestamp; defaults to the creation time",
    )
    args = parser.parse_args()
    asyncio.run(main(args.version, args.url, args.effective_from))
