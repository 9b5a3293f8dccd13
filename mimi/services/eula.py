"""
Consent ledger — which user agreed to which EULA version.

The latest version is the row with the greatest
(COALESCE(effective_from, created_at), id). When no version is configured,
no consent is required.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from mimi.database import UTCDateTime, as_utc

logger = logging.getLogger(__name__)

DEFAULT_CONSENT_CHANNEL = "liff"

_SELECT_LATEST = text("""
    SELECT id, version, url
    FROM eula_versions
    ORDER BY COALESCE(effective_from, created_at) DESC, id DESC
    LIMIT 1
""")

_SELECT_CONSENT = text("""
    SELECT id
    FROM eula_consents
    WHERE user_id = :user_id
      AND eula_version_id = :eula_version_id
    LIMIT 1
""")

_INSERT_CONSENT = text("""
    INSERT INTO eula_consents
        (user_id, eula_version_id, accepted_at, channel, ip_address, user_agent)
    VALUES
        (:user_id, :eula_version_id, :accepted_at, :channel, :ip_address, :user_agent)
""").bindparams(bindparam("accepted_at", type_=UTCDateTime))

_INSERT_VERSION = text("""
    INSERT INTO eula_versions (version, url, effective_from, created_at)
    VALUES (:version, :url, :effective_from, :created_at)
""").bindparams(
    bindparam("effective_from", type_=UTCDateTime),
    bindparam("created_at", type_=UTCDateTime),
)

_SELECT_VERSION_ID = text("""
    SELECT id FROM eula_versions
    WHERE version = :version AND url = :url
    ORDER BY id DESC
    LIMIT 1
""")


@dataclass(frozen=True)
class EulaVersion:
    id: int
    version: str
    url: str


@dataclass(frozen=True)
class ConsentStatus:
    """agreed is True when no EULA is configured (latest is None)."""

    agreed: bool
    latest: Optional[EulaVersion]


@dataclass(frozen=True)
class ConsentRecordResult:
    already_recorded: bool


async def get_latest_eula(db: AsyncSession) -> Optional[EulaVersion]:
    """Return the latest EULA version, or None when none is configured."""
    result = await db.execute(_SELECT_LATEST)
    row = result.fetchone()
    if not row:
        return None
    return EulaVersion(id=int(row.id), version=row.version, url=row.url)


async def _has_consent(db: AsyncSession, user_id: int, eula_version_id: int) -> bool:
    result = await db.execute(
        _SELECT_CONSENT, {"user_id": user_id, "eula_version_id": eula_version_id}
    )
    return result.fetchone() is not None


async def has_agreed_latest(db: AsyncSession, user_id: int) -> ConsentStatus:
    """Check whether `user_id` has agreed to the latest EULA version."""
    latest = await get_latest_eula(db)
    if latest is None:
        return ConsentStatus(agreed=True, latest=None)
    return ConsentStatus(
        agreed=await _has_consent(db, user_id, latest.id),
        latest=latest,
    )


async def record_consent(
    db: AsyncSession,
    user_id: int,
    eula_version_id: int,
    accepted_at: Optional[datetime] = None,
    channel: str = DEFAULT_CONSENT_CHANNEL,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> ConsentRecordResult:
    """
    Record that `user_id` agreed to `eula_version_id`, unless already recorded.

    Lookup-then-insert: calling twice never errors and writes one row. Two
    concurrent calls may both insert; duplicate rows are tolerated.
    """
    if await _has_consent(db, user_id, eula_version_id):
        return ConsentRecordResult(already_recorded=True)

    accepted_at = as_utc(accepted_at) or datetime.now(timezone.utc)

    await db.execute(
        _INSERT_CONSENT,
        {
            "user_id": user_id,
            "eula_version_id": eula_version_id,
            "accepted_at": accepted_at,
            "channel": channel,
            "ip_address": ip_address,
            "user_agent": user_agent,
        },
    )
    await db.commit()
    logger.info("Recorded consent: user=%s eula_version=%s", user_id, eula_version_id)
    return ConsentRecordResult(already_recorded=False)


async def create_eula_version(
    db: AsyncSession,
    version: str,
    url: str,
    effective_from: Optional[datetime] = None,
    created_at: Optional[datetime] = None,
) -> int:
    """Publish a new EULA version (administrative action). Returns its id."""
    await db.execute(
        _INSERT_VERSION,
        {
            "version": version,
            "url": url,
            "effective_from": as_utc(effective_from),
            "created_at": as_utc(created_at) or datetime.now(timezone.utc),
        },
    )
    await db.commit()
    result = await db.execute(_SELECT_VERSION_ID, {"version": version, "url": url})
    return int(result.scalar_one())
