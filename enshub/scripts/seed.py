"""
Seed a development database with one example of every entity.

Creates missing tables, then inserts a registration, a renewal, a transfer
and a name for ``alice.eth``. Rows that already exist (same transaction hash
and name, or same name for names) are left untouched, so the script can be
run repeatedly.

Usage:
    python -m enshub.scripts.seed
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from enshub.core.logging import get_logger, setup_logging
from enshub.database.connection import close_database, create_schema, get_session
from enshub.database.orm import Base, EnsName, RegistrationEvent, RenewalEvent, TransferEvent


logger = get_logger("scripts.seed")

SAMPLE_NAME = "alice.eth"
SAMPLE_OWNER = "0xabc"


def sample_rows(now: datetime) -> list[Base]:
    """Sample rows dated relative to ``now``."""
    return [
        RegistrationEvent(
            name=SAMPLE_NAME,
            tx_hash="0xreg1",
            block_number=1,
            block_time=now - timedelta(days=1),
            registrant=SAMPLE_OWNER,
            cost_eth=Decimal("0.01"),
            chain_id=1,
        ),
        RenewalEvent(
            name=SAMPLE_NAME,
            tx_hash="0xren1",
            block_number=2,
            block_time=now - timedelta(hours=12),
            payer=SAMPLE_OWNER,
            cost_eth=Decimal("0.005"),
            years=1,
            chain_id=1,
        ),
        TransferEvent(
            name=SAMPLE_NAME,
            tx_hash="0xtrf1",
            block_number=3,
            block_time=now - timedelta(hours=6),
            from_address=SAMPLE_OWNER,
            to_address="0xdef",
            chain_id=1,
        ),
        EnsName(
            name=SAMPLE_NAME,
            label_hash="0xlabelhash",
            registrant=SAMPLE_OWNER,
            controller=SAMPLE_OWNER,
            registration_date=now - timedelta(days=2),
            expiration_date=now + timedelta(days=365),
        ),
    ]


async def _exists(session: AsyncSession, row: Base) -> bool:
    model = type(row)
    stmt = select(model.id).where(model.name == row.name)
    if hasattr(model, "tx_hash"):
        stmt = stmt.where(model.tx_hash == row.tx_hash)
    result = await session.execute(stmt.limit(1))
    return result.scalar_one_or_none() is not None


async def seed(session: AsyncSession, now: datetime | None = None) -> int:
    """Insert the sample rows that are missing. Returns the number inserted."""
    now = now or datetime.now(timezone.utc)
    inserted = 0
    for row in sample_rows(now):
        if await _exists(session, row):
            logger.debug(f"{type(row).__tablename__}: {row.name} already present")
            continue
        session.add(row)
        inserted += 1
    await session.commit()
    return inserted


async def main() -> None:
    setup_logging()
    try:
        await create_schema()
        async with get_session() as session:
            inserted = await seed(session)
        logger.info(f"Seed complete ({inserted} rows inserted)")
    finally:
        await close_database()


if __name__ == "__main__":
    asyncio.run(main())
