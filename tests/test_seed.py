"""Tests for the development seed script."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select

from conftest import utc
from enshub.database.orm import EnsName, RegistrationEvent, RenewalEvent, TransferEvent
from enshub.scripts.seed import SAMPLE_NAME, seed


class TestSeed:
    """Seeding is complete and idempotent."""

    @pytest.mark.asyncio
    async def test_inserts_one_of_each(self, session_factory):
        async with session_factory() as session:
            inserted = await seed(session, now=utc(2024, 5, 1))

        assert inserted == 4
        async with session_factory() as session:
            for model in (RegistrationEvent, RenewalEvent, TransferEvent, EnsName):
                count = await session.scalar(select(func.count()).select_from(model))
                assert count == 1

    @pytest.mark.asyncio
    async def test_second_run_inserts_nothing(self, session_factory):
        async with session_factory() as session:
            await seed(session)
        async with session_factory() as session:
            assert await seed(session) == 0

    @pytest.mark.asyncio
    async def test_dates_relative_to_now(self, session_factory):
        async with session_factory() as session:
            await seed(session, now=utc(2024, 5, 1))
            name = await session.scalar(select(EnsName).where(EnsName.name == SAMPLE_NAME))

        assert name.registration_date == utc(2024, 4, 29)
        assert name.expiration_date == utc(2025, 5, 1)
