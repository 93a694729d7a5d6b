"""Pytest configuration and fixtures."""

from __future__ import annotations

import itertools
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import AsyncGenerator, Callable

import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from enshub.api.app import create_api_app
from enshub.core.config import Settings
from enshub.core.governance import AccessGovernor
from enshub.database.connection import create_schema
from enshub.database.orm import Base, EnsName, RegistrationEvent, RenewalEvent, TransferEvent
from enshub.database.session import get_db_session, get_session_scope


TEST_DATABASE_URL = "sqlite+aiosqlite://"

_tx_counter = itertools.count(1)


def utc(*args: int) -> datetime:
    """Shorthand for a UTC datetime."""
    return datetime(*args, tzinfo=timezone.utc)


def make_settings(**overrides) -> Settings:
    """Settings for tests: open access and no rate limit unless overridden."""
    values = {
        "database_url": TEST_DATABASE_URL,
        "cors_allowlist": ["*"],
        "api_keys": set(),
        "rate_limit_enabled": False,
        "log_format": "text",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


# ============================================================================
# Row builders
# ============================================================================


def make_registration(**overrides) -> RegistrationEvent:
    n = next(_tx_counter)
    values = {
        "name": f"name{n}.eth",
        "tx_hash": f"0xreg{n}",
        "block_number": n,
        "block_time": utc(2024, 1, 1, 12),
        "registrant": "0xabc",
        "cost_eth": Decimal("0.01"),
        "chain_id": 1,
    }
    values.update(overrides)
    return RegistrationEvent(**values)


def make_renewal(**overrides) -> RenewalEvent:
    n = next(_tx_counter)
    values = {
        "name": f"name{n}.eth",
        "tx_hash": f"0xren{n}",
        "block_number": n,
        "block_time": utc(2024, 1, 1, 12),
        "payer": "0xabc",
        "cost_eth": Decimal("0.005"),
        "years": 1,
        "chain_id": 1,
    }
    values.update(overrides)
    return RenewalEvent(**values)


def make_transfer(**overrides) -> TransferEvent:
    n = next(_tx_counter)
    values = {
        "name": f"name{n}.eth",
        "tx_hash": f"0xtrf{n}",
        "block_number": n,
        "block_time": utc(2024, 1, 1, 12),
        "from_address": "0xabc",
        "to_address": "0xdef",
        "chain_id": 1,
    }
    values.update(overrides)
    return TransferEvent(**values)


def make_name(**overrides) -> EnsName:
    n = next(_tx_counter)
    values = {
        "name": f"name{n}.eth",
        "label_hash": f"0xlabel{n}",
        "registrant": "0xabc",
        "controller": "0xabc",
        "registration_date": utc(2024, 1, 1),
        "expiration_date": utc(2025, 1, 1),
    }
    values.update(overrides)
    return EnsName(**values)


# ============================================================================
# Database fixtures
# ============================================================================


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine shared by every session of one test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def add_rows(session_factory) -> Callable:
    """Insert ORM rows and commit."""

    async def _add(*rows: Base) -> None:
        async with session_factory() as session:
            session.add_all(rows)
            await session.commit()

    return _add


# ============================================================================
# Application fixtures
# ============================================================================


def bind_database(app: FastAPI, session_factory: async_sessionmaker[AsyncSession]) -> FastAPI:
    """Route the app's sessions to the test database."""

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    @asynccontextmanager
    async def open_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_session_scope] = lambda: open_session
    return app


@pytest_asyncio.fixture
async def make_app(session_factory) -> Callable[..., FastAPI]:
    """Factory for apps with custom settings or governor, bound to the test database."""

    def _make(config: Settings | None = None, governor: AccessGovernor | None = None) -> FastAPI:
        return bind_database(create_api_app(config or make_settings(), governor), session_factory)

    return _make


@pytest_asyncio.fixture
async def app(make_app) -> FastAPI:
    return make_app()


@asynccontextmanager
async def client_for(app: FastAPI, **kwargs) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test", **kwargs) as ac:
        yield ac


@pytest_asyncio.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async test client for the default (open) app."""
    async with client_for(app) as ac:
        yield ac
