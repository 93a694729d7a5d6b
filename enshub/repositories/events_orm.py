"""Event store queries using SQLAlchemy ORM.

Every list query returns one page plus the total number of matching rows.
The page and count statements are built from one shared predicate list, so
they cannot filter differently.

Usage:
    from enshub.repositories.events_orm import list_registrations

    page = await list_registrations(session, EventQuery(limit=20))
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

from sqlalchemy import ColumnElement, func, or_, select
from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from enshub.core.exceptions import StoreUnavailable
from enshub.core.logging import get_logger
from enshub.database.orm import (
    Base,
    EnsName,
    RegistrationEvent,
    RenewalEvent,
    TransferEvent,
)
from enshub.domain.events import (
    NameRecord,
    RegistrationRecord,
    RenewalRecord,
    Snapshot,
    TransferRecord,
)
from enshub.schemas.queries import EventQuery, NameQuery, PageQuery


logger = get_logger("repositories.events_orm")

T = TypeVar("T", bound=Snapshot)

SNAPSHOTS: dict[type[Base], type[Snapshot]] = {
    RegistrationEvent: RegistrationRecord,
    RenewalEvent: RenewalRecord,
    TransferEvent: TransferRecord,
    EnsName: NameRecord,
}

STORE_ERRORS = (
    OperationalError,
    InterfaceError,
    DisconnectionError,
    PoolTimeoutError,
    OSError,
)


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of snapshots and the total count behind it."""

    items: list[T]
    total: int
    limit: int
    offset: int


@asynccontextmanager
async def store_errors(operation: str) -> AsyncIterator[None]:
    """Surface connectivity failures as StoreUnavailable. No retries."""
    try:
        yield
    except STORE_ERRORS as e:
        logger.error(f"Event store unavailable during {operation}: {e}")
        raise StoreUnavailable() from e


def canonical_time(model: type[Base]) -> InstrumentedAttribute:
    """Column used for default ordering and time-range filtering."""
    return getattr(model, model.__canonical_time__)


def build_filters(model: type[Base], query: PageQuery) -> list[ColumnElement[bool]]:
    """Translate validated parameters into WHERE clauses for ``model``."""
    clauses: list[ColumnElement[bool]] = []
    time_column = canonical_time(model)

    lower = getattr(query, "from_", None)
    upper = getattr(query, "to", None)
    if lower is not None:
        clauses.append(time_column >= lower)
    if upper is not None:
        clauses.append(time_column <= upper)

    chain_id = getattr(query, "chain_id", None)
    if chain_id is not None and hasattr(model, "chain_id"):
        clauses.append(model.chain_id == chain_id)

    search = getattr(query, "search", None)
    if search:
        clauses.append(
            or_(
                model.name.icontains(search, autoescape=True),
                func.lower(model.registrant) == search.lower(),
            )
        )

    return clauses


def _snapshot(model: type[Base], rows: Sequence[Base]) -> list[Snapshot]:
    snapshot_cls = SNAPSHOTS[model]
    return [snapshot_cls.model_validate(row) for row in rows]


async def fetch_rows(
    session: AsyncSession,
    model: type[Base],
    query: PageQuery,
) -> list[Snapshot]:
    """Fetch matching rows, newest first, honouring limit and offset."""
    time_column = canonical_time(model)
    stmt = (
        select(model)
        .where(*build_filters(model, query))
        .order_by(time_column.desc(), model.id.desc())
        .offset(query.offset)
        .limit(query.limit)
    )
    async with store_errors(f"{model.__tablename__} fetch"):
        result = await session.execute(stmt)
        rows = result.scalars().all()
    return _snapshot(model, rows)


async def count_rows(
    session: AsyncSession,
    model: type[Base],
    query: PageQuery,
) -> int:
    """Count every row matching the filters, ignoring pagination."""
    stmt = select(func.count()).select_from(model).where(*build_filters(model, query))
    async with store_errors(f"{model.__tablename__} count"):
        result = await session.execute(stmt)
        return int(result.scalar_one())


async def fetch_page(
    session: AsyncSession,
    model: type[Base],
    query: PageQuery,
) -> Page:
    """Fetch one page of ``model`` rows plus the total matching count."""
    items = await fetch_rows(session, model, query)
    total = await count_rows(session, model, query)
    logger.debug(
        f"{model.__tablename__}: {len(items)} of {total} rows "
        f"(limit={query.limit}, offset={query.offset})"
    )
    return Page(items=items, total=total, limit=query.limit, offset=query.offset)


async def list_registrations(session: AsyncSession, query: EventQuery) -> Page[RegistrationRecord]:
    return await fetch_page(session, RegistrationEvent, query)


async def list_renewals(session: AsyncSession, query: EventQuery) -> Page[RenewalRecord]:
    return await fetch_page(session, RenewalEvent, query)


async def list_transfers(session: AsyncSession, query: EventQuery) -> Page[TransferRecord]:
    return await fetch_page(session, TransferEvent, query)


async def list_names(session: AsyncSession, query: NameQuery) -> Page[NameRecord]:
    return await fetch_page(session, EnsName, query)


async def recent_registrations(
    session: AsyncSession,
    query: EventQuery,
) -> list[RegistrationRecord]:
    """Most recent registrations matching the filters (analytics sample)."""
    return await fetch_rows(session, RegistrationEvent, query)


async def recent_renewals(
    session: AsyncSession,
    query: EventQuery,
) -> list[RenewalRecord]:
    """Most recent renewals matching the filters (analytics sample)."""
    return await fetch_rows(session, RenewalEvent, query)
