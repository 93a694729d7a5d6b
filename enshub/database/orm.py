"""SQLAlchemy ORM models for the ENS event store.

This module defines all database tables using SQLAlchemy 2.0 ORM style.
Uses async support via asyncpg driver.

Rows are written by the upstream indexer; this service only reads them.
Each model names its canonical time column in ``__canonical_time__``, which
drives default ordering and ``from``/``to`` range filtering.

Usage:
    from enshub.database.orm import RegistrationEvent
    from enshub.database.connection import get_session

    async with get_session() as session:
        result = await session.execute(select(RegistrationEvent).limit(5))
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import ClassVar

from sqlalchemy import (
    BigInteger,
    DateTime,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    func,
)
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator, TypeEngine


# Naming convention for constraints and indexes (deterministic names for migrations)
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Wei has 18 decimal places
ETH_PRECISION = 38
ETH_SCALE = 18


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class UTCDateTime(TypeDecorator):
    """Timezone-aware timestamp, always UTC on the way in and out.

    Naive values are taken to be UTC. Backends without timezone support
    (SQLite) hand back naive values, which get UTC attached.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: datetime | None, dialect: Dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class EthAmount(TypeDecorator):
    """Arbitrary-precision ETH amount.

    NUMERIC(38, 18) where the backend has exact decimals. SQLite only has
    binary floats, so there the amount is kept as its decimal string.
    """

    impl = Numeric(ETH_PRECISION, ETH_SCALE, asdecimal=True)
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect) -> TypeEngine:
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(80))
        return dialect.type_descriptor(Numeric(ETH_PRECISION, ETH_SCALE, asdecimal=True))

    def process_bind_param(self, value, dialect: Dialect):
        if value is None:
            return None
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
        if dialect.name == "sqlite":
            return str(amount)
        return amount

    def process_result_value(self, value, dialect: Dialect):
        if value is None:
            return None
        return value if isinstance(value, Decimal) else Decimal(str(value))


class Base(DeclarativeBase):
    """Base class for all ORM models with naming convention."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


# =============================================================================
# LIFECYCLE EVENTS
# =============================================================================


class RegistrationEvent(Base):
    """A name registration observed on chain."""
    __tablename__ = "registration_events"
    __canonical_time__: ClassVar[str] = "block_time"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    tx_hash: Mapped[str] = mapped_column(String(80), nullable=False)
    block_number: Mapped[int] = mapped_column(BigInteger, nullable=False)
    block_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    registrant: Mapped[str] = mapped_column(String(64), nullable=False)
    cost_eth: Mapped[Decimal] = mapped_column(EthAmount, nullable=False)
    chain_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=_utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("idx_registration_events_block_time", "block_time"),
        Index("idx_registration_events_chain_time", "chain_id", "block_time"),
        Index("idx_registration_events_registrant", "registrant"),
        Index("idx_registration_events_tx_name", "tx_hash", "name", unique=True),
    )


class RenewalEvent(Base):
    """A name renewal paid on chain."""
    __tablename__ = "renewal_events"
    __canonical_time__: ClassVar[str] = "block_time"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    tx_hash: Mapped[str] = mapped_column(String(80), nullable=False)
    block_number: Mapped[int] = mapped_column(BigInteger, nullable=False)
    block_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    payer: Mapped[str] = mapped_column(String(64), nullable=False)
    cost_eth: Mapped[Decimal] = mapped_column(EthAmount, nullable=False)
    years: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    chain_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=_utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("idx_renewal_events_block_time", "block_time"),
        Index("idx_renewal_events_chain_time", "chain_id", "block_time"),
        Index("idx_renewal_events_tx_name", "tx_hash", "name", unique=True),
    )


class TransferEvent(Base):
    """A name ownership transfer."""
    __tablename__ = "transfer_events"
    __canonical_time__: ClassVar[str] = "block_time"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    tx_hash: Mapped[str] = mapped_column(String(80), nullable=False)
    block_number: Mapped[int] = mapped_column(BigInteger, nullable=False)
    block_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    from_address: Mapped[str] = mapped_column(String(64), nullable=False)
    to_address: Mapped[str] = mapped_column(String(64), nullable=False)
    chain_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=_utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("idx_transfer_events_block_time", "block_time"),
        Index("idx_transfer_events_chain_time", "chain_id", "block_time"),
        Index("idx_transfer_events_tx_name", "tx_hash", "name", unique=True),
    )


# =============================================================================
# NAMES
# =============================================================================


class EnsName(Base):
    """Current state of a registered name."""
    __tablename__ = "ens_names"
    __canonical_time__: ClassVar[str] = "registration_date"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    label_hash: Mapped[str] = mapped_column(String(80), nullable=False)
    registrant: Mapped[str] = mapped_column(String(64), nullable=False)
    controller: Mapped[str | None] = mapped_column(String(64))
    registration_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    expiration_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=_utcnow, server_default=func.now(), onupdate=_utcnow
    )

    __table_args__ = (
        Index("idx_ens_names_registration_date", "registration_date"),
        Index("idx_ens_names_registrant", "registrant"),
    )
