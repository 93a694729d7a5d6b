"""Database module: async SQLAlchemy engine, sessions and ORM models."""

from .connection import (
    close_database,
    close_sqlalchemy_engine,
    create_schema,
    db_healthcheck,
    get_async_database_url,
    get_engine,
    get_session,
    get_session_factory,
    init_database,
    init_sqlalchemy_engine,
)
from .orm import (
    Base,
    EnsName,
    RegistrationEvent,
    RenewalEvent,
    TransferEvent,
)


__all__ = [
    "init_sqlalchemy_engine",
    "close_sqlalchemy_engine",
    "get_session",
    "get_session_factory",
    "get_engine",
    "get_async_database_url",
    "init_database",
    "close_database",
    "create_schema",
    "db_healthcheck",
    "Base",
    "RegistrationEvent",
    "RenewalEvent",
    "TransferEvent",
    "EnsName",
]
