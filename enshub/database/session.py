"""Database session dependency injection for FastAPI routes.

Each request gets its own read session. Routes only read from the event
store, so nothing is committed; the session is closed when the request ends.

Long-lived handlers (the WebSocket feed) open a short session per round trip
through ``SessionScope`` instead of holding one for the whole connection.

Usage in routes:
    from enshub.database.session import DbSession

    @router.get("/names")
    async def list_names(db: DbSession):
        ...
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from contextlib import AbstractAsyncContextManager
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from enshub.database.connection import get_session, get_session_factory


SessionOpener = Callable[[], AbstractAsyncContextManager[AsyncSession]]


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped database session."""
    session_factory = await get_session_factory()

    async with session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


def get_session_scope() -> SessionOpener:
    """Opener for sessions that live shorter than the connection using them."""
    return get_session


# Type alias for dependency injection - use this in route signatures
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
SessionScope = Annotated[SessionOpener, Depends(get_session_scope)]
