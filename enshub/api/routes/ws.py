"""WebSocket feed of recent registrations."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from enshub.core.client_identity import get_client_ip
from enshub.core.exceptions import AdmissionRejected, AppException
from enshub.core.governance import API_KEY_HEADER, AccessGovernor
from enshub.core.logging import get_logger
from enshub.database.session import SessionOpener, SessionScope
from enshub.repositories import events_orm
from enshub.schemas.queries import EventQuery


logger = get_logger("api.routes.ws")

router = APIRouter(tags=["websocket"])

DEFAULT_CHANNEL = "registrations"
FEED_SIZE = 5

# Application close codes (4000-4999) mirroring the HTTP rejections
CLOSE_UNAUTHORIZED = 4401
CLOSE_RATE_LIMITED = 4429


def handle_message(raw: str) -> Optional[dict[str, Any]]:
    """Reply for one client message, or None when nothing should be sent."""
    try:
        message = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Ignoring malformed WebSocket message")
        return None
    if not isinstance(message, dict):
        logger.warning("Ignoring non-object WebSocket message")
        return None

    if message.get("type") == "subscribe":
        channel = message.get("channel") or DEFAULT_CHANNEL
        logger.debug(f"Client subscribed to {channel}")
        return {"type": "subscribed", "channel": channel}
    return None


async def recent_feed(open_session: SessionOpener) -> dict[str, Any]:
    """Build one update frame with the most recent registrations."""
    async with open_session() as session:
        records = await events_orm.recent_registrations(session, EventQuery(limit=FEED_SIZE))
    return {
        "type": "update",
        "data": {"recentRegistrations": [record.to_row() for record in records]},
    }


async def push_updates(websocket: WebSocket, open_session: SessionOpener, interval: float) -> None:
    """Send an update frame every ``interval`` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        try:
            frame = await recent_feed(open_session)
        except AppException as e:
            logger.warning(f"Skipping feed update: {e.message}")
            continue
        await websocket.send_json(frame)


@router.websocket("/ws")
async def registration_feed(websocket: WebSocket, open_session: SessionScope):
    """
    Live feed of recent registrations.

    Clients may send ``{"type": "subscribe", "channel": ...}`` and receive a
    ``subscribed`` acknowledgement. Every configured interval the server
    pushes ``{"type": "update", "data": {"recentRegistrations": [...]}}``.
    The connection is admitted by the same rate limit and key gate as HTTP.
    """
    governor: AccessGovernor = websocket.app.state.governor
    config = websocket.app.state.settings

    identity = get_client_ip(websocket, config.trust_proxy_headers)
    try:
        governor.admit(identity, websocket.headers.get(API_KEY_HEADER))
    except AppException as e:
        code = CLOSE_RATE_LIMITED if isinstance(e, AdmissionRejected) else CLOSE_UNAUTHORIZED
        await websocket.close(code=code, reason=e.error)
        return

    await websocket.accept()
    logger.debug(f"Feed client connected: {identity}")

    updates = asyncio.create_task(
        push_updates(websocket, open_session, config.ws_update_interval_seconds)
    )
    try:
        while True:
            reply = handle_message(await websocket.receive_text())
            if reply is not None:
                await websocket.send_json(reply)
    except WebSocketDisconnect:
        logger.debug(f"Feed client disconnected: {identity}")
    finally:
        updates.cancel()
        await asyncio.gather(updates, return_exceptions=True)
