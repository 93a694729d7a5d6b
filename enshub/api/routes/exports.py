"""CSV export routes.

Exports take the same filters and pagination as the list routes. The page is
fetched first; the encoder then streams it line by line, so a store failure
surfaces as a normal 503 before any bytes are written.
"""

from __future__ import annotations

from collections.abc import Sequence

from fastapi import APIRouter
from starlette.responses import StreamingResponse

from enshub.api.dependencies import EventParams, NameParams
from enshub.core.logging import get_logger
from enshub.database.session import DbSession
from enshub.domain.events import Snapshot
from enshub.repositories import events_orm
from enshub.services.export import CSV_MEDIA_TYPE, content_disposition, iter_csv


router = APIRouter(prefix="/export")

logger = get_logger("api.routes.exports")

_CSV_RESPONSE = {200: {"content": {"text/csv": {}}, "description": "CSV file"}}


def csv_response(entity: str, records: Sequence[Snapshot]) -> StreamingResponse:
    """Stream ``records`` as an attachment named ``<entity>.csv``."""
    logger.info(f"Exporting {len(records)} {entity}")
    return StreamingResponse(
        iter_csv(record.to_row() for record in records),
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": content_disposition(entity)},
    )


@router.get(
    "/registrations.csv",
    response_class=StreamingResponse,
    responses=_CSV_RESPONSE,
    summary="Export registrations as CSV",
)
async def export_registrations(db: DbSession, query: EventParams) -> StreamingResponse:
    page = await events_orm.list_registrations(db, query)
    return csv_response("registrations", page.items)


@router.get(
    "/renewals.csv",
    response_class=StreamingResponse,
    responses=_CSV_RESPONSE,
    summary="Export renewals as CSV",
)
async def export_renewals(db: DbSession, query: EventParams) -> StreamingResponse:
    page = await events_orm.list_renewals(db, query)
    return csv_response("renewals", page.items)


@router.get(
    "/transfers.csv",
    response_class=StreamingResponse,
    responses=_CSV_RESPONSE,
    summary="Export transfers as CSV",
)
async def export_transfers(db: DbSession, query: EventParams) -> StreamingResponse:
    page = await events_orm.list_transfers(db, query)
    return csv_response("transfers", page.items)


@router.get(
    "/names.csv",
    response_class=StreamingResponse,
    responses=_CSV_RESPONSE,
    summary="Export names as CSV",
)
async def export_names(db: DbSession, query: NameParams) -> StreamingResponse:
    page = await events_orm.list_names(db, query)
    return csv_response("names", page.items)
