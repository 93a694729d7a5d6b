"""Event and name list routes.

Every list answers ``{"data": [...], "pagination": {limit, offset, total}}``
with rows ordered newest first by the entity's canonical time.
"""

from __future__ import annotations

from fastapi import APIRouter

from enshub.api.dependencies import EventParams, NameParams
from enshub.database.session import DbSession
from enshub.domain.events import (
    NameRecord,
    RegistrationRecord,
    RenewalRecord,
    TransferRecord,
)
from enshub.repositories import events_orm
from enshub.schemas.common import PageResponse


router = APIRouter()


@router.get(
    "/registrations",
    response_model=PageResponse[RegistrationRecord],
    summary="List registrations",
    description="Registrations filtered by block time range and chain, newest first.",
)
async def list_registrations(db: DbSession, query: EventParams) -> PageResponse[RegistrationRecord]:
    page = await events_orm.list_registrations(db, query)
    return PageResponse[RegistrationRecord].from_page(page)


@router.get(
    "/renewals",
    response_model=PageResponse[RenewalRecord],
    summary="List renewals",
    description="Renewals filtered by block time range and chain, newest first.",
)
async def list_renewals(db: DbSession, query: EventParams) -> PageResponse[RenewalRecord]:
    page = await events_orm.list_renewals(db, query)
    return PageResponse[RenewalRecord].from_page(page)


@router.get(
    "/transfers",
    response_model=PageResponse[TransferRecord],
    summary="List transfers",
    description="Ownership transfers filtered by block time range and chain, newest first.",
)
async def list_transfers(db: DbSession, query: EventParams) -> PageResponse[TransferRecord]:
    page = await events_orm.list_transfers(db, query)
    return PageResponse[TransferRecord].from_page(page)


@router.get(
    "/names",
    response_model=PageResponse[NameRecord],
    summary="List names",
    description=(
        "Names whose label contains ``search`` (case-insensitive) or whose "
        "registrant equals it, filtered by registration date, newest first."
    ),
)
async def list_names(db: DbSession, query: NameParams) -> PageResponse[NameRecord]:
    page = await events_orm.list_names(db, query)
    return PageResponse[NameRecord].from_page(page)
