"""ENS lifecycle domain models.

Immutable snapshots of event-store rows. The query layer converts every ORM
row it returns into one of these, so downstream code (serialization,
analytics, export) can never mutate persisted state.

Costs stay ``Decimal`` here and serialize as plain decimal strings.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel


def format_eth(amount: Decimal) -> str:
    """Render an amount without exponent or trailing zeros ("0.500" -> "0.5")."""
    if amount == 0:
        return "0"
    return format(amount.normalize(), "f")


class Snapshot(BaseModel):
    """Frozen read model built from an ORM row."""

    model_config = ConfigDict(
        frozen=True,
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_row(self) -> dict[str, Any]:
        """JSON-ready dict with the public (camelCase) field names."""
        return self.model_dump(mode="json", by_alias=True)


class RegistrationRecord(Snapshot):
    """A name registration."""

    id: str
    name: str
    tx_hash: str
    block_number: int
    block_time: datetime
    registrant: str
    cost_eth: Decimal
    chain_id: int
    created_at: datetime

    @field_serializer("cost_eth")
    def _serialize_cost(self, value: Decimal) -> str:
        return format_eth(value)


class RenewalRecord(Snapshot):
    """A name renewal."""

    id: str
    name: str
    tx_hash: str
    block_number: int
    block_time: datetime
    payer: str
    cost_eth: Decimal
    years: int
    chain_id: int
    created_at: datetime

    @field_serializer("cost_eth")
    def _serialize_cost(self, value: Decimal) -> str:
        return format_eth(value)


class TransferRecord(Snapshot):
    """A name ownership transfer."""

    id: str
    name: str
    tx_hash: str
    block_number: int
    block_time: datetime
    from_address: str = Field(alias="from")
    to_address: str = Field(alias="to")
    chain_id: int
    created_at: datetime


class NameRecord(Snapshot):
    """Current state of a registered name."""

    id: str
    name: str
    label_hash: str
    registrant: str
    controller: str | None = None
    registration_date: datetime
    expiration_date: datetime
    created_at: datetime
    updated_at: datetime
