"""Immutable domain snapshots of event-store rows."""

from .events import (
    NameRecord,
    RegistrationRecord,
    RenewalRecord,
    Snapshot,
    TransferRecord,
    format_eth,
)


__all__ = [
    "NameRecord",
    "RegistrationRecord",
    "RenewalRecord",
    "Snapshot",
    "TransferRecord",
    "format_eth",
]
