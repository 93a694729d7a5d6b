"""Derived analytics over a bounded sample of registrations or renewals.

Every view is a pure function of its input: no I/O, no shared state, and an
empty input yields an empty (or zero-filled) result rather than an error.

Costs arrive as exact decimals. Sums are taken in ``Decimal`` and converted to
``float`` only when a view is returned; these floats are for display and are
never written back or exported.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Iterable, Protocol, Sequence

from enshub.core.logging import get_logger
from enshub.schemas.analytics import (
    AnalyticsSummary,
    ChainStat,
    CostBucket,
    DailyChainCounts,
    DailyCount,
    EventActivity,
    HourlyCount,
    NetworkSplit,
    WhaleEntry,
)


logger = get_logger("services.analytics")


CHAIN_NAMES: dict[int, str] = {
    1: "Ethereum",
    10: "Optimism",
    137: "Polygon",
    42161: "Arbitrum",
    8453: "Base",
    59144: "Linea",
}

CHAIN_TYPES: dict[int, str] = {
    1: "Mainnet",
    10: "L2 Optimistic",
    137: "L2 Sidechain",
    42161: "L2 Optimistic",
    8453: "L2 Optimistic",
    59144: "L2 zkRollup",
}
UNKNOWN_CHAIN_TYPE = "Unknown"

L1_CHAIN_IDS = frozenset({1})
L2_CHAIN_IDS = frozenset({10, 137, 42161, 8453, 59144})
L1_LABEL = "L1 (Ethereum)"
L2_LABEL = "L2 Networks"

WHALE_THRESHOLD_ETH = Decimal("1")
TOP_WHALES = 20

# (label, lower bound inclusive, upper bound exclusive or None)
COST_BUCKETS: tuple[tuple[str, Decimal, Decimal | None], ...] = (
    ("0-0.01", Decimal("0"), Decimal("0.01")),
    ("0.01-0.1", Decimal("0.01"), Decimal("0.1")),
    ("0.1-0.5", Decimal("0.1"), Decimal("0.5")),
    ("0.5-1", Decimal("0.5"), Decimal("1")),
    ("1-5", Decimal("1"), Decimal("5")),
    ("5+", Decimal("5"), None),
)

HOURS_PER_DAY = 24


class Timestamped(Protocol):
    """Any event with a block time (registrations and renewals)."""

    block_time: datetime


class Registration(Protocol):
    """Fields the analytics read from a registration."""

    registrant: str
    cost_eth: Decimal | str
    block_time: datetime
    chain_id: int


def chain_name(chain_id: int) -> str:
    """Display name for a chain id."""
    return CHAIN_NAMES.get(chain_id, f"Chain {chain_id}")


def chain_type(chain_id: int) -> str:
    """Network class of a chain id, e.g. "L2 Optimistic"."""
    return CHAIN_TYPES.get(chain_id, UNKNOWN_CHAIN_TYPE)


def _cost(record: Registration) -> Decimal:
    value = record.cost_eth
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


# =============================================================================
# WHALES
# =============================================================================


@dataclass
class _SpendAccumulator:
    address: str
    first: datetime
    last: datetime
    total: Decimal = Decimal("0")
    count: int = 0


def whale_ranking(
    records: Iterable[Registration],
    threshold: Decimal = WHALE_THRESHOLD_ETH,
    top: int = TOP_WHALES,
) -> list[WhaleEntry]:
    """
    Registrants ranked by total spend.

    Keeps registrants whose total is at least ``threshold``, sorted by total
    descending. Equal totals keep the order in which registrants first appear
    in the input.
    """
    by_address: dict[str, _SpendAccumulator] = {}
    for record in records:
        moment = _utc(record.block_time)
        stats = by_address.get(record.registrant)
        if stats is None:
            stats = _SpendAccumulator(address=record.registrant, first=moment, last=moment)
            by_address[record.registrant] = stats
        stats.total += _cost(record)
        stats.count += 1
        stats.first = min(stats.first, moment)
        stats.last = max(stats.last, moment)

    whales = [s for s in by_address.values() if s.total >= threshold]
    whales.sort(key=lambda s: s.total, reverse=True)

    return [
        WhaleEntry(
            address=s.address,
            total_spent=float(s.total),
            name_count=s.count,
            avg_cost=float(s.total / s.count),
            first_registration=s.first,
            recent_activity=s.last,
        )
        for s in whales[:top]
    ]


# =============================================================================
# CHAINS
# =============================================================================


@dataclass
class _ChainAccumulator:
    chain_id: int
    count: int = 0
    volume: Decimal = Decimal("0")
    users: set[str] = field(default_factory=set)


def chain_distribution(records: Iterable[Registration]) -> list[ChainStat]:
    """Registration count and volume per chain, busiest chain first."""
    by_chain: dict[int, _ChainAccumulator] = {}
    for record in records:
        stats = by_chain.setdefault(record.chain_id, _ChainAccumulator(record.chain_id))
        stats.count += 1
        stats.volume += _cost(record)
        stats.users.add(record.registrant)

    chains = sorted(by_chain.values(), key=lambda s: s.count, reverse=True)
    return [
        ChainStat(
            chain_id=s.chain_id,
            chain_name=chain_name(s.chain_id),
            chain_type=chain_type(s.chain_id),
            count=s.count,
            total_volume=float(s.volume),
            avg_cost=float(s.volume / s.count),
            unique_users=len(s.users),
        )
        for s in chains
    ]


# =============================================================================
# COSTS
# =============================================================================


def cost_bucket_index(cost: Decimal) -> int | None:
    """Index of the first bucket containing ``cost``; None for negative costs."""
    for index, (_, lower, upper) in enumerate(COST_BUCKETS):
        if cost >= lower and (upper is None or cost < upper):
            return index
    return None


def cost_histogram(records: Iterable[Registration]) -> list[CostBucket]:
    """Registrations per cost bucket. Empty buckets are left out."""
    counts = [0] * len(COST_BUCKETS)
    for record in records:
        index = cost_bucket_index(_cost(record))
        if index is None:
            logger.debug(f"Skipping negative cost {record.cost_eth}")
            continue
        counts[index] += 1

    return [
        CostBucket(
            range=label,
            min=float(lower),
            max=float(upper) if upper is not None else None,
            count=count,
        )
        for (label, lower, upper), count in zip(COST_BUCKETS, counts)
        if count > 0
    ]


# =============================================================================
# TIME
# =============================================================================


def hourly_activity(records: Iterable[Registration]) -> list[HourlyCount]:
    """Registrations per UTC hour of day, always 24 rows in hour order."""
    hourly = Counter(_utc(record.block_time).hour for record in records)
    return [
        HourlyCount(hour=hour, label=f"{hour}:00", registrations=hourly.get(hour, 0))
        for hour in range(HOURS_PER_DAY)
    ]


def daily_chain_series(records: Iterable[Registration]) -> list[DailyChainCounts]:
    """Per-day registration counts by chain, oldest day first.

    Only chains with registrations on a given day appear in that day's row.
    """
    daily: dict[date, Counter[int]] = {}
    for record in records:
        day = _utc(record.block_time).date()
        daily.setdefault(day, Counter())[record.chain_id] += 1

    return [
        DailyChainCounts(
            date=day,
            counts={chain_name(chain_id): daily[day][chain_id] for chain_id in sorted(daily[day])},
        )
        for day in sorted(daily)
    ]


def event_activity(records: Iterable[Timestamped], today: date | None = None) -> EventActivity:
    """Events per UTC day, oldest first, and the count for ``today``.

    ``today`` defaults to the current UTC date.
    """
    if today is None:
        today = datetime.now(timezone.utc).date()

    per_day = Counter(_utc(record.block_time).date() for record in records)
    return EventActivity(
        today_count=per_day.get(today, 0),
        daily=[DailyCount(date=day, count=per_day[day]) for day in sorted(per_day)],
    )


# =============================================================================
# NETWORKS
# =============================================================================


def l1_l2_split(records: Iterable[Registration]) -> list[NetworkSplit]:
    """Count and volume for L1 and the known L2s; always exactly two rows.

    Chains in neither set are not counted in either row.
    """
    l1_count = l2_count = 0
    l1_volume = l2_volume = Decimal("0")
    for record in records:
        if record.chain_id in L1_CHAIN_IDS:
            l1_count += 1
            l1_volume += _cost(record)
        elif record.chain_id in L2_CHAIN_IDS:
            l2_count += 1
            l2_volume += _cost(record)

    return [
        NetworkSplit(type=L1_LABEL, registrations=l1_count, volume=float(l1_volume)),
        NetworkSplit(type=L2_LABEL, registrations=l2_count, volume=float(l2_volume)),
    ]


def summary(records: Sequence[Registration]) -> AnalyticsSummary:
    """Headline figures: totals, unique registrants, active chains, L2 share."""
    l1, l2 = l1_l2_split(records)
    network_total = l1.registrations + l2.registrations
    l2_share = round(l2.registrations / network_total * 100) if network_total else 0
    return AnalyticsSummary(
        total_registrations=len(records),
        total_volume=float(sum((_cost(r) for r in records), Decimal("0"))),
        unique_registrants=len({r.registrant for r in records}),
        active_chains=len({r.chain_id for r in records}),
        l2_share_pct=l2_share,
    )


# =============================================================================
# VIEW REGISTRY
# =============================================================================


VIEWS: dict[str, Callable[[Sequence[Registration]], Any]] = {
    "summary": summary,
    "whales": whale_ranking,
    "chains": chain_distribution,
    "costs": cost_histogram,
    "hourly": hourly_activity,
    "daily": daily_chain_series,
    "networks": l1_l2_split,
    "activity": event_activity,
}

RENEWAL_VIEWS: dict[str, Callable[[Sequence[Timestamped]], Any]] = {
    "activity": event_activity,
}


def compute_views(
    records: Sequence[Any],
    views: Iterable[str] | None = None,
    registry: dict[str, Callable[[Sequence[Any]], Any]] = VIEWS,
) -> dict[str, Any]:
    """
    Compute the selected views of ``registry`` (all of them when ``views`` is None).

    Returns:
        Mapping of view name to JSON-ready result

    Raises:
        KeyError: for an unknown view name
    """
    selected = list(registry) if views is None else list(dict.fromkeys(views))
    result: dict[str, Any] = {}
    for name in selected:
        value = registry[name](records)
        if isinstance(value, list):
            result[name] = [item.model_dump(mode="json", by_alias=True) for item in value]
        else:
            result[name] = value.model_dump(mode="json", by_alias=True)
    return result
