"""
Capture-rate aggregation.

Produces one flat result with three grouping levels:
- (office, match_type): detail rows
- (office): office subtotals, match_type is None
- (): grand total, both keys None

Detail tallies are computed first; subtotals and the grand total are merged
from them, so partial tallies from separate partitions can be combined with
``merge_partitions`` before the rollup.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping

import structlog

from data_completeness.classification.match_classifier import ClassifiedEvent

logger = structlog.get_logger(__name__)

OUTPUT_COLUMNS = (
    "office_name",
    "match_type",
    "event_count",
    "claims_capture_pct",
    "hie_capture_pct",
    "auth_capture_pct",
)

GroupKey = tuple[str, str]


def capture_pct(captured: int, total: int) -> float:
    """Percentage of ``total`` captured, rounded half-up to one decimal."""
    if total <= 0:
        raise ValueError("Capture rate needs a non-empty group")
    pct = Decimal(captured) * 100 / Decimal(total)
    return float(pct.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


@dataclass
class CaptureTally:
    """Running counts for one group. Merging is associative and commutative."""

    event_count: int = 0
    claims: int = 0
    hie: int = 0
    auth: int = 0

    def add(self, event: ClassifiedEvent) -> None:
        self.event_count += 1
        self.claims += event.has_claims
        self.hie += event.has_hie
        self.auth += event.has_auth

    def merge(self, other: CaptureTally) -> CaptureTally:
        return CaptureTally(
            event_count=self.event_count + other.event_count,
            claims=self.claims + other.claims,
            hie=self.hie + other.hie,
            auth=self.auth + other.auth,
        )


@dataclass(frozen=True)
class AggregateRow:
    """One output row; a None key means "all values" for that column."""

    office_name: str | None
    match_type: str | None
    event_count: int
    claims_capture_pct: float
    hie_capture_pct: float
    auth_capture_pct: float

    @classmethod
    def from_tally(
        cls,
        office_name: str | None,
        match_type: str | None,
        tally: CaptureTally,
    ) -> AggregateRow:
        return cls(
            office_name=office_name,
            match_type=match_type,
            event_count=tally.event_count,
            claims_capture_pct=capture_pct(tally.claims, tally.event_count),
            hie_capture_pct=capture_pct(tally.hie, tally.event_count),
            auth_capture_pct=capture_pct(tally.auth, tally.event_count),
        )

    @property
    def level(self) -> str:
        if self.office_name is None:
            return "total"
        if self.match_type is None:
            return "office"
        return "detail"

    def to_dict(self) -> dict[str, Any]:
        return {
            "office_name": self.office_name,
            "match_type": self.match_type,
            "event_count": self.event_count,
            "claims_capture_pct": self.claims_capture_pct,
            "hie_capture_pct": self.hie_capture_pct,
            "auth_capture_pct": self.auth_capture_pct,
        }


def _sort_key(row: AggregateRow) -> tuple[bool, str, bool, str]:
    # Nulls last on both keys
    return (
        row.office_name is None,
        row.office_name or "",
        row.match_type is None,
        row.match_type or "",
    )


def sort_rows(rows: Iterable[AggregateRow]) -> list[AggregateRow]:
    return sorted(rows, key=_sort_key)


def merge_partitions(
    partials: Iterable[Mapping[GroupKey, CaptureTally]],
) -> dict[GroupKey, CaptureTally]:
    """Combine detail tallies computed over disjoint input partitions."""
    merged: dict[GroupKey, CaptureTally] = {}
    for partial in partials:
        for key, tally in partial.items():
            merged[key] = merged.get(key, CaptureTally()).merge(tally)
    return merged


class CaptureAggregator:
    """Grouping-sets rollup over classified events."""

    def tally(self, events: Iterable[ClassifiedEvent]) -> dict[GroupKey, CaptureTally]:
        """Detail tallies keyed by (office_name, match_type)."""
        tallies: dict[GroupKey, CaptureTally] = defaultdict(CaptureTally)
        for event in events:
            tallies[(event.office_name, event.match_type.value)].add(event)
        return dict(tallies)

    def rollup(self, detail: Mapping[GroupKey, CaptureTally]) -> list[AggregateRow]:
        """
        Derive office subtotals and the grand total from detail tallies.

        Args:
            detail: Tallies keyed by (office_name, match_type)

        Returns:
            Detail, subtotal and total rows, sorted; empty when ``detail`` is
        """
        if not detail:
            return []

        rows: list[AggregateRow] = []
        offices: dict[str, CaptureTally] = {}
        total = CaptureTally()

        for (office_name, match_type), tally in detail.items():
            rows.append(AggregateRow.from_tally(office_name, match_type, tally))
            offices[office_name] = offices.get(office_name, CaptureTally()).merge(tally)
            total = total.merge(tally)

        for office_name, tally in offices.items():
            rows.append(AggregateRow.from_tally(office_name, None, tally))
        rows.append(AggregateRow.from_tally(None, None, total))

        logger.info(
            "capture_rollup_completed",
            detail_rows=len(detail),
            offices=len(offices),
            total_events=total.event_count,
        )

        return sort_rows(rows)

    def aggregate(self, events: Iterable[ClassifiedEvent]) -> list[AggregateRow]:
        return self.rollup(self.tally(events))
