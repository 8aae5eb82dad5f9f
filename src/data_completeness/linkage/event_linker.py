"""
Event Linker.

Attaches office attribution and authorization identifiers to inpatient events:
- Office from the monthly census, keyed on patient + admit month
- Authorization from any span overlapping the stay
- Claim and HIE identifiers carried through from the event itself

Events are never dropped by the office join. The authorization join fans out
to one linked row per overlapping authorization unless the most-recent policy
is selected.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable

import structlog

from data_completeness.config import (
    DEFAULT_CUTOFF_DATE,
    UNASSIGNED_OFFICE,
    AuthorizationFanout,
)
from data_completeness.linkage.records import (
    AuthorizationRecord,
    CensusRecord,
    Event,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class LinkedEvent:
    """An event with its office and the identifiers found in each system."""

    event_id: str
    patient_id: str
    admit_date: date
    discharge_date: date | None
    office_name: str
    claim_id: str | None
    hie_encounter_id: str | None
    authorization_id: str | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "patient_id": self.patient_id,
            "admit_date": self.admit_date.isoformat(),
            "discharge_date": self.discharge_date.isoformat() if self.discharge_date else None,
            "office_name": self.office_name,
            "claim_id": self.claim_id,
            "hie_encounter_id": self.hie_encounter_id,
            "authorization_id": self.authorization_id,
        }


class EventLinker:
    """
    Joins events against census and authorization reference data.

    Features:
    - Admit-date cutoff filtering
    - Month-grain office attribution with an unassigned sentinel
    - Interval-overlap authorization matching
    - Configurable handling of authorization fan-out
    """

    def __init__(
        self,
        cutoff_date: date = DEFAULT_CUTOFF_DATE,
        authorization_fanout: AuthorizationFanout = AuthorizationFanout.PRESERVE,
        unassigned_office: str = UNASSIGNED_OFFICE,
    ):
        self.cutoff_date = cutoff_date
        self.authorization_fanout = AuthorizationFanout(authorization_fanout)
        self.unassigned_office = unassigned_office

    def link(
        self,
        events: Iterable[Event],
        census: Iterable[CensusRecord],
        authorizations: Iterable[AuthorizationRecord],
    ) -> list[LinkedEvent]:
        """
        Produce linked rows for every event admitted on or after the cutoff.

        Args:
            events: Inpatient events
            census: Monthly office census
            authorizations: Authorization spans

        Returns:
            Linked events in input order; fanned-out rows follow the
            authorization input order
        """
        return self.link_window(self.filter_window(events), census, authorizations)

    def link_window(
        self,
        events: Iterable[Event],
        census: Iterable[CensusRecord],
        authorizations: Iterable[AuthorizationRecord],
    ) -> list[LinkedEvent]:
        """Link events already restricted to the window; no cutoff is applied."""
        offices = self._index_census(census)
        auths_by_patient = self._index_authorizations(authorizations)

        linked: list[LinkedEvent] = []
        in_window = 0
        fanned_out = 0

        for event in events:
            in_window += 1

            office = offices.get((event.patient_id, event.admit_month)) or self.unassigned_office
            matches = self._matching_authorizations(
                event, auths_by_patient.get(event.patient_id, [])
            )
            if len(matches) > 1:
                fanned_out += 1

            if not matches:
                linked.append(self._linked(event, office, None))
                continue

            for auth in matches:
                linked.append(self._linked(event, office, auth.authorization_id))

        logger.info(
            "events_linked",
            events_in_window=in_window,
            linked_rows=len(linked),
            cutoff_date=self.cutoff_date.isoformat(),
            fanout_policy=self.authorization_fanout.value,
        )

        if fanned_out:
            logger.warning(
                "authorization_fanout_detected",
                events_affected=fanned_out,
                extra_rows=len(linked) - in_window,
            )

        return linked

    def filter_window(self, events: Iterable[Event]) -> list[Event]:
        """Events admitted on or after the cutoff date."""
        return [e for e in events if e.admit_date >= self.cutoff_date]

    def _index_census(
        self,
        census: Iterable[CensusRecord],
    ) -> dict[tuple[str, str], str | None]:
        """Index offices by (patient, month); the first row for a key wins."""
        offices: dict[tuple[str, str], str | None] = {}
        duplicates = 0

        for record in census:
            key = (record.patient_id, record.month_year)
            if key in offices:
                duplicates += 1
                continue
            offices[key] = record.office_name

        if duplicates:
            logger.warning("census_duplicate_keys_ignored", count=duplicates)

        return offices

    def _index_authorizations(
        self,
        authorizations: Iterable[AuthorizationRecord],
    ) -> dict[str, list[AuthorizationRecord]]:
        by_patient: dict[str, list[AuthorizationRecord]] = defaultdict(list)
        for auth in authorizations:
            by_patient[auth.patient_id].append(auth)
        return by_patient

    def _matching_authorizations(
        self,
        event: Event,
        candidates: list[AuthorizationRecord],
    ) -> list[AuthorizationRecord]:
        matches = [
            auth for auth in candidates
            if auth.overlaps(event.admit_date, event.discharge_date)
        ]

        if self.authorization_fanout == AuthorizationFanout.MOST_RECENT and len(matches) > 1:
            latest = max(
                matches,
                key=lambda a: (a.admission_date, a.effective_end, a.authorization_id),
            )
            return [latest]

        return matches

    def _linked(
        self,
        event: Event,
        office: str,
        authorization_id: str | None,
    ) -> LinkedEvent:
        return LinkedEvent(
            event_id=event.event_id,
            patient_id=event.patient_id,
            admit_date=event.admit_date,
            discharge_date=event.discharge_date,
            office_name=office,
            claim_id=event.claim_id,
            hie_encounter_id=event.hie_encounter_id,
            authorization_id=authorization_id,
        )
