"""
Match-type classification.

Labels each linked event by which of the three systems captured it. The label
is a lookup on the (claims, hie, auth) presence triple.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable

from data_completeness.linkage.event_linker import LinkedEvent


class MatchType(str, Enum):
    """Which systems hold a record of the event."""

    FULL_MATCH = "full-match"    # Claims, HIE and authorization
    CLAIMS_AUTH = "claims-auth"  # Missing HIE
    HIE_AUTH = "hie-auth"        # Missing claims
    CLAIMS_ONLY = "claims-only"
    HIE_ONLY = "hie-only"
    AUTH_ONLY = "auth-only"
    NO_MATCH = "no-match"


# Keyed by (has_claims, has_hie, has_auth)
DECISION_TABLE: dict[tuple[bool, bool, bool], MatchType] = {
    (True, True, True): MatchType.FULL_MATCH,
    (True, False, True): MatchType.CLAIMS_AUTH,
    (False, True, True): MatchType.HIE_AUTH,
    # Claims + HIE without authorization has no category of its own
    (True, True, False): MatchType.CLAIMS_ONLY,
    (True, False, False): MatchType.CLAIMS_ONLY,
    (False, True, False): MatchType.HIE_ONLY,
    (False, False, True): MatchType.AUTH_ONLY,
    (False, False, False): MatchType.NO_MATCH,
}


@dataclass(frozen=True)
class ClassifiedEvent:
    """A linked event with its match type and 0/1 presence flags."""

    event: LinkedEvent
    match_type: MatchType
    has_claims: int
    has_hie: int
    has_auth: int

    @property
    def office_name(self) -> str:
        return self.event.office_name

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.event.to_dict(),
            "match_type": self.match_type.value,
            "has_claims": self.has_claims,
            "has_hie": self.has_hie,
            "has_auth": self.has_auth,
        }


def presence_flags(event: LinkedEvent) -> tuple[bool, bool, bool]:
    return (
        event.claim_id is not None,
        event.hie_encounter_id is not None,
        event.authorization_id is not None,
    )


def classify_event(event: LinkedEvent) -> ClassifiedEvent:
    has_claims, has_hie, has_auth = presence_flags(event)
    return ClassifiedEvent(
        event=event,
        match_type=DECISION_TABLE[(has_claims, has_hie, has_auth)],
        has_claims=int(has_claims),
        has_hie=int(has_hie),
        has_auth=int(has_auth),
    )


def classify_events(events: Iterable[LinkedEvent]) -> list[ClassifiedEvent]:
    return [classify_event(event) for event in events]
