"""Match-type classification of linked events."""
from data_completeness.classification.match_classifier import (
    DECISION_TABLE,
    ClassifiedEvent,
    MatchType,
    classify_event,
    classify_events,
    presence_flags,
)

__all__ = [
    "DECISION_TABLE",
    "ClassifiedEvent",
    "MatchType",
    "classify_event",
    "classify_events",
    "presence_flags",
]
