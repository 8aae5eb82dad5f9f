"""Event linkage against office census and authorization spans."""
from data_completeness.linkage.event_linker import EventLinker, LinkedEvent
from data_completeness.linkage.records import (
    AuthorizationRecord,
    CensusRecord,
    Event,
    RecordError,
)

__all__ = [
    "AuthorizationRecord",
    "CensusRecord",
    "Event",
    "EventLinker",
    "LinkedEvent",
    "RecordError",
]
