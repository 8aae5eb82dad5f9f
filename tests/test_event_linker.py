"""Tests for the event linker."""

from datetime import date

import pytest

from data_completeness.config import AuthorizationFanout
from data_completeness.linkage.event_linker import EventLinker
from data_completeness.linkage.records import (
    AuthorizationRecord,
    CensusRecord,
    Event,
    RecordError,
    month_key,
    parse_date,
)


def _event(event_id="E1", patient_id="P1", admit="2025-02-01", discharge="2025-02-05", **ids):
    return Event(
        event_id=event_id,
        patient_id=patient_id,
        admit_date=date.fromisoformat(admit),
        discharge_date=date.fromisoformat(discharge) if discharge else None,
        claim_id=ids.get("claim_id"),
        hie_encounter_id=ids.get("hie_encounter_id"),
    )


def _auth(auth_id, admission, discharge=None, patient_id="P1"):
    return AuthorizationRecord(
        patient_id=patient_id,
        admission_date=date.fromisoformat(admission),
        authorization_id=auth_id,
        discharge_date=date.fromisoformat(discharge) if discharge else None,
    )


class TestRecords:
    """Test parsing of raw rows into typed records."""

    def test_event_from_record(self):
        event = Event.from_record({
            "event_id": " E1 ",
            "patient_id": "P1",
            "admit_date": "2025-02-01T08:30:00",
            "discharge_date": "",
            "claim_id": "C1",
        })

        assert event.event_id == "E1"
        assert event.admit_date == date(2025, 2, 1)
        assert event.discharge_date is None
        assert event.claim_id == "C1"
        assert event.hie_encounter_id is None
        assert event.admit_month == "2025-02"

    def test_missing_patient_id(self):
        with pytest.raises(RecordError) as exc_info:
            Event.from_record({"event_id": "E1", "admit_date": "2025-02-01"})

        assert exc_info.value.field == "patient_id"
        assert exc_info.value.reason == RecordError.MISSING

    def test_invalid_admit_date(self):
        with pytest.raises(RecordError) as exc_info:
            Event.from_record({"event_id": "E1", "patient_id": "P1", "admit_date": "02/01/2025"})

        assert exc_info.value.field == "admit_date"
        assert exc_info.value.reason == RecordError.INVALID

    def test_census_month_from_date(self):
        record = CensusRecord.from_record({
            "patient_id": "P1",
            "month_year": date(2025, 2, 14),
            "office_name": "North",
        })
        assert record.month_year == "2025-02"

    def test_census_rejects_bad_month(self):
        with pytest.raises(RecordError):
            CensusRecord.from_record({"patient_id": "P1", "month_year": "2025-13", "office_name": "N"})

    def test_parse_date_accepts_date_objects(self):
        assert parse_date(date(2025, 1, 1)) == date(2025, 1, 1)
        assert parse_date(None) is None
        assert month_key("2025-03-31") == "2025-03"

    def test_open_authorization_effective_end(self):
        auth = _auth("A1", "2025-02-03")
        assert auth.effective_end == date(2025, 2, 3)


class TestOfficeAttribution:
    """Test census joins on patient and admit month."""

    def test_office_from_matching_month(self):
        census = [CensusRecord("P1", "2025-02", "North")]
        linked = EventLinker().link([_event()], census, [])

        assert len(linked) == 1
        assert linked[0].office_name == "North"

    def test_no_census_match_is_unassigned(self):
        census = [CensusRecord("P1", "2025-03", "North")]
        linked = EventLinker().link([_event()], census, [])

        assert linked[0].office_name == "UNASSIGNED"

    def test_null_office_name_is_unassigned(self):
        census = [CensusRecord("P1", "2025-02", None)]
        linked = EventLinker().link([_event()], census, [])

        assert linked[0].office_name == "UNASSIGNED"

    def test_custom_unassigned_label(self):
        linked = EventLinker(unassigned_office="NO_OFFICE").link([_event()], [], [])
        assert linked[0].office_name == "NO_OFFICE"

    def test_transfer_uses_admit_month(self):
        census = [
            CensusRecord("P1", "2025-02", "North"),
            CensusRecord("P1", "2025-03", "South"),
        ]
        events = [_event("E1"), _event("E2", admit="2025-03-02", discharge="2025-03-04")]
        linked = EventLinker().link(events, census, [])

        assert [e.office_name for e in linked] == ["North", "South"]

    def test_duplicate_census_key_does_not_duplicate_event(self):
        census = [
            CensusRecord("P1", "2025-02", "North"),
            CensusRecord("P1", "2025-02", "South"),
        ]
        linked = EventLinker().link([_event()], census, [])

        assert len(linked) == 1
        assert linked[0].office_name == "North"


class TestCutoff:
    def test_events_before_cutoff_dropped(self):
        events = [_event("E1", admit="2024-12-31", discharge="2025-01-02"), _event("E2")]
        linked = EventLinker(cutoff_date=date(2025, 1, 1)).link(events, [], [])

        assert [e.event_id for e in linked] == ["E2"]

    def test_cutoff_is_inclusive(self):
        events = [_event(admit="2025-01-01", discharge="2025-01-02")]
        linked = EventLinker(cutoff_date=date(2025, 1, 1)).link(events, [], [])

        assert len(linked) == 1

    def test_link_window_does_not_refilter(self):
        events = [_event("E1", admit="2024-12-31", discharge="2025-01-02"), _event("E2")]
        linked = EventLinker(cutoff_date=date(2025, 1, 1)).link_window(events, [], [])

        assert [e.event_id for e in linked] == ["E1", "E2"]


class TestAuthorizationOverlap:
    """Test the interval-overlap authorization join."""

    def test_overlapping_span_is_linked(self):
        # Stay 2025-02-01..05, authorization 2025-02-03..10
        linked = EventLinker().link([_event()], [], [_auth("A1", "2025-02-03", "2025-02-10")])
        assert linked[0].authorization_id == "A1"

    def test_touching_boundaries_overlap(self):
        auths = [_auth("A1", "2025-02-05", "2025-02-09")]
        linked = EventLinker().link([_event()], [], auths)
        assert linked[0].authorization_id == "A1"

    def test_disjoint_span_not_linked(self):
        auths = [_auth("A1", "2025-02-06", "2025-02-09")]
        linked = EventLinker().link([_event()], [], auths)
        assert linked[0].authorization_id is None

    def test_open_span_uses_admission_date(self):
        inside = EventLinker().link([_event()], [], [_auth("A1", "2025-02-04")])
        before = EventLinker().link([_event()], [], [_auth("A2", "2025-01-20")])

        assert inside[0].authorization_id == "A1"
        assert before[0].authorization_id is None

    def test_other_patient_not_linked(self):
        auths = [_auth("A1", "2025-02-03", "2025-02-10", patient_id="P9")]
        linked = EventLinker().link([_event()], [], auths)
        assert linked[0].authorization_id is None

    def test_stay_without_discharge_not_linked(self):
        auths = [_auth("A1", "2025-01-01", "2025-12-31")]
        linked = EventLinker().link([_event(discharge=None)], [], auths)
        assert linked[0].authorization_id is None

    def test_claim_and_hie_carried_through(self):
        event = _event(claim_id="C1", hie_encounter_id="H1")
        linked = EventLinker().link([event], [], [])

        assert linked[0].claim_id == "C1"
        assert linked[0].hie_encounter_id == "H1"


class TestFanout:
    """Test events overlapping more than one authorization."""

    @pytest.fixture
    def overlapping(self):
        return [
            _auth("A1", "2025-01-28", "2025-02-02"),
            _auth("A2", "2025-02-04", "2025-02-08"),
        ]

    def test_preserve_emits_one_row_per_authorization(self, overlapping):
        linked = EventLinker().link([_event()], [], overlapping)

        assert [e.authorization_id for e in linked] == ["A1", "A2"]
        assert {e.event_id for e in linked} == {"E1"}

    def test_most_recent_keeps_latest_admission(self, overlapping):
        linker = EventLinker(authorization_fanout=AuthorizationFanout.MOST_RECENT)
        linked = linker.link([_event()], [], overlapping)

        assert len(linked) == 1
        assert linked[0].authorization_id == "A2"

    def test_fanout_policy_accepts_string(self, overlapping):
        linker = EventLinker(authorization_fanout="most_recent")
        assert len(linker.link([_event()], [], overlapping)) == 1


def test_linking_is_deterministic():
    events = [_event("E1"), _event("E2", patient_id="P2")]
    census = [CensusRecord("P1", "2025-02", "North")]
    auths = [_auth("A1", "2025-02-03", "2025-02-10")]

    first = EventLinker().link(events, census, auths)
    second = EventLinker().link(events, census, auths)

    assert first == second
