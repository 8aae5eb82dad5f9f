"""Shared fixtures for the data completeness tests."""

import csv
from datetime import date

import pytest

from data_completeness.config import CompletenessSettings
from data_completeness.linkage.event_linker import LinkedEvent


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep DATA_COMPLETENESS_* variables and stray .env files out of tests."""
    import os

    for key in list(os.environ):
        if key.startswith("DATA_COMPLETENESS_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def settings():
    return CompletenessSettings(cutoff_date=date(2025, 1, 1))


@pytest.fixture
def sample_events():
    """Six stays: three offices, one before the cutoff, one office transfer."""
    return [
        {"event_id": "E1", "patient_id": "P1", "admit_date": "2025-02-01",
         "discharge_date": "2025-02-05", "claim_id": "C1", "hie_encounter_id": "H1"},
        {"event_id": "E2", "patient_id": "P2", "admit_date": "2025-02-10",
         "discharge_date": "2025-02-12", "claim_id": "C2", "hie_encounter_id": None},
        {"event_id": "E3", "patient_id": "P3", "admit_date": "2025-03-01",
         "discharge_date": "2025-03-04", "claim_id": None, "hie_encounter_id": None},
        {"event_id": "E4", "patient_id": "P4", "admit_date": "2024-12-15",
         "discharge_date": "2024-12-20", "claim_id": "C4", "hie_encounter_id": "H4"},
        {"event_id": "E5", "patient_id": "P5", "admit_date": "2025-01-20",
         "discharge_date": "2025-01-22", "claim_id": None, "hie_encounter_id": "H5"},
        {"event_id": "E6", "patient_id": "P2", "admit_date": "2025-03-05",
         "discharge_date": "2025-03-06", "claim_id": "C6", "hie_encounter_id": "H6"},
    ]


@pytest.fixture
def sample_census():
    return [
        {"patient_id": "P1", "month_year": "2025-02", "office_name": "North"},
        {"patient_id": "P2", "month_year": "2025-02", "office_name": "North"},
        {"patient_id": "P2", "month_year": "2025-03", "office_name": "South"},
        {"patient_id": "P4", "month_year": "2024-12", "office_name": "North"},
        {"patient_id": "P5", "month_year": "2025-01", "office_name": "South"},
    ]


@pytest.fixture
def sample_authorizations():
    return [
        {"patient_id": "P1", "admission_date": "2025-02-03",
         "discharge_date": "2025-02-10", "authorization_id": "A1"},
        # Open span: effective end is the admission date
        {"patient_id": "P3", "admission_date": "2025-03-02",
         "discharge_date": None, "authorization_id": "A3"},
        {"patient_id": "P5", "admission_date": "2025-02-01",
         "discharge_date": "2025-02-03", "authorization_id": "A5"},
    ]


@pytest.fixture
def make_linked():
    """Factory for linked events with only the identifiers under test set."""

    def _make(
        claim_id=None,
        hie_encounter_id=None,
        authorization_id=None,
        office_name="North",
        event_id="E1",
    ):
        return LinkedEvent(
            event_id=event_id,
            patient_id="P1",
            admit_date=date(2025, 2, 1),
            discharge_date=date(2025, 2, 5),
            office_name=office_name,
            claim_id=claim_id,
            hie_encounter_id=hie_encounter_id,
            authorization_id=authorization_id,
        )

    return _make


def write_csv(path, rows, columns):
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=columns)
        writer.writeheader()
        for row in rows:
            writer.writerow({c: "" if row.get(c) is None else row[c] for c in columns})
    return path


@pytest.fixture
def csv_inputs(tmp_path, sample_events, sample_census, sample_authorizations):
    """The sample relations written as CSV files."""
    from data_completeness.io.tabular import (
        AUTHORIZATION_COLUMNS,
        CENSUS_COLUMNS,
        EVENT_COLUMNS,
    )

    return {
        "events": write_csv(tmp_path / "events.csv", sample_events, EVENT_COLUMNS),
        "census": write_csv(tmp_path / "census.csv", sample_census, CENSUS_COLUMNS),
        "authorizations": write_csv(
            tmp_path / "authorizations.csv", sample_authorizations, AUTHORIZATION_COLUMNS
        ),
    }
