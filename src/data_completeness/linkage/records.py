"""
Typed input records for the three source systems.

Rows arrive as plain mappings (CSV rows, query results, dicts). Each record
type parses one mapping and raises ``RecordError`` naming the offending field
when a required value is missing or a date cannot be read.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping

MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})(-\d{2})?$")


class RecordError(ValueError):
    """A source row failed to parse."""

    MISSING = "missing"
    INVALID = "invalid"

    def __init__(self, field: str, reason: str, value: Any = None):
        self.field = field
        self.reason = reason
        self.value = value
        super().__init__(f"{reason} value for {field}: {value!r}")


def parse_date(value: Any) -> date | None:
    """Read a calendar date from a date, datetime or ISO 8601 string."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None
    # Accept full timestamps; only the calendar date matters here
    return date.fromisoformat(text[:10])


def month_key(value: Any) -> str:
    """Normalise a month to ``YYYY-MM`` (dates are truncated to their month)."""
    if isinstance(value, (date, datetime)):
        return value.strftime("%Y-%m")

    match = MONTH_PATTERN.match(str(value).strip())
    if not match or not 1 <= int(match.group(2)) <= 12:
        raise ValueError(f"Not a calendar month: {value!r}")
    return f"{match.group(1)}-{match.group(2)}"


def optional_id(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _required_id(record: Mapping[str, Any], field: str) -> str:
    value = optional_id(record.get(field))
    if value is None:
        raise RecordError(field, RecordError.MISSING)
    return value


def _date_field(record: Mapping[str, Any], field: str, required: bool) -> date | None:
    raw = record.get(field)
    try:
        value = parse_date(raw)
    except (TypeError, ValueError) as e:
        raise RecordError(field, RecordError.INVALID, raw) from e
    if value is None and required:
        raise RecordError(field, RecordError.MISSING)
    return value


@dataclass(frozen=True)
class Event:
    """An inpatient stay, carrying its claim and HIE identifiers."""

    event_id: str
    patient_id: str
    admit_date: date
    discharge_date: date | None = None
    claim_id: str | None = None
    hie_encounter_id: str | None = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Event:
        return cls(
            event_id=_required_id(record, "event_id"),
            patient_id=_required_id(record, "patient_id"),
            admit_date=_date_field(record, "admit_date", required=True),
            discharge_date=_date_field(record, "discharge_date", required=False),
            claim_id=optional_id(record.get("claim_id")),
            hie_encounter_id=optional_id(record.get("hie_encounter_id")),
        )

    @property
    def admit_month(self) -> str:
        return month_key(self.admit_date)


@dataclass(frozen=True)
class CensusRecord:
    """Office attribution of a patient for one calendar month."""

    patient_id: str
    month_year: str
    office_name: str | None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> CensusRecord:
        patient_id = _required_id(record, "patient_id")
        raw_month = record.get("month_year")
        if optional_id(raw_month) is None:
            raise RecordError("month_year", RecordError.MISSING)
        try:
            month_year = month_key(raw_month)
        except ValueError as e:
            raise RecordError("month_year", RecordError.INVALID, raw_month) from e

        return cls(
            patient_id=patient_id,
            month_year=month_year,
            office_name=optional_id(record.get("office_name")),
        )


@dataclass(frozen=True)
class AuthorizationRecord:
    """An approved care-authorization span."""

    patient_id: str
    admission_date: date
    authorization_id: str
    discharge_date: date | None = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> AuthorizationRecord:
        return cls(
            patient_id=_required_id(record, "patient_id"),
            admission_date=_date_field(record, "admission_date", required=True),
            authorization_id=_required_id(record, "authorization_id"),
            discharge_date=_date_field(record, "discharge_date", required=False),
        )

    @property
    def effective_end(self) -> date:
        """Discharge date, or the admission date for open spans."""
        return self.discharge_date or self.admission_date

    def overlaps(self, start: date, end: date | None) -> bool:
        """Closed-interval overlap with ``[start, end]``; no end never overlaps."""
        if end is None:
            return False
        return start <= self.effective_end and self.admission_date <= end
