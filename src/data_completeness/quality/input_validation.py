"""
Input Validation for the Data Completeness Analysis.

Checks the three source relations before linkage:
- Required fields present (event, patient and date keys)
- Dates readable as calendar dates
- Event IDs unique, census unique per patient and month
- Stays and authorization spans not ending before they start

Rows failing the required-field or date checks are rejected: they are left
out of the computation and counted on the report. The remaining checks only
grade the data and never drop rows.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, Mapping, Sequence, TypeVar

import structlog

from data_completeness.linkage.records import (
    AuthorizationRecord,
    CensusRecord,
    Event,
    RecordError,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

MAX_REPORTED_IDS = 100


class QualityDimension(str, Enum):
    """Data quality dimensions covered by the input checks."""

    COMPLETENESS = "completeness"  # Non-null required values
    VALIDITY = "validity"          # Parseable dates and months
    UNIQUENESS = "uniqueness"      # No duplicate keys
    CONSISTENCY = "consistency"    # Cross-field rules


class QualityStatus(str, Enum):
    """Quality check result status."""

    PASSED = "passed"
    WARNING = "warning"
    FAILED = "failed"
    SKIPPED = "skipped"


class Relation(str, Enum):
    """Input relations of the analysis."""

    EVENTS = "events"
    CENSUS = "census"
    AUTHORIZATIONS = "authorizations"


@dataclass
class QualityCheckResult:
    """Result of a single quality check on one relation."""

    rule_id: str
    rule_name: str
    relation: Relation
    dimension: QualityDimension
    status: QualityStatus
    records_checked: int
    records_failed: int
    failed_record_ids: list[str] = field(default_factory=list)
    details: str = ""

    @property
    def score(self) -> float:
        if self.records_checked == 0:
            return 1.0
        return (self.records_checked - self.records_failed) / self.records_checked

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "relation": self.relation.value,
            "dimension": self.dimension.value,
            "status": self.status.value,
            "score": round(self.score, 4),
            "records_checked": self.records_checked,
            "records_failed": self.records_failed,
            "failed_record_ids": self.failed_record_ids,
            "details": self.details,
        }


@dataclass
class RelationValidation(Generic[T]):
    """Accepted records of one relation plus its check results."""

    relation: Relation
    records_read: int
    accepted: list[T]
    rejected_ids: list[str]
    check_results: list[QualityCheckResult]

    @property
    def rejected_count(self) -> int:
        return self.records_read - len(self.accepted)


@dataclass
class InputValidationReport:
    """Validation outcome across all three relations."""

    check_results: list[QualityCheckResult]
    records_read: dict[str, int]
    rejected_counts: dict[str, int]

    @property
    def total_rejected(self) -> int:
        return sum(self.rejected_counts.values())

    @property
    def overall_status(self) -> QualityStatus:
        statuses = {r.status for r in self.check_results}
        if QualityStatus.FAILED in statuses:
            return QualityStatus.FAILED
        if QualityStatus.WARNING in statuses:
            return QualityStatus.WARNING
        if not self.check_results:
            return QualityStatus.SKIPPED
        return QualityStatus.PASSED

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall_status": self.overall_status.value,
            "records_read": self.records_read,
            "rejected_counts": self.rejected_counts,
            "total_rejected": self.total_rejected,
            "check_results": [r.to_dict() for r in self.check_results],
        }


@dataclass
class ValidatedInputs:
    """Typed, accepted records ready for linkage."""

    events: list[Event]
    census: list[CensusRecord]
    authorizations: list[AuthorizationRecord]
    report: InputValidationReport


def _status_for(score: float, fail_below: float = 0.95, warn_below: float = 1.0) -> QualityStatus:
    if score < fail_below:
        return QualityStatus.FAILED
    if score < warn_below:
        return QualityStatus.WARNING
    return QualityStatus.PASSED


class InputValidator:
    """
    Parses and grades the raw input relations.

    Each relation goes through the same two rejecting checks (required
    fields, date validity) followed by relation-specific grading checks.
    """

    def validate(
        self,
        events: Sequence[Mapping[str, Any]],
        census: Sequence[Mapping[str, Any]],
        authorizations: Sequence[Mapping[str, Any]],
    ) -> ValidatedInputs:
        """
        Validate all three relations.

        Args:
            events: Raw event rows
            census: Raw census rows
            authorizations: Raw authorization rows

        Returns:
            Accepted typed records and the combined report
        """
        event_result = self.validate_events(events)
        census_result = self.validate_census(census)
        auth_result = self.validate_authorizations(authorizations)

        results = [event_result, census_result, auth_result]
        report = InputValidationReport(
            check_results=[c for r in results for c in r.check_results],
            records_read={r.relation.value: r.records_read for r in results},
            rejected_counts={r.relation.value: r.rejected_count for r in results},
        )

        log = logger.warning if report.total_rejected else logger.info
        log(
            "input_validation_completed",
            status=report.overall_status.value,
            records_read=report.records_read,
            rejected_counts=report.rejected_counts,
        )

        return ValidatedInputs(
            events=event_result.accepted,
            census=census_result.accepted,
            authorizations=auth_result.accepted,
            report=report,
        )

    def validate_events(
        self,
        records: Sequence[Mapping[str, Any]],
    ) -> RelationValidation[Event]:
        result = self._parse(
            Relation.EVENTS,
            "EV",
            records,
            Event.from_record,
            lambda r, i: str(r.get("event_id") or f"row {i}"),
        )
        result.check_results.append(self._check_duplicate_events(result.accepted))
        result.check_results.append(self._check_stay_order(result.accepted))
        return result

    def validate_census(
        self,
        records: Sequence[Mapping[str, Any]],
    ) -> RelationValidation[CensusRecord]:
        result = self._parse(
            Relation.CENSUS,
            "CN",
            records,
            CensusRecord.from_record,
            lambda r, i: f"{r.get('patient_id')}:{r.get('month_year')}" if r.get("patient_id") else f"row {i}",
        )
        result.check_results.append(self._check_duplicate_census(result.accepted))
        return result

    def validate_authorizations(
        self,
        records: Sequence[Mapping[str, Any]],
    ) -> RelationValidation[AuthorizationRecord]:
        result = self._parse(
            Relation.AUTHORIZATIONS,
            "AU",
            records,
            AuthorizationRecord.from_record,
            lambda r, i: str(r.get("authorization_id") or f"row {i}"),
        )
        result.check_results.append(self._check_span_order(result.accepted))
        return result

    # -------------------------------------------------------------------------
    # Rejecting checks
    # -------------------------------------------------------------------------

    def _parse(
        self,
        relation: Relation,
        prefix: str,
        records: Sequence[Mapping[str, Any]],
        parse_fn: Callable[[Mapping[str, Any]], T],
        id_fn: Callable[[Mapping[str, Any], int], str],
    ) -> RelationValidation[T]:
        accepted: list[T] = []
        missing: list[str] = []
        invalid: list[str] = []
        missing_fields: Counter[str] = Counter()
        invalid_fields: Counter[str] = Counter()

        for index, record in enumerate(records):
            try:
                accepted.append(parse_fn(record))
            except RecordError as e:
                record_id = id_fn(record, index)
                if e.reason == RecordError.MISSING:
                    missing.append(record_id)
                    missing_fields[e.field] += 1
                else:
                    invalid.append(record_id)
                    invalid_fields[e.field] += 1

        if missing or invalid:
            logger.warning(
                "input_rows_rejected",
                relation=relation.value,
                missing_required=dict(missing_fields),
                invalid_dates=dict(invalid_fields),
            )

        checked = len(records)
        required = QualityCheckResult(
            rule_id=f"{prefix}001",
            rule_name="required_fields_present",
            relation=relation,
            dimension=QualityDimension.COMPLETENESS,
            status=QualityStatus.PASSED,
            records_checked=checked,
            records_failed=len(missing),
            failed_record_ids=missing[:MAX_REPORTED_IDS],
            details=", ".join(f"{k}={v}" for k, v in sorted(missing_fields.items())),
        )
        dates = QualityCheckResult(
            rule_id=f"{prefix}002",
            rule_name="valid_dates",
            relation=relation,
            dimension=QualityDimension.VALIDITY,
            status=QualityStatus.PASSED,
            records_checked=checked - len(missing),
            records_failed=len(invalid),
            failed_record_ids=invalid[:MAX_REPORTED_IDS],
            details=", ".join(f"{k}={v}" for k, v in sorted(invalid_fields.items())),
        )
        for check in (required, dates):
            check.status = _status_for(check.score) if checked else QualityStatus.SKIPPED

        return RelationValidation(
            relation=relation,
            records_read=checked,
            accepted=accepted,
            rejected_ids=missing + invalid,
            check_results=[required, dates],
        )

    # -------------------------------------------------------------------------
    # Grading checks
    # -------------------------------------------------------------------------

    def _check_duplicate_events(self, events: list[Event]) -> QualityCheckResult:
        """Event IDs should be unique; duplicates are counted, not dropped."""
        counts = Counter(e.event_id for e in events)
        duplicates = [event_id for event_id, n in counts.items() if n > 1]
        failed = sum(counts[event_id] - 1 for event_id in duplicates)

        return QualityCheckResult(
            rule_id="EV003",
            rule_name="unique_event_ids",
            relation=Relation.EVENTS,
            dimension=QualityDimension.UNIQUENESS,
            status=QualityStatus.WARNING if duplicates else QualityStatus.PASSED,
            records_checked=len(events),
            records_failed=failed,
            failed_record_ids=duplicates[:MAX_REPORTED_IDS],
            details=f"Found {failed} duplicate event rows",
        )

    def _check_stay_order(self, events: list[Event]) -> QualityCheckResult:
        checked = [e for e in events if e.discharge_date is not None]
        failed = [e.event_id for e in checked if e.discharge_date < e.admit_date]

        return QualityCheckResult(
            rule_id="EV004",
            rule_name="discharge_not_before_admit",
            relation=Relation.EVENTS,
            dimension=QualityDimension.CONSISTENCY,
            status=(QualityStatus.WARNING if failed else QualityStatus.PASSED) if checked else QualityStatus.SKIPPED,
            records_checked=len(checked),
            records_failed=len(failed),
            failed_record_ids=failed[:MAX_REPORTED_IDS],
            details=f"{len(events) - len(checked)} stays without discharge date",
        )

    def _check_duplicate_census(self, census: list[CensusRecord]) -> QualityCheckResult:
        """Only the first census row per patient and month is used for linkage."""
        counts = Counter((c.patient_id, c.month_year) for c in census)
        duplicates = [f"{p}:{m}" for (p, m), n in counts.items() if n > 1]
        failed = sum(n - 1 for n in counts.values() if n > 1)

        return QualityCheckResult(
            rule_id="CN003",
            rule_name="unique_patient_month",
            relation=Relation.CENSUS,
            dimension=QualityDimension.UNIQUENESS,
            status=QualityStatus.WARNING if duplicates else QualityStatus.PASSED,
            records_checked=len(census),
            records_failed=failed,
            failed_record_ids=duplicates[:MAX_REPORTED_IDS],
            details=f"{failed} census rows shadowed by an earlier row for the same month",
        )

    def _check_span_order(self, authorizations: list[AuthorizationRecord]) -> QualityCheckResult:
        failed = [
            a.authorization_id for a in authorizations
            if a.discharge_date is not None and a.discharge_date < a.admission_date
        ]

        return QualityCheckResult(
            rule_id="AU003",
            rule_name="span_not_reversed",
            relation=Relation.AUTHORIZATIONS,
            dimension=QualityDimension.CONSISTENCY,
            status=QualityStatus.WARNING if failed else QualityStatus.PASSED,
            records_checked=len(authorizations),
            records_failed=len(failed),
            failed_record_ids=failed[:MAX_REPORTED_IDS],
            details=f"{len(failed)} spans discharge before admission",
        )
