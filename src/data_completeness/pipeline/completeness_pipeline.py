"""
Data Completeness Pipeline.

Runs the analysis end to end over one snapshot of the three inputs:
- Validation: parse rows, reject those missing required fields
- Linkage: cutoff filter, office attribution, authorization overlap
- Classification: match type and presence flags per linked event
- Aggregation: detail, office and overall capture rates

Every run is recorded in the lineage tracker. Failures are logged, marked on
the run and re-raised to the caller; nothing is retried.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Sequence

import structlog

from data_completeness.aggregation.capture_aggregator import (
    AggregateRow,
    CaptureAggregator,
)
from data_completeness.classification.match_classifier import classify_events
from data_completeness.config import (
    DEFAULT_CUTOFF_DATE,
    UNASSIGNED_OFFICE,
    AuthorizationFanout,
    CompletenessSettings,
)
from data_completeness.errors import DataValidationError
from data_completeness.lineage.run_lineage import (
    PipelineRun,
    RunLineageTracker,
    RunStatus,
    TransformationType,
    utcnow,
)
from data_completeness.linkage.event_linker import EventLinker
from data_completeness.quality.input_validation import (
    InputValidationReport,
    InputValidator,
)

logger = structlog.get_logger(__name__)

PIPELINE_NAME = "data_completeness"
PIPELINE_VERSION = "1.0.0"

Rows = Sequence[Mapping[str, Any]]


@dataclass
class CompletenessRun:
    """Result of one completeness analysis run."""

    run_id: str
    cutoff_date: date
    authorization_fanout: AuthorizationFanout
    rows: list[AggregateRow]
    validation_report: InputValidationReport
    events_in_window: int
    linked_rows: int
    lineage: PipelineRun

    @property
    def fanout_rows(self) -> int:
        """Linked rows beyond one per event, caused by overlapping authorizations."""
        return self.linked_rows - self.events_in_window

    @property
    def grand_total(self) -> AggregateRow | None:
        return self.rows[-1] if self.rows else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "cutoff_date": self.cutoff_date.isoformat(),
            "authorization_fanout": self.authorization_fanout.value,
            "events_in_window": self.events_in_window,
            "linked_rows": self.linked_rows,
            "fanout_rows": self.fanout_rows,
            "rows": [r.to_dict() for r in self.rows],
            "validation": self.validation_report.to_dict(),
            "lineage": self.lineage.to_dict(),
        }


class CompletenessPipeline:
    """
    Orchestrates validation, linkage, classification and aggregation.

    Settings supply defaults; arguments passed to ``run`` take precedence.
    """

    def __init__(
        self,
        settings: CompletenessSettings | None = None,
        lineage_tracker: RunLineageTracker | None = None,
    ):
        self.settings = settings or CompletenessSettings()
        self.lineage_tracker = lineage_tracker or RunLineageTracker()
        self.validator = InputValidator()
        self.aggregator = CaptureAggregator()

    def run(
        self,
        events: Rows,
        census: Rows,
        authorizations: Rows,
        cutoff_date: date | None = None,
        authorization_fanout: AuthorizationFanout | str | None = None,
        strict: bool | None = None,
    ) -> CompletenessRun:
        """
        Compute capture rates for one snapshot.

        Args:
            events: Inpatient event rows
            census: Monthly office census rows
            authorizations: Authorization span rows
            cutoff_date: Earliest admit date included
            authorization_fanout: Policy for events overlapping several authorizations
            strict: Raise instead of excluding rows that fail validation

        Returns:
            Aggregated rows with the validation report and run lineage

        Raises:
            DataValidationError: In strict mode, when any input row is rejected
        """
        cutoff = cutoff_date or self.settings.cutoff_date
        fanout = AuthorizationFanout(authorization_fanout or self.settings.authorization_fanout)
        strict = self.settings.strict_validation if strict is None else strict

        run = self.lineage_tracker.start_run(PIPELINE_NAME, PIPELINE_VERSION)
        log = logger.bind(run_id=run.run_id)
        log.info(
            "completeness_run_started",
            cutoff_date=cutoff.isoformat(),
            authorization_fanout=fanout.value,
            strict=strict,
        )

        try:
            started = utcnow()
            validated = self.validator.validate(events, census, authorizations)
            report = validated.report
            self.lineage_tracker.record_stage(
                run.run_id,
                "validate_inputs",
                TransformationType.VALIDATION,
                records_in=sum(report.records_read.values()),
                records_out=(
                    len(validated.events) + len(validated.census) + len(validated.authorizations)
                ),
                started_at=started,
                parameters={"rejected_counts": report.rejected_counts},
            )

            if strict and report.total_rejected:
                raise DataValidationError(
                    f"{report.total_rejected} input rows failed validation",
                    rejected_counts=report.rejected_counts,
                )

            linker = EventLinker(
                cutoff_date=cutoff,
                authorization_fanout=fanout,
                unassigned_office=self.settings.unassigned_office,
            )

            started = utcnow()
            in_window = linker.filter_window(validated.events)
            self.lineage_tracker.record_stage(
                run.run_id,
                "filter_cutoff",
                TransformationType.FILTERING,
                records_in=len(validated.events),
                records_out=len(in_window),
                started_at=started,
                parameters={"cutoff_date": cutoff.isoformat()},
            )

            started = utcnow()
            linked = linker.link_window(in_window, validated.census, validated.authorizations)
            self.lineage_tracker.record_stage(
                run.run_id,
                "link_events",
                TransformationType.JOINING,
                records_in=len(in_window),
                records_out=len(linked),
                started_at=started,
                parameters={
                    "census_rows": len(validated.census),
                    "authorization_rows": len(validated.authorizations),
                    "authorization_fanout": fanout.value,
                },
            )

            started = utcnow()
            classified = classify_events(linked)
            self.lineage_tracker.record_stage(
                run.run_id,
                "classify_events",
                TransformationType.CLASSIFICATION,
                records_in=len(linked),
                records_out=len(classified),
                started_at=started,
            )

            started = utcnow()
            rows = self.aggregator.aggregate(classified)
            self.lineage_tracker.record_stage(
                run.run_id,
                "aggregate_capture_rates",
                TransformationType.AGGREGATION,
                records_in=len(classified),
                records_out=len(rows),
                started_at=started,
                parameters={"grouping_sets": ["office_name,match_type", "office_name", "()"]},
            )

        except Exception as e:
            self.lineage_tracker.complete_run(run.run_id, RunStatus.FAILED, error=str(e))
            log.error("completeness_run_failed", error=str(e), error_type=type(e).__name__)
            raise

        self.lineage_tracker.complete_run(run.run_id)

        result = CompletenessRun(
            run_id=run.run_id,
            cutoff_date=cutoff,
            authorization_fanout=fanout,
            rows=rows,
            validation_report=report,
            events_in_window=len(in_window),
            linked_rows=len(linked),
            lineage=run,
        )

        log.info(
            "completeness_run_completed",
            events_in_window=result.events_in_window,
            linked_rows=result.linked_rows,
            fanout_rows=result.fanout_rows,
            output_rows=len(rows),
            rejected_rows=report.total_rejected,
        )

        return result


def compute_completeness(
    events: Rows,
    census: Rows,
    authorizations: Rows,
    cutoff_date: date = DEFAULT_CUTOFF_DATE,
    authorization_fanout: AuthorizationFanout | str = AuthorizationFanout.PRESERVE,
) -> list[AggregateRow]:
    """Capture-rate rows for the given inputs, without settings lookup."""
    # model_construct skips the environment and .env sources
    settings = CompletenessSettings.model_construct(
        cutoff_date=cutoff_date,
        authorization_fanout=AuthorizationFanout(authorization_fanout),
        strict_validation=False,
        unassigned_office=UNASSIGNED_OFFICE,
    )
    return CompletenessPipeline(settings=settings).run(events, census, authorizations).rows
