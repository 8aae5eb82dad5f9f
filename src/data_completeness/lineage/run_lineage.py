"""
Run lineage for the data completeness analysis.

Records what each stage of a run consumed and produced so row-count changes
(rejected inputs, the cutoff filter, authorization fan-out) can be traced
after the fact:
- One PipelineRun per invocation
- One StageStep per stage with input/output row counts and parameters
- Audit export of completed runs
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TransformationType(str, Enum):
    """Kinds of stage in a completeness run."""

    VALIDATION = "validation"
    FILTERING = "filtering"
    JOINING = "joining"
    CLASSIFICATION = "classification"
    AGGREGATION = "aggregation"


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class StageStep:
    """A single stage of a run."""

    step_id: str
    stage_name: str
    transformation_type: TransformationType
    records_in: int
    records_out: int
    started_at: datetime
    completed_at: datetime
    parameters: dict[str, Any] = field(default_factory=dict)

    @property
    def duration_seconds(self) -> float:
        return (self.completed_at - self.started_at).total_seconds()

    @property
    def row_delta(self) -> int:
        return self.records_out - self.records_in

    def to_dict(self) -> dict[str, Any]:
        return {
            "step_id": self.step_id,
            "stage_name": self.stage_name,
            "transformation_type": self.transformation_type.value,
            "records_in": self.records_in,
            "records_out": self.records_out,
            "row_delta": self.row_delta,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat(),
            "duration_seconds": self.duration_seconds,
            "parameters": self.parameters,
        }


@dataclass
class PipelineRun:
    """A complete analysis execution."""

    run_id: str
    pipeline_name: str
    pipeline_version: str
    started_at: datetime
    steps: list[StageStep] = field(default_factory=list)
    completed_at: datetime | None = None
    status: RunStatus = RunStatus.RUNNING
    error: str | None = None

    def step(self, stage_name: str) -> StageStep | None:
        for step in self.steps:
            if step.stage_name == stage_name:
                return step
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "pipeline_name": self.pipeline_name,
            "pipeline_version": self.pipeline_version,
            "steps": [s.to_dict() for s in self.steps],
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "status": self.status.value,
            "error": self.error,
        }


class RunLineageTracker:
    """
    Keeps the stage history of completeness runs in memory.

    Features:
    - Run lifecycle (start, record stages, complete or fail)
    - Per-stage row accounting
    - Export for audit
    """

    def __init__(self) -> None:
        self._runs: dict[str, PipelineRun] = {}

    def start_run(
        self,
        pipeline_name: str,
        pipeline_version: str,
    ) -> PipelineRun:
        run = PipelineRun(
            run_id=str(uuid.uuid4()),
            pipeline_name=pipeline_name,
            pipeline_version=pipeline_version,
            started_at=utcnow(),
        )
        self._runs[run.run_id] = run

        logger.info(
            "pipeline_run_started",
            run_id=run.run_id,
            pipeline_name=pipeline_name,
        )

        return run

    def record_stage(
        self,
        run_id: str,
        stage_name: str,
        transformation_type: TransformationType,
        records_in: int,
        records_out: int,
        started_at: datetime,
        parameters: dict[str, Any] | None = None,
    ) -> StageStep:
        """
        Append a completed stage to a run.

        Args:
            run_id: Run the stage belongs to
            stage_name: Human-readable stage name
            transformation_type: Kind of stage
            records_in: Rows consumed
            records_out: Rows produced
            started_at: When the stage began
            parameters: Stage parameters worth keeping for audit

        Returns:
            The recorded step
        """
        run = self.get_run(run_id)

        step = StageStep(
            step_id=str(uuid.uuid4()),
            stage_name=stage_name,
            transformation_type=transformation_type,
            records_in=records_in,
            records_out=records_out,
            started_at=started_at,
            completed_at=utcnow(),
            parameters=parameters or {},
        )
        run.steps.append(step)

        logger.debug(
            "stage_completed",
            run_id=run_id,
            stage=stage_name,
            records_in=records_in,
            records_out=records_out,
        )

        return step

    def complete_run(
        self,
        run_id: str,
        status: RunStatus = RunStatus.COMPLETED,
        error: str | None = None,
    ) -> PipelineRun:
        run = self.get_run(run_id)
        run.completed_at = utcnow()
        run.status = status
        run.error = error

        logger.info(
            "pipeline_run_completed",
            run_id=run_id,
            status=status.value,
            num_steps=len(run.steps),
        )

        return run

    def get_run(self, run_id: str) -> PipelineRun:
        run = self._runs.get(run_id)
        if not run:
            raise ValueError(f"Pipeline run not found: {run_id}")
        return run

    def export_for_audit(self) -> dict[str, Any]:
        """All tracked runs, oldest first."""
        runs = sorted(self._runs.values(), key=lambda r: r.started_at)
        return {
            "export_timestamp": utcnow().isoformat(),
            "summary": {
                "total_runs": len(runs),
                "failed_runs": sum(1 for r in runs if r.status == RunStatus.FAILED),
            },
            "pipeline_runs": [r.to_dict() for r in runs],
        }
