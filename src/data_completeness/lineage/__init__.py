"""Stage-level lineage of completeness runs."""
from data_completeness.lineage.run_lineage import (
    PipelineRun,
    RunLineageTracker,
    RunStatus,
    StageStep,
    TransformationType,
)

__all__ = [
    "PipelineRun",
    "RunLineageTracker",
    "RunStatus",
    "StageStep",
    "TransformationType",
]
