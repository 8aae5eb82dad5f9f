"""End-to-end completeness analysis."""
from data_completeness.pipeline.completeness_pipeline import (
    CompletenessPipeline,
    CompletenessRun,
    compute_completeness,
)

__all__ = ["CompletenessPipeline", "CompletenessRun", "compute_completeness"]
