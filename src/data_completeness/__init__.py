"""Data Completeness - capture rates of claims, HIE and authorization systems for inpatient events."""
from data_completeness.aggregation.capture_aggregator import AggregateRow
from data_completeness.classification.match_classifier import MatchType
from data_completeness.config import AuthorizationFanout, CompletenessSettings
from data_completeness.pipeline.completeness_pipeline import (
    CompletenessPipeline,
    CompletenessRun,
    compute_completeness,
)

__version__ = "1.0.0"
__all__ = [
    "AggregateRow",
    "AuthorizationFanout",
    "CompletenessPipeline",
    "CompletenessRun",
    "CompletenessSettings",
    "MatchType",
    "compute_completeness",
]
