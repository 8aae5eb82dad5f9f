"""Input data quality checks."""
from data_completeness.quality.input_validation import (
    InputValidationReport,
    InputValidator,
    QualityCheckResult,
    QualityDimension,
    QualityStatus,
    Relation,
    ValidatedInputs,
)

__all__ = [
    "InputValidationReport",
    "InputValidator",
    "QualityCheckResult",
    "QualityDimension",
    "QualityStatus",
    "Relation",
    "ValidatedInputs",
]
