"""
Tabular input/output.

Reads the three input relations from CSV with pandas and hands them to the
pipeline as plain row mappings. Every cell is read as text; null markers
(empty, ``NULL``, ``N/A`` ...) become ``None`` and surrounding whitespace is
trimmed. Writes the aggregated rows back out in the fixed output column order.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

import pandas as pd
import structlog

from data_completeness.aggregation.capture_aggregator import (
    OUTPUT_COLUMNS,
    AggregateRow,
)
from data_completeness.errors import InputAccessError

logger = structlog.get_logger(__name__)

EVENT_COLUMNS = (
    "event_id",
    "patient_id",
    "admit_date",
    "discharge_date",
    "claim_id",
    "hie_encounter_id",
)
CENSUS_COLUMNS = ("patient_id", "month_year", "office_name")
AUTHORIZATION_COLUMNS = (
    "patient_id",
    "admission_date",
    "discharge_date",
    "authorization_id",
)

# Any field spelled exactly like a token reads as missing, so an office
# named "NA" is reported under the unassigned label.
NULL_TOKENS = frozenset({"", "NULL", "null", "N/A", "n/a", "NA", "None", "none"})


def normalize_nulls(record: dict[str, Any]) -> dict[str, Any]:
    """Trim strings and map null markers to ``None``."""
    normalized: dict[str, Any] = {}
    for key, value in record.items():
        if isinstance(value, str):
            value = value.strip()
            if value in NULL_TOKENS:
                value = None
        normalized[key] = value
    return normalized


def read_relation(
    path: str | Path,
    columns: tuple[str, ...],
    source: str,
) -> list[dict[str, Any]]:
    """
    Load one CSV relation as row dicts restricted to ``columns``.

    Raises:
        InputAccessError: The file cannot be read or lacks a column
    """
    try:
        frame = pd.read_csv(path, dtype=str, keep_default_na=False)
    except (OSError, pd.errors.EmptyDataError, pd.errors.ParserError) as e:
        raise InputAccessError(source, str(e)) from e

    frame.columns = [str(c).strip() for c in frame.columns]
    missing = [c for c in columns if c not in frame.columns]
    if missing:
        raise InputAccessError(source, f"missing columns: {', '.join(missing)}")

    records = [normalize_nulls(r) for r in frame[list(columns)].to_dict(orient="records")]

    logger.info("relation_loaded", source=source, path=str(path), rows=len(records))

    return records


def load_events(path: str | Path) -> list[dict[str, Any]]:
    return read_relation(path, EVENT_COLUMNS, "events")


def load_census(path: str | Path) -> list[dict[str, Any]]:
    return read_relation(path, CENSUS_COLUMNS, "census")


def load_authorizations(path: str | Path) -> list[dict[str, Any]]:
    return read_relation(path, AUTHORIZATION_COLUMNS, "authorizations")


def rows_to_frame(rows: Iterable[AggregateRow]) -> pd.DataFrame:
    return pd.DataFrame(
        [row.to_dict() for row in rows],
        columns=list(OUTPUT_COLUMNS),
    )


def write_rows(rows: Iterable[AggregateRow], path: str | Path) -> None:
    """Write output rows as CSV; rollup keys are written as empty cells."""
    frame = rows_to_frame(rows)
    frame.to_csv(path, index=False)
    logger.info("output_written", path=str(path), rows=len(frame))


def format_table(rows: Iterable[AggregateRow], all_label: str = "(all)") -> str:
    """Plain-text table of the output rows for console display."""
    frame = rows_to_frame(rows)
    if frame.empty:
        return "(no events in window)"
    frame[["office_name", "match_type"]] = frame[["office_name", "match_type"]].fillna(all_label)
    return frame.to_string(index=False)
