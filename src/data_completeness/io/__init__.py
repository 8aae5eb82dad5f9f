"""CSV loading and writing of the analysis relations."""
from data_completeness.io.tabular import (
    AUTHORIZATION_COLUMNS,
    CENSUS_COLUMNS,
    EVENT_COLUMNS,
    format_table,
    load_authorizations,
    load_census,
    load_events,
    normalize_nulls,
    rows_to_frame,
    write_rows,
)

__all__ = [
    "AUTHORIZATION_COLUMNS",
    "CENSUS_COLUMNS",
    "EVENT_COLUMNS",
    "format_table",
    "load_authorizations",
    "load_census",
    "load_events",
    "normalize_nulls",
    "rows_to_frame",
    "write_rows",
]
