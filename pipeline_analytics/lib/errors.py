"""
Custom error classes for CRM Pipeline Analytics.
Structured error handling with error codes around the aggregation engine.

The engine functions themselves never raise for malformed records; these
errors belong to the layers that load snapshots, read configuration and
write reports.

Hierarchy:
    AnalyticsError
    ├── DataError
    │   ├── ConfigError
    │   ├── SchemaValidationError
    │   └── DataFetchError
    └── ReportError
        └── ReportWriteError
"""


class AnalyticsError(Exception):
    """Base exception for all pipeline analytics errors."""

    def __init__(self, message: str, code: str = "UNKNOWN", details: dict = None):
        self.code = code
        self.details = details or {}
        super().__init__(f"[{code}] {message}")


# --- Data Errors ---

class DataError(AnalyticsError):
    """Base class for data processing errors."""
    pass


class ConfigError(DataError):
    """Configuration file or environment override error."""

    def __init__(self, message: str, config_path: str = None, key: str = None):
        super().__init__(
            message, code="CONFIG_ERROR",
            details={"config_path": config_path, "key": key},
        )


class SchemaValidationError(DataError):
    """A snapshot row doesn't match the expected record schema."""

    def __init__(self, message: str, collection: str = None,
                 record_id: str = None, field: str = None):
        super().__init__(
            message, code="SCHEMA_INVALID",
            details={"collection": collection, "record_id": record_id, "field": field},
        )


class DataFetchError(DataError):
    """Failed to load a snapshot from storage."""

    def __init__(self, message: str, source: str = None):
        super().__init__(
            message, code="DATA_FETCH_FAILED", details={"source": source},
        )


# --- Report Errors ---

class ReportError(AnalyticsError):
    """Report assembly error."""
    pass


class ReportWriteError(ReportError):
    """The processed metrics file could not be written."""

    def __init__(self, output_path: str, cause: Exception = None):
        msg = f"Could not write report to '{output_path}'"
        if cause:
            msg += f": {cause}"
        super().__init__(
            msg, code="REPORT_WRITE_FAILED", details={"output_path": output_path},
        )
