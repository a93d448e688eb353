"""
Utility functions for CRM Pipeline Analytics.
Atomic file writes, timestamp parsing, exact money helpers and the clock.

Usage:
    from pipeline_analytics.lib.utils import atomic_write_json, parse_ts, round_half_up
"""
import json
import os
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from pipeline_analytics.lib.logger import setup_logger

logger = setup_logger(__name__)

# A zero-argument callable returning the current instant.
Clock = Callable[[], datetime]

ONE_DAY = timedelta(days=1)


def utc_now() -> datetime:
    """Current UTC instant. The default Clock of the report runner."""
    return datetime.now(timezone.utc)


def fixed_clock(instant: datetime) -> Clock:
    """Clock that always returns ``instant``."""
    return lambda: instant


def as_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with aware ones."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def parse_ts(ts_str: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp string to a timezone-aware datetime."""
    if not ts_str:
        return None
    if isinstance(ts_str, datetime):
        return as_utc(ts_str)
    try:
        # Handle ISO format with or without trailing Z / offset
        cleaned = str(ts_str).replace("Z", "+00:00")
        return as_utc(datetime.fromisoformat(cleaned))
    except (ValueError, TypeError):
        return None


def whole_days_between(start: datetime, end: datetime) -> int:
    """Whole days from ``start`` to ``end``, truncated toward zero."""
    delta = as_utc(end) - as_utc(start)
    return int(delta / ONE_DAY)


def safe_decimal(val: Any, default: Decimal = Decimal(0)) -> Decimal:
    """Safely convert a value to a finite Decimal."""
    if val is None or isinstance(val, bool):
        return default
    try:
        result = Decimal(str(val)) if isinstance(val, float) else Decimal(val)
    except (InvalidOperation, TypeError, ValueError):
        return default
    if not result.is_finite():
        return default
    return result


def round_half_up(value: Any) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(safe_decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def json_number(value: Decimal) -> Any:
    """Render a Decimal as an int when whole, a float otherwise."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        return json_number(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    return str(obj)


def atomic_write_json(data: Dict, file_path: str | Path, indent: int = 2) -> bool:
    """
    Write JSON data to file atomically using temp file + rename.
    Prevents a half-written report if the program crashes during write.

    Args:
        data: Dictionary to serialize as JSON.
        file_path: Target file path.
        indent: JSON indentation level.

    Returns:
        True if successful, False otherwise.
    """
    file_path = Path(file_path)
    temp_path = file_path.with_suffix(file_path.suffix + ".tmp")

    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)

        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=indent, default=_json_default)

        os.replace(temp_path, file_path)
        logger.debug("Atomically wrote JSON to %s", file_path)
        return True

    except (OSError, TypeError, ValueError) as e:
        logger.error("Failed to write JSON to %s: %s", file_path, e)
        if temp_path.exists():
            try:
                temp_path.unlink()
            except OSError:
                logger.warning("Could not remove temp file %s", temp_path)
        return False
