"""
Snapshot Loader
================
Turns data-store rows into validated, immutable records.

A snapshot is one JSON document holding the collections fetched together:

    {"contacts": [...], "deals": [...], "activities": [...],
     "leads": [...], "revenue": [...]}

Rows use the data store's snake_case columns (``contact_id``,
``created_at`` ...) or the camelCase names of the front-end sample data.
A deal row may embed its joined contact under ``contacts`` or ``contact``.
A deal whose stage is not a pipeline stage is rejected like any other
invalid row.
Rows that fail validation are logged and skipped; one bad row never
aborts the whole snapshot.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from models.crm_models import Activity, Contact, Deal, Lead, RevenuePoint
from pipeline_analytics.lib.errors import DataFetchError, SchemaValidationError
from pipeline_analytics.lib.logger import setup_logger
from pipeline_analytics.lib.utils import safe_decimal

logger = setup_logger(__name__)

COLLECTIONS = ("contacts", "deals", "activities", "leads", "revenue")

M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class Snapshot:
    """Immutable record collections plus a tally of rejected rows."""
    contacts: Tuple[Contact, ...] = ()
    deals: Tuple[Deal, ...] = ()
    activities: Tuple[Activity, ...] = ()
    leads: Tuple[Lead, ...] = ()
    revenue: Tuple[RevenuePoint, ...] = ()
    skipped: Dict[str, int] = field(default_factory=dict)

    def record_counts(self) -> Dict[str, int]:
        return {name: len(getattr(self, name)) for name in COLLECTIONS}


def _validation_error(
    collection: str, row: Any, exc: ValidationError,
) -> SchemaValidationError:
    first = exc.errors()[0] if exc.errors() else {}
    loc = ".".join(str(part) for part in first.get("loc", ()))
    record_id = row.get("id") if isinstance(row, dict) else None
    return SchemaValidationError(
        f"Invalid {collection} row {record_id!r}: {first.get('msg', exc)}",
        collection=collection,
        record_id=None if record_id is None else str(record_id),
        field=loc or None,
    )


def _prepare_deal(row: Dict[str, Any]) -> Dict[str, Any]:
    row = dict(row)
    row["value"] = safe_decimal(row.get("value"))
    embedded = row.pop("contacts", None) or row.get("contact")
    row["contact"] = None
    if isinstance(embedded, dict):
        try:
            row["contact"] = Contact.model_validate(embedded)
        except ValidationError:
            # Joined embeds are often partial (id, name, company only)
            logger.debug("Dropping partial contact embed on deal %s", row.get("id"))
    return row


def _prepare_revenue(row: Dict[str, Any]) -> Dict[str, Any]:
    row = dict(row)
    for key in ("amount", "revenue"):
        if key in row:
            row[key] = safe_decimal(row[key])
    return row


_MODELS: Dict[str, Type[BaseModel]] = {
    "contacts": Contact,
    "deals": Deal,
    "activities": Activity,
    "leads": Lead,
    "revenue": RevenuePoint,
}

_PREPARE = {
    "deals": _prepare_deal,
    "revenue": _prepare_revenue,
}


def parse_records(
    collection: str, rows: Optional[List[Any]], model: Type[M],
) -> Tuple[List[M], int]:
    """Validate rows into ``model`` instances.

    Returns:
        Tuple of (valid records, number of skipped rows).
    """
    records: List[M] = []
    skipped = 0
    prepare = _PREPARE.get(collection)
    for row in rows or []:
        if not isinstance(row, dict):
            skipped += 1
            logger.warning("Skipping non-object %s row: %r", collection, row)
            continue
        try:
            records.append(model.model_validate(prepare(row) if prepare else row))
        except ValidationError as e:
            skipped += 1
            logger.warning("%s", _validation_error(collection, row, e))
    return records, skipped


def load_snapshot(data: Dict[str, Any]) -> Snapshot:
    """Build a Snapshot from an already-decoded snapshot document."""
    if not isinstance(data, dict):
        raise DataFetchError("Snapshot must be a JSON object", source="snapshot")

    records: Dict[str, Tuple[Any, ...]] = {}
    skipped: Dict[str, int] = {}
    for collection in COLLECTIONS:
        rows, skipped[collection] = parse_records(
            collection, data.get(collection), _MODELS[collection],
        )
        records[collection] = tuple(rows)

    snapshot = Snapshot(skipped=skipped, **records)
    counts = snapshot.record_counts()
    logger.info(
        "Loaded snapshot: %d contacts, %d deals, %d activities, %d leads, "
        "%d revenue points (%d rows skipped)",
        counts["contacts"], counts["deals"], counts["activities"], counts["leads"],
        counts["revenue"], sum(skipped.values()),
    )
    return snapshot


def load_snapshot_file(path: str | Path) -> Snapshot:
    """
    Read and validate a snapshot JSON file.

    Raises:
        DataFetchError: If the file is missing or not valid JSON.
    """
    path = Path(path)
    if not path.exists():
        raise DataFetchError(f"Snapshot file not found: {path}", source=str(path))
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise DataFetchError(f"Could not read snapshot {path}: {e}", source=str(path))
    logger.info("Reading snapshot from %s", path)
    return load_snapshot(data)
