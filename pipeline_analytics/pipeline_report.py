"""
CRM Pipeline Report
====================
Runs every engine component over one snapshot and writes the derived
metrics to data/processed/pipeline_metrics.json.

Usage:
    python -m pipeline_analytics.pipeline_report --input data/raw/snapshot.json
    python -m pipeline_analytics.pipeline_report --input snap.json --horizon 6
    python -m pipeline_analytics.pipeline_report --input snap.json --now 2024-01-01T00:00:00Z
"""
from __future__ import annotations

import argparse
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from pipeline_analytics.activity_analyzer import (
    count_activities_by_type,
    overdue_tasks,
    recent_activities,
)
from pipeline_analytics.contact_analyzer import (
    count_contacts_by_status,
    days_since_contact,
    status_distribution,
)
from pipeline_analytics.deal_health import (
    classify_deals,
    filter_by_stage,
    sort_by_health,
    summarize_health,
)
from pipeline_analytics.funnel import conversion_rates
from pipeline_analytics.lead_analyzer import campaign_summaries, count_leads_by_status
from pipeline_analytics.lib.config import load_config, rot_thresholds_from_config
from pipeline_analytics.lib.errors import AnalyticsError, ReportWriteError
from pipeline_analytics.lib.logger import set_level, setup_logger
from pipeline_analytics.lib.utils import Clock, atomic_write_json, parse_ts, utc_now
from pipeline_analytics.pipeline_analyzer import (
    group_deals_by_stage,
    index_contacts,
    open_value,
    stage_summary,
    total_value,
    value_by_stage,
    weighted_value,
)
from pipeline_analytics.revenue_forecast import (
    FORECAST_HORIZONS,
    average_growth_rate,
    forecast_revenue,
)
from pipeline_analytics.snapshot import Snapshot, load_snapshot_file

logger = setup_logger("pipeline_report")

PROJECT_ROOT = Path(__file__).resolve().parent.parent
PROCESSED_DIR = PROJECT_ROOT / "data" / "processed"
DEFAULT_OUTPUT = PROCESSED_DIR / "pipeline_metrics.json"


def _dump(models: List[BaseModel]) -> List[Dict[str, Any]]:
    return [m.model_dump() for m in models]


def analyze_snapshot(
    snapshot: Snapshot,
    now: datetime,
    config: Optional[Dict[str, Any]] = None,
    stage_filter: Optional[str] = None,
) -> Dict[str, Any]:
    """Run every engine component over ``snapshot``.

    Never reads the clock and writes nothing. When ``config`` is omitted it
    is loaded with load_config(), which reads the environment and .env.
    """
    config = config or load_config()
    thresholds = rot_thresholds_from_config(config)

    # Pipeline
    deals_by_stage = group_deals_by_stage(snapshot.deals, index_contacts(snapshot.contacts))
    pipeline_metrics = {
        "total_value": total_value(snapshot.deals),
        "open_value": open_value(snapshot.deals),
        "weighted_value": weighted_value(snapshot.deals),
        "value_by_stage": {
            stage.value: value for stage, value in value_by_stage(deals_by_stage).items()
        },
        "stage_summary": _dump(stage_summary(deals_by_stage)),
    }

    # Deal health
    classified = classify_deals(snapshot.deals, now, thresholds)
    shown = sort_by_health(filter_by_stage(classified, stage_filter))
    deal_health = {
        "stage_filter": stage_filter or "all",
        "deals": _dump(shown),
        "summary": {
            status.value: summary.model_dump()
            for status, summary in summarize_health(shown).items()
        },
    }

    # Forecast
    horizon = config["forecast_horizon"]
    growth = average_growth_rate(snapshot.revenue)
    forecast = {
        "horizon": horizon,
        "avg_growth_rate": float(growth) if growth is not None else None,
        "series": _dump(forecast_revenue(snapshot.revenue, horizon)),
    }

    # Contacts
    status_counts = count_contacts_by_status(snapshot.contacts)
    never_contacted = sum(
        1 for c in snapshot.contacts if days_since_contact(c, now) is None
    )
    contact_metrics = {
        "total_contacts": len(snapshot.contacts),
        "by_status": {status.value: count for status, count in status_counts.items()},
        "distribution": _dump(status_distribution(status_counts)),
        "never_contacted": never_contacted,
    }

    # Activities
    activity_metrics = {
        "by_type": {
            kind.value: count
            for kind, count in count_activities_by_type(snapshot.activities).items()
        },
        "recent": _dump(recent_activities(snapshot.activities, config["recent_activity_limit"])),
        "overdue_tasks": _dump(overdue_tasks(snapshot.activities, now)),
    }

    # Campaign leads
    lead_metrics = {
        "total_leads": len(snapshot.leads),
        "by_status": {
            status.value: count
            for status, count in count_leads_by_status(snapshot.leads).items()
        },
        "campaigns": _dump(campaign_summaries(snapshot.leads)),
    }

    return {
        "reference_time": now.isoformat(),
        "record_counts": snapshot.record_counts(),
        "skipped_records": dict(snapshot.skipped),
        "pipeline_metrics": pipeline_metrics,
        "deal_health": deal_health,
        "funnel": _dump(conversion_rates(deals_by_stage)),
        "forecast": forecast,
        "contact_metrics": contact_metrics,
        "activity_metrics": activity_metrics,
        "lead_metrics": lead_metrics,
        "config_used": config,
    }


def run_pipeline_analysis(
    input_path: str | Path,
    output_path: str | Path = DEFAULT_OUTPUT,
    config: Optional[Dict[str, Any]] = None,
    clock: Clock = utc_now,
    now: Optional[datetime] = None,
    stage_filter: Optional[str] = None,
) -> Dict[str, Any]:
    """Load a snapshot, run every analyzer, and save the output.

    ``now`` fixes the reference instant; otherwise ``clock`` is read once.
    Returns the full metrics dictionary.

    Raises:
        DataFetchError: If the snapshot cannot be read.
        ReportWriteError: If the output file cannot be written.
    """
    config = config or load_config()
    logger.info("Starting pipeline analysis")

    snapshot = load_snapshot_file(input_path)
    reference = now or clock()

    output = {"generated_at": clock().isoformat()}
    output.update(analyze_snapshot(snapshot, reference, config, stage_filter))

    if not atomic_write_json(output, output_path):
        raise ReportWriteError(str(output_path))

    logger.info("Analysis complete. Output saved to %s", output_path)
    return output


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Derive pipeline, deal health, funnel and forecast metrics from a CRM snapshot",
    )
    parser.add_argument("--input", required=True, help="Snapshot JSON file")
    parser.add_argument("--output", default=str(DEFAULT_OUTPUT), help="Processed metrics JSON file")
    parser.add_argument("--config", default=None, help="JSON file with config overrides")
    parser.add_argument("--horizon", type=int, choices=FORECAST_HORIZONS, default=None,
                        help="Forecast horizon in months")
    parser.add_argument("--now", default=None, help="Reference instant (ISO-8601)")
    parser.add_argument("--stage", default=None, help="Only list deals in this stage (health table)")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.log_level:
        set_level(args.log_level)

    now = None
    if args.now:
        now = parse_ts(args.now)
        if now is None:
            logger.error("Invalid --now value: %s", args.now)
            return 1

    try:
        config = load_config(args.config)
        if args.horizon:
            config["forecast_horizon"] = args.horizon
        results = run_pipeline_analysis(
            args.input, args.output, config=config, now=now, stage_filter=args.stage,
        )
    except AnalyticsError as e:
        logger.error("Pipeline analysis failed: %s", e)
        return 1

    counts = results["record_counts"]
    logger.info(
        "%d deals, %d contacts processed. Output: %s",
        counts["deals"], counts["contacts"], args.output,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
