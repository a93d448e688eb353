"""
Configuration for CRM Pipeline Analytics.
Defaults, optional JSON overrides and environment overrides (.env supported).

Usage:
    from pipeline_analytics.lib.config import load_config, rot_thresholds_from_config
    config = load_config("config/analytics.json")
    thresholds = rot_thresholds_from_config(config)

Environment overrides:
    ROT_THRESHOLD_LEAD, ROT_THRESHOLD_CONTACT, ROT_THRESHOLD_PROPOSAL,
    ROT_THRESHOLD_NEGOTIATION, ROT_THRESHOLD_CLOSED   (days, or "none")
    FORECAST_HORIZON                                   (3, 6 or 12)
    RECENT_ACTIVITY_LIMIT
"""
import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv

from models.crm_models import STAGE_ORDER, Stage
from pipeline_analytics.lib.errors import ConfigError
from pipeline_analytics.lib.logger import setup_logger
from pipeline_analytics.revenue_forecast import FORECAST_HORIZONS

logger = setup_logger(__name__)

# Load .env from project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(PROJECT_ROOT / ".env")

DEFAULT_CONFIG: Dict[str, Any] = {
    "rot_thresholds": {
        "lead": 7,
        "contact": 14,
        "proposal": 21,
        "negotiation": 30,
        "closed": None,
    },
    "forecast_horizon": 3,
    "recent_activity_limit": 5,
}

_NULL_WORDS = {"", "none", "null", "never"}


def _parse_threshold(raw: Any, key: str, config_path: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    if isinstance(raw, str):
        if raw.strip().lower() in _NULL_WORDS:
            return None
        try:
            raw = int(raw.strip())
        except ValueError:
            raise ConfigError(f"Threshold for {key} is not a number: {raw!r}",
                              config_path=config_path, key=key)
    if isinstance(raw, bool) or not isinstance(raw, int) or raw < 0:
        raise ConfigError(f"Threshold for {key} must be a non-negative integer or null",
                          config_path=config_path, key=key)
    return raw


def _parse_positive_int(raw: Any, key: str, config_path: Optional[str]) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be an integer, got {raw!r}",
                          config_path=config_path, key=key)
    if isinstance(raw, bool) or value < 1:
        raise ConfigError(f"{key} must be positive, got {raw!r}",
                          config_path=config_path, key=key)
    return value


def _read_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}", config_path=str(path))
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file: {e}", config_path=str(path))
    if not isinstance(data, dict):
        raise ConfigError("Config file must contain a JSON object", config_path=str(path))
    return data


def load_config(
    path: Optional[str | Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """
    Build the effective configuration.

    Args:
        path: Optional JSON file with overrides of DEFAULT_CONFIG keys.
        env: Environment mapping (default: os.environ).

    Returns:
        Validated config dict.

    Raises:
        ConfigError: If the file or an override is invalid.
    """
    env = os.environ if env is None else env
    config_path = str(path) if path else None
    config = copy.deepcopy(DEFAULT_CONFIG)

    if path:
        overrides = _read_config_file(Path(path))
        unknown = set(overrides) - set(DEFAULT_CONFIG)
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(sorted(unknown)))
        for stage_name, raw in (overrides.get("rot_thresholds") or {}).items():
            if stage_name not in config["rot_thresholds"]:
                raise ConfigError(f"Unknown stage in rot_thresholds: {stage_name}",
                                  config_path=config_path, key=stage_name)
            config["rot_thresholds"][stage_name] = raw
        for key in ("forecast_horizon", "recent_activity_limit"):
            if key in overrides:
                config[key] = overrides[key]
        logger.info("Loaded config overrides from %s", path)

    for stage in STAGE_ORDER:
        env_key = f"ROT_THRESHOLD_{stage.value.upper()}"
        if env_key in env:
            config["rot_thresholds"][stage.value] = env[env_key]
    if "FORECAST_HORIZON" in env:
        config["forecast_horizon"] = env["FORECAST_HORIZON"]
    if "RECENT_ACTIVITY_LIMIT" in env:
        config["recent_activity_limit"] = env["RECENT_ACTIVITY_LIMIT"]

    # Validate
    config["rot_thresholds"] = {
        name: _parse_threshold(raw, name, config_path)
        for name, raw in config["rot_thresholds"].items()
    }
    horizon = _parse_positive_int(config["forecast_horizon"], "forecast_horizon", config_path)
    if horizon not in FORECAST_HORIZONS:
        raise ConfigError(
            f"forecast_horizon must be one of {FORECAST_HORIZONS}, got {horizon}",
            config_path=config_path, key="forecast_horizon",
        )
    config["forecast_horizon"] = horizon
    config["recent_activity_limit"] = _parse_positive_int(
        config["recent_activity_limit"], "recent_activity_limit", config_path,
    )
    return config


def rot_thresholds_from_config(config: Mapping[str, Any]) -> Dict[Stage, Optional[int]]:
    """Stage-keyed threshold table for the deal health classifier."""
    raw = config.get("rot_thresholds") or DEFAULT_CONFIG["rot_thresholds"]
    return {Stage(name): days for name, days in raw.items()}
