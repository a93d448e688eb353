"""Tests for configuration loading."""

import json

import pytest

from models.crm_models import Stage
from pipeline_analytics.lib.config import DEFAULT_CONFIG, load_config, rot_thresholds_from_config
from pipeline_analytics.lib.errors import ConfigError


class TestLoadConfig:
    def test_defaults(self):
        config = load_config(env={})
        assert config == DEFAULT_CONFIG
        assert config is not DEFAULT_CONFIG

    def test_env_overrides(self):
        config = load_config(env={
            "ROT_THRESHOLD_LEAD": "3",
            "ROT_THRESHOLD_NEGOTIATION": "none",
            "FORECAST_HORIZON": "6",
        })
        assert config["rot_thresholds"]["lead"] == 3
        assert config["rot_thresholds"]["negotiation"] is None
        assert config["forecast_horizon"] == 6

    def test_file_overrides(self, tmp_path):
        path = tmp_path / "analytics.json"
        path.write_text(json.dumps({
            "rot_thresholds": {"proposal": 10},
            "recent_activity_limit": 8,
        }), encoding="utf-8")
        config = load_config(path, env={})
        assert config["rot_thresholds"]["proposal"] == 10
        assert config["rot_thresholds"]["lead"] == 7
        assert config["recent_activity_limit"] == 8

    def test_env_wins_over_file(self, tmp_path):
        path = tmp_path / "analytics.json"
        path.write_text(json.dumps({"forecast_horizon": 12}), encoding="utf-8")
        assert load_config(path, env={"FORECAST_HORIZON": "3"})["forecast_horizon"] == 3

    @pytest.mark.parametrize("env", [
        {"FORECAST_HORIZON": "4"},
        {"FORECAST_HORIZON": "soon"},
        {"ROT_THRESHOLD_LEAD": "-1"},
        {"ROT_THRESHOLD_CONTACT": "two weeks"},
        {"RECENT_ACTIVITY_LIMIT": "0"},
    ])
    def test_invalid_values_raise(self, env):
        with pytest.raises(ConfigError):
            load_config(env=env)

    def test_unknown_stage_in_file(self, tmp_path):
        path = tmp_path / "analytics.json"
        path.write_text(json.dumps({"rot_thresholds": {"won": 3}}), encoding="utf-8")
        with pytest.raises(ConfigError) as exc:
            load_config(path, env={})
        assert exc.value.details["key"] == "won"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(tmp_path / "nope.json", env={})

    def test_thresholds_keyed_by_stage(self):
        thresholds = rot_thresholds_from_config(load_config(env={}))
        assert thresholds[Stage.CONTACT] == 14
        assert thresholds[Stage.CLOSED] is None
