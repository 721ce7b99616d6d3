"""
Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import pytest

from tests._env import ensure_test_env

ensure_test_env()

import config as config_module
from config import Config


def test_targets_are_parsed_from_environment(monkeypatch):
    monkeypatch.setenv(
        "TARGETS",
        "mimir|metrics-engine|http://mimir.example.com, am|alert-dispatcher|http://am.example.com:9093",
    )
    settings = Config()
    assert settings.TARGETS == [
        {"name": "mimir", "type": "metrics-engine", "endpoint": "http://mimir.example.com"},
        {"name": "am", "type": "alert-dispatcher", "endpoint": "http://am.example.com:9093"},
    ]


@pytest.mark.parametrize(
    "value",
    ["mimir|metrics-engine", "mimir|prometheus|http://mimir.example.com", "|other|http://x.example.com"],
)
def test_malformed_targets_are_rejected(value):
    with pytest.raises(ValueError):
        config_module._parse_targets(value)


@pytest.mark.parametrize(
    "name,value",
    [
        ("SYNC_PUSH_TIMEOUT", "0"),
        ("SYNC_MAX_ATTEMPTS", "0"),
        ("SYNC_RETRY_BACKOFF", "-1"),
        ("SYNC_MAX_CONCURRENCY", "0"),
        ("SYNC_HISTORY_LIMIT", "0"),
        ("AUTO_SYNC_INTERVAL_SECONDS", "0"),
        ("DEFAULT_RECEIVER", "  "),
    ],
)
def test_invalid_settings_fail_validation(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError):
        Config()


def test_defaults_and_bool_parsing(monkeypatch):
    monkeypatch.delenv("DEFAULT_GROUP_BY", raising=False)
    monkeypatch.setenv("AUTO_SYNC_ENABLED", "yes")
    settings = Config()
    assert settings.AUTO_SYNC_ENABLED is True
    assert settings.DEFAULT_GROUP_BY == ["alertname", "cluster", "service"]
    assert config_module._to_list(" , ", default=["x"]) == ["x"]
