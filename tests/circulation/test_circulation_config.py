"""Tests for environment-backed circulation configuration."""
from __future__ import annotations

from datetime import timezone
from pathlib import Path

import pytest

from circulation.config import CirculationEnv, env_bool, load_circulation_env, resolve_timezone

_VARS = (
    "CIRCULATION_TIMEZONE",
    "CIRCULATION_POLICY_DIR",
    "CIRCULATION_STRICT_POLICY_SCHEMA",
    "CIRCULATION_DEBUG",
)


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = load_circulation_env()

    assert config == CirculationEnv(
        timezone="UTC", policy_dir=None, strict_policy_schema=False, debug=False
    )
    assert config.tzinfo is timezone.utc


def test_values_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("CIRCULATION_TIMEZONE", "Europe/Berlin")
    monkeypatch.setenv("CIRCULATION_POLICY_DIR", str(tmp_path))
    monkeypatch.setenv("CIRCULATION_STRICT_POLICY_SCHEMA", "yes")
    monkeypatch.setenv("CIRCULATION_DEBUG", "1")

    config = CirculationEnv.from_env()

    assert config.timezone == "Europe/Berlin"
    assert config.policy_dir == Path(tmp_path)
    assert config.strict_policy_schema is True
    assert config.debug is True


def test_config_is_immutable():
    config = load_circulation_env()

    with pytest.raises(AttributeError):
        config.debug = True


@pytest.mark.parametrize(
    "raw, expected",
    [("true", True), ("ON", True), ("0", False), ("no", False), ("maybe", True)],
)
def test_env_bool(monkeypatch, raw, expected):
    monkeypatch.setenv("CIRCULATION_DEBUG", raw)

    assert env_bool("CIRCULATION_DEBUG", True) is expected


def test_unknown_timezone_falls_back_to_utc(caplog):
    with caplog.at_level("WARNING"):
        assert resolve_timezone("Mars/Olympus_Mons") is timezone.utc

    assert "CIRCULATION_TIMEZONE_UNKNOWN" in caplog.text
