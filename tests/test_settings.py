"""Tests for engine settings."""

import pytest

from spotbook.infra.settings import (
    DEFAULT_HOLD_HOURS,
    DEFAULT_MAX_HOLD_HOURS,
    DEFAULT_SWEEP_BATCH_SIZE,
    DEFAULT_SWEEP_INTERVAL_SECONDS,
    get_settings,
)

pytestmark = pytest.mark.usefixtures("clean_env")


def test_defaults():
    settings = get_settings()
    assert settings.default_hold_hours == DEFAULT_HOLD_HOURS == 48
    assert settings.max_hold_hours == DEFAULT_MAX_HOLD_HOURS == 720
    assert settings.sweep_interval_seconds == DEFAULT_SWEEP_INTERVAL_SECONDS
    assert settings.sweep_batch_size == DEFAULT_SWEEP_BATCH_SIZE


def test_overrides(monkeypatch):
    monkeypatch.setenv("RESERVATION_DEFAULT_HOLD_HOURS", "24")
    monkeypatch.setenv("SWEEP_INTERVAL_SECONDS", " 30 ")
    settings = get_settings()
    assert settings.default_hold_hours == 24
    assert settings.sweep_interval_seconds == 30


def test_blank_means_default(monkeypatch):
    monkeypatch.setenv("SWEEP_BATCH_SIZE", "")
    assert get_settings().sweep_batch_size == DEFAULT_SWEEP_BATCH_SIZE


@pytest.mark.parametrize("value", ["0", "-3", "abc"])
def test_invalid_values_rejected(monkeypatch, value):
    monkeypatch.setenv("SWEEP_BATCH_SIZE", value)
    with pytest.raises(RuntimeError, match="SWEEP_BATCH_SIZE"):
        get_settings()


def test_default_above_max_rejected(monkeypatch):
    monkeypatch.setenv("RESERVATION_DEFAULT_HOLD_HOURS", "100")
    monkeypatch.setenv("RESERVATION_MAX_HOLD_HOURS", "72")
    with pytest.raises(RuntimeError):
        get_settings()
