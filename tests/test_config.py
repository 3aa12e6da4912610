"""Tests for engine settings."""

import pytest
from pydantic import ValidationError

from calrecur.config import EngineSettings, get_settings
from calrecur.util import MAX_PRIMING_STEPS, MAX_YEARS_BETWEEN_INSTANCES


@pytest.fixture
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults(fresh_settings, monkeypatch):
    monkeypatch.delenv("CALRECUR_MAX_PRIMING_STEPS", raising=False)
    monkeypatch.delenv("CALRECUR_MAX_YEARS_BETWEEN_INSTANCES", raising=False)
    settings = get_settings()
    assert settings.max_priming_steps == MAX_PRIMING_STEPS
    assert settings.max_years_between_instances == MAX_YEARS_BETWEEN_INSTANCES


def test_environment_override(fresh_settings, monkeypatch):
    monkeypatch.setenv("CALRECUR_MAX_YEARS_BETWEEN_INSTANCES", "7")
    assert get_settings().max_years_between_instances == 7


def test_settings_are_cached(fresh_settings):
    assert get_settings() is get_settings()


def test_limits_must_be_positive():
    with pytest.raises(ValidationError):
        EngineSettings(max_priming_steps=0)
