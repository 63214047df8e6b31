import logging

import pytest

from ghost_note.app.config import DEFAULT_CACHE_TTL_SECONDS, AnalysisSettings
from ghost_note.utils import logging_config
from ghost_note.utils.logging_config import configure_logging


@pytest.fixture
def project_logger():
    logger = logging.getLogger("ghost_note")
    original = logger.level
    yield logger
    logger.setLevel(original)


def test_defaults_without_environment():
    settings = AnalysisSettings.from_env({})

    assert settings == AnalysisSettings()
    assert settings.use_cache is True
    assert settings.cache_ttl_seconds == DEFAULT_CACHE_TTL_SECONDS == 86400
    assert settings.cache_path is None


def test_values_are_read_from_environment():
    settings = AnalysisSettings.from_env(
        {
            "GHOST_NOTE_USE_CACHE": "off",
            "GHOST_NOTE_CACHE_TTL_SECONDS": "120.5",
            "GHOST_NOTE_CACHE_PATH": " /tmp/cache.db ",
            "GHOST_NOTE_CMUDICT_PATH": "/data/cmudict.dict",
            "GHOST_NOTE_LOG_LEVEL": "debug",
        }
    )

    assert settings.use_cache is False
    assert settings.cache_ttl_seconds == 120.5
    assert settings.cache_path == "/tmp/cache.db"
    assert settings.cmudict_path == "/data/cmudict.dict"
    assert settings.log_level == "debug"


def test_invalid_values_fall_back_to_defaults():
    settings = AnalysisSettings.from_env(
        {
            "GHOST_NOTE_USE_CACHE": "maybe",
            "GHOST_NOTE_CACHE_TTL_SECONDS": "-5",
            "GHOST_NOTE_CACHE_PATH": "   ",
        }
    )

    assert settings.use_cache is True
    assert settings.cache_ttl_seconds == DEFAULT_CACHE_TTL_SECONDS
    assert settings.cache_path is None
    assert AnalysisSettings.from_env({"GHOST_NOTE_CACHE_TTL_SECONDS": "soon"}).cache_ttl_seconds == 86400


def test_from_env_reads_process_environment(monkeypatch):
    monkeypatch.setenv("GHOST_NOTE_USE_CACHE", "0")

    assert AnalysisSettings.from_env().use_cache is False


def test_configure_logging_resolves_levels(monkeypatch, project_logger):
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
    monkeypatch.setattr(logging_config, "_CONFIGURED", False)

    assert configure_logging("debug", force=True) == logging.DEBUG
    assert calls[0]["level"] == logging.DEBUG
    assert logging.getLogger("ghost_note").level == logging.DEBUG

    monkeypatch.setenv("GHOST_NOTE_LOG_LEVEL", "WARNING")
    assert configure_logging(force=True) == logging.WARNING
    assert configure_logging(10, force=True) == logging.DEBUG
    assert configure_logging("nonsense", force=True) == logging.INFO


def test_configure_logging_runs_once_without_force(monkeypatch, project_logger):
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
    monkeypatch.setattr(logging_config, "_CONFIGURED", False)

    configure_logging("info")
    configure_logging("debug")

    assert len(calls) == 1
