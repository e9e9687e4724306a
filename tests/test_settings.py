from __future__ import annotations

import logging

from settings import DEFAULT_INDEX_LIMIT, Settings, configure_logging, load_settings


def test_defaults_when_env_empty():
    settings = load_settings({})

    assert settings == Settings()


def test_env_overrides():
    settings = load_settings(
        {
            "POKESEARCH_API_BASE": "http://localhost:8000/api/v2/",
            "POKESEARCH_TIMEOUT": "2.5",
            "POKESEARCH_INDEX_LIMIT": "151",
            "POKESEARCH_MAX_WORKERS": "3",
            "POKESEARCH_VERIFY_TYPES": "yes",
            "POKESEARCH_LOG_LEVEL": "debug",
        }
    )

    assert settings.api_base == "http://localhost:8000/api/v2"
    assert settings.timeout == 2.5
    assert settings.index_limit == 151
    assert settings.max_workers == 3
    assert settings.verify_types is True
    assert settings.log_level == "DEBUG"


def test_invalid_numbers_fall_back(caplog):
    with caplog.at_level(logging.WARNING, logger="settings"):
        settings = load_settings({"POKESEARCH_INDEX_LIMIT": "lots", "POKESEARCH_MAX_WORKERS": "-2"})

    assert settings.index_limit == DEFAULT_INDEX_LIMIT
    assert settings.max_workers == Settings().max_workers
    assert "POKESEARCH_INDEX_LIMIT" in caplog.text


def test_configure_logging_sets_module_levels():
    configure_logging(Settings(log_level="DEBUG"))

    assert logging.getLogger("lookup").level == logging.DEBUG
    assert logging.getLogger("pokeapi_live").level == logging.DEBUG
