"""
Unit tests for environment-driven settings.
"""

import pytest

from visibility.settings import get_settings

ENV_VARS = (
    "GOOGLE_PLACES_API_KEY", "GOOGLE_MAPS_API_KEY", "GOOGLE_MAPS_EMBED_KEY", "OPENAI_API_KEY",
    "ENABLE_AD_SCRAPE", "REQUEST_BUDGET_SECONDS", "LLM_TIMEOUT_SECONDS", "AD_SCRAPE_TIMEOUT_SECONDS",
    "MAX_CANDIDATES", "CORS_ORIGINS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults_without_keys():
    settings = get_settings()
    assert not settings.maps_key_present
    assert not settings.llm_key_present
    assert settings.details_cache_ttl == 10800.0
    assert settings.request_budget == 25.0
    assert settings.llm_timeout < settings.request_budget
    assert settings.cors_origins == ("*",)


def test_maps_key_alias(monkeypatch):
    monkeypatch.setenv("GOOGLE_MAPS_API_KEY", "maps-key")
    assert get_settings().places_api_key == "maps-key"


def test_optional_timeouts_clamped_below_budget(monkeypatch):
    monkeypatch.setenv("REQUEST_BUDGET_SECONDS", "10")
    monkeypatch.setenv("LLM_TIMEOUT_SECONDS", "30")
    monkeypatch.setenv("AD_SCRAPE_TIMEOUT_SECONDS", "10")
    settings = get_settings()
    assert settings.llm_timeout == 9.0
    assert settings.ad_scrape_timeout == 9.0


def test_flags_and_lists(monkeypatch):
    monkeypatch.setenv("ENABLE_AD_SCRAPE", "yes")
    monkeypatch.setenv("MAX_CANDIDATES", "0")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
    settings = get_settings()
    assert settings.enable_ad_scrape
    assert settings.max_candidates == 1
    assert settings.cors_origins == ("https://a.example", "https://b.example")
