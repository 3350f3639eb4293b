"""Runtime configuration loaded from the environment (and .env)."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Tuple

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Optional stages must finish this far ahead of the request budget
BUDGET_MARGIN_SECONDS = 1.0


@dataclass(frozen=True)
class Settings:
    places_api_key: str = ""
    embed_api_key: str = ""
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    enable_ad_scrape: bool = False
    details_cache_ttl: float = 10800.0
    probe_cache_ttl: float = 300.0
    places_timeout: float = 6.0
    probe_timeout: float = 4.0
    homepage_timeout: float = 6.0
    llm_timeout: float = 7.0
    ad_scrape_timeout: float = 6.0
    request_budget: float = 25.0
    max_candidates: int = 5
    enrich_concurrency: int = 2
    quota_retry_backoff: float = 0.4
    cors_origins: Tuple[str, ...] = ("*",)
    environment: str = "development"

    @property
    def maps_key_present(self) -> bool:
        return bool(self.places_api_key)

    @property
    def embed_key_present(self) -> bool:
        return bool(self.embed_api_key)

    @property
    def llm_key_present(self) -> bool:
        return bool(self.openai_api_key)


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("%s=%r is not a number; using %s", name, raw, default)
        return default


def _int(name: str, default: int) -> int:
    return int(_float(name, default))


def _clamp_to_budget(name: str, value: float, budget: float) -> float:
    ceiling = max(budget - BUDGET_MARGIN_SECONDS, 0.5)
    if value >= budget:
        logger.warning("%s (%ss) must be shorter than the request budget; clamped to %ss", name, value, ceiling)
        return ceiling
    return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    places_api_key = os.getenv("GOOGLE_PLACES_API_KEY") or os.getenv("GOOGLE_MAPS_API_KEY") or ""
    embed_api_key = os.getenv("GOOGLE_MAPS_EMBED_KEY", "")
    openai_api_key = os.getenv("OPENAI_API_KEY", "")
    request_budget = _float("REQUEST_BUDGET_SECONDS", 25.0)
    origins = tuple(o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()) or ("*",)

    if not places_api_key:
        logger.warning("GOOGLE_PLACES_API_KEY is not configured; directory lookups will fail.")
    if not embed_api_key:
        logger.warning("GOOGLE_MAPS_EMBED_KEY is not configured; map previews are disabled.")
    if not openai_api_key:
        logger.warning("OPENAI_API_KEY is not configured; qualitative scores are disabled.")

    return Settings(
        places_api_key=places_api_key,
        embed_api_key=embed_api_key,
        openai_api_key=openai_api_key,
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        enable_ad_scrape=_flag("ENABLE_AD_SCRAPE"),
        details_cache_ttl=_float("DETAILS_CACHE_TTL_SECONDS", 10800.0),
        probe_cache_ttl=_float("PROBE_CACHE_TTL_SECONDS", 300.0),
        places_timeout=_float("PLACES_TIMEOUT_SECONDS", 6.0),
        probe_timeout=_float("PROBE_TIMEOUT_SECONDS", 4.0),
        homepage_timeout=_float("HOMEPAGE_TIMEOUT_SECONDS", 6.0),
        llm_timeout=_clamp_to_budget("LLM_TIMEOUT_SECONDS", _float("LLM_TIMEOUT_SECONDS", 7.0), request_budget),
        ad_scrape_timeout=_clamp_to_budget(
            "AD_SCRAPE_TIMEOUT_SECONDS", _float("AD_SCRAPE_TIMEOUT_SECONDS", 6.0), request_budget
        ),
        request_budget=request_budget,
        max_candidates=max(_int("MAX_CANDIDATES", 5), 1),
        enrich_concurrency=max(_int("ENRICH_CONCURRENCY", 2), 1),
        quota_retry_backoff=_float("QUOTA_RETRY_BACKOFF_SECONDS", 0.4),
        cors_origins=origins,
        environment=os.getenv("ENVIRONMENT", "development"),
    )
