"""
Engine lifecycle for the API process.

One VisibilityEngine (and therefore one details cache and one HTTP
connection pool) is built at startup and shared by every request.
"""

import logging

from fastapi import Request

from visibility.engine import VisibilityEngine
from visibility.settings import Settings

logger = logging.getLogger(__name__)


def build_engine(settings: Settings) -> VisibilityEngine:
    engine = VisibilityEngine.from_settings(settings)
    logger.info(
        "Engine ready (env=%s, rubric=%s, llm=%s, ad_scrape=%s)",
        settings.environment,
        engine.weights.version,
        "on" if settings.llm_key_present else "off",
        "on" if settings.enable_ad_scrape else "off",
    )
    return engine


def get_engine(request: Request) -> VisibilityEngine:
    """FastAPI dependency: the engine stored on app.state at startup."""
    return request.app.state.engine
