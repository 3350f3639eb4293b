"""
Local Visibility Score Engine - Engine Package

Resolves a local business to its Google Business Profile, probes and
parses its website, and blends both into a 0-100 visibility score.

Architecture:
    weights: Versioned scoring weights table (every point value and radius)
    names: Name variants, trade synonyms, name similarity
    geo: Service-area classification, geocoding, haversine
    places: Google Places / Geocoding API client (quota retry, timeouts)
    cache: In-process TTL cache (details, probe results)
    search: Query variants and the first_non_empty strategy chain
    enrich: Details loading through the cache, bounded concurrency
    disambiguate: Deterministic candidate ranking and selection
    resolver: Geocode → search → enrich → disambiguate
    probe: Website reachability (HEAD, HTTPS fallback) and homepage fetch
    signals: SEO / CTA rubric over homepage HTML
    score: GBP and site sub-scores, path selection, blending
    llm: Optional qualitative sub-scores (OpenAI)
    ads: Optional ad-transparency scrape (Playwright)
    competitors: Competitive snapshot around a resolved place
    engine: End-to-end analysis
    assemble: Response contract
"""

from .engine import AnalysisOutcome, VisibilityEngine
from .models import Path, ServiceRequest, Status
from .settings import Settings, get_settings
from .weights import DEFAULT_WEIGHTS, RubricWeights

__all__ = [
    # engine
    "AnalysisOutcome",
    "VisibilityEngine",
    # models
    "Path",
    "ServiceRequest",
    "Status",
    # settings
    "Settings",
    "get_settings",
    # weights
    "DEFAULT_WEIGHTS",
    "RubricWeights",
]
