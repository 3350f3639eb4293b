"""
Scoring weights table.

Every point value, threshold, radius and blend ratio used by the signal
extractor, the area classifier and the score blender lives here, in one
immutable structure. The rubric is versioned so a response can say which
table produced it, and tests can build a modified table with
dataclasses.replace() without touching the parsing code.
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple


# =============================================================================
# AREA → SEARCH RADIUS (meters)
# =============================================================================

@dataclass(frozen=True)
class RadiusTable:
    state: int = 200_000
    region: int = 120_000
    county: int = 60_000
    locality: int = 40_000
    unknown: int = 80_000

    def for_level(self, level: str) -> int:
        return getattr(self, level, self.unknown)


# =============================================================================
# GBP SUB-SCORE
# =============================================================================

@dataclass(frozen=True)
class GbpWeights:
    """Weights of the five labeled GBP components (sum to 1.0)."""
    rating: float = 0.40
    review_volume: float = 0.25
    category: float = 0.15
    photos: float = 0.10
    hours: float = 0.10

    # (minimum review count, normalized value), highest bucket first
    review_buckets: Tuple[Tuple[int, float], ...] = (
        (250, 1.0),
        (100, 0.90),
        (50, 0.80),
        (20, 0.60),
        (5, 0.40),
        (1, 0.25),
    )

    category_match: float = 1.0
    category_mismatch: float = 0.6
    category_unknown: float = 0.8


# =============================================================================
# SITE SUB-SCORE AND BLEND
# =============================================================================

@dataclass(frozen=True)
class SiteWeights:
    seo: float = 0.45
    cta: float = 0.40
    health: float = 0.15
    health_https: int = 100
    health_plain_http: int = 40


@dataclass(frozen=True)
class BlendWeights:
    gbp: float = 0.6
    site: float = 0.4


# =============================================================================
# CTA RUBRIC
# =============================================================================

@dataclass(frozen=True)
class CtaPoints:
    tel_link: int = 25
    tel_link_extra_each: int = 1
    tel_link_extra_cap: int = 5
    cta_words: int = 15
    cta_words_extra_each: int = 2
    cta_words_extra_cap: int = 10
    form: int = 5
    known_phone: int = 10
    known_hours: int = 5
    emergency: int = 5
    friction_penalty: int = -15

    action_words: Tuple[str, ...] = (
        "free estimate",
        "get started",
        "call",
        "quote",
        "estimate",
        "book",
        "schedule",
        "contact",
    )


# =============================================================================
# SEO RUBRIC
# =============================================================================

@dataclass(frozen=True)
class SeoPoints:
    title_min: int = 20
    title_max: int = 65
    title_absurd: int = 120
    title_sweet_spot: int = 12
    title_present: int = 5
    title_bad: int = -10

    meta_min: int = 120
    meta_max: int = 160
    meta_adjacent_min: int = 80
    meta_adjacent_max: int = 200
    meta_sweet_spot: int = 10
    meta_adjacent: int = 6
    meta_missing: int = -8

    h1_present: int = 8
    h1_too_many_threshold: int = 2
    h1_too_many: int = -6

    # (minimum count, points), highest tier first; below the last tier → floor
    word_tiers: Tuple[Tuple[int, int], ...] = ((600, 10), (300, 6), (100, 2))
    word_floor: int = -4

    internal_link_tiers: Tuple[Tuple[int, int], ...] = ((40, 12), (20, 8), (10, 5), (1, 2))
    nav_min_links: int = 3
    nav_bonus: int = 3

    local_markup: int = 10
    map_embed: int = 5
    nap_text: int = 10

    script_bulk_ratio: float = 0.60
    script_bulk_penalty: int = -6

    alt_full_ratio: float = 0.8
    alt_full: int = 3
    alt_partial_ratio: float = 0.5
    alt_partial: int = 1
    resource_hints: int = 2


# =============================================================================
# DISAMBIGUATION
# =============================================================================

@dataclass(frozen=True)
class RankingWeights:
    token_overlap: int = 2
    rating_factor: int = 20
    review_cap: int = 100
    proximity_precision: int = 1


@dataclass(frozen=True)
class RubricWeights:
    version: str = "2024.1"
    radius: RadiusTable = field(default_factory=RadiusTable)
    gbp: GbpWeights = field(default_factory=GbpWeights)
    site: SiteWeights = field(default_factory=SiteWeights)
    blend: BlendWeights = field(default_factory=BlendWeights)
    cta: CtaPoints = field(default_factory=CtaPoints)
    seo: SeoPoints = field(default_factory=SeoPoints)
    ranking: RankingWeights = field(default_factory=RankingWeights)

    def summary(self) -> Dict[str, object]:
        return {
            "version": self.version,
            "blend": {"gbp": self.blend.gbp, "site": self.blend.site},
        }


DEFAULT_WEIGHTS = RubricWeights()
