"""
Score blending.

GBP sub-score:
    100 × (0.40·rating + 0.25·review volume + 0.15·category + 0.10·photos + 0.10·hours)
Site sub-score:
    0.45·SEO + 0.40·CTA + 0.15·health   (health = 100 over HTTPS, 40 otherwise)
Final score, by path:
    BLENDED_60_40      0.6·GBP + 0.4·SITE
    GBP_ONLY           GBP
    SITE_ONLY(_FORCED) SITE
    NEEDS_INPUT        no score

Every score is rounded half-up and clamped to [0, 100]. There is no
fallback constant: missing mandatory signal means NEEDS_INPUT.
"""

import math
from typing import Optional

from .models import GbpScore, Path, PlaceDetails, ScoreResult, SiteScore, SiteSignals
from .names import canonical_trade, expand_trade, name_tokens
from .weights import DEFAULT_WEIGHTS, GbpWeights, RubricWeights, SiteWeights

# Directory categories too generic to count as a trade match
GENERIC_CATEGORIES = {"point_of_interest", "establishment", "store", "service", "premise", "business"}
# Words shared by many trades ("roofing contractor", "plumbing contractor")
GENERIC_TOKENS = {
    "contractor", "contractors", "service", "services", "company", "repair", "store",
    "shop", "and", "of", "business", "establishment", "point", "interest", "premise",
}
MIN_PREFIX_MATCH = 5


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_score(value: float) -> int:
    return max(0, min(100, round_half_up(value)))


def rating_norm(rating: Optional[float]) -> float:
    if rating is None:
        return 0.0
    return max(0.0, min(1.0, float(rating) / 5.0))


def review_volume_norm(review_count: Optional[int], weights: GbpWeights = DEFAULT_WEIGHTS.gbp) -> float:
    count = review_count or 0
    for minimum, value in weights.review_buckets:
        if count >= minimum:
            return value
    return 0.0


def _category_tokens(categories) -> set:
    tokens = set()
    for category in categories or ():
        if category in GENERIC_CATEGORIES:
            continue
        tokens.update(t for t in category.lower().replace("_", " ").split() if t not in GENERIC_TOKENS)
    return tokens


def _tokens_match(a: str, b: str) -> bool:
    if a == b:
        return True
    shortest = min(len(a), len(b))
    return shortest >= MIN_PREFIX_MATCH and a[:MIN_PREFIX_MATCH] == b[:MIN_PREFIX_MATCH]


def category_matches(business_type: str, categories) -> bool:
    """
    True when any trade term shares a token with a directory category.

    "plumber" matches "plumber"; "roofing" matches "roofing_contractor";
    "electrical" matches "electrician" by common prefix.
    """
    category_tokens = _category_tokens(categories)
    if not category_tokens:
        return False
    terms = expand_trade(business_type, limit=10)
    trade = canonical_trade(business_type)
    if trade:
        terms.append(trade)
    trade_tokens = {t for term in terms for t in name_tokens(term) if t not in GENERIC_TOKENS}
    return any(_tokens_match(t, c) for t in trade_tokens for c in category_tokens)


def category_norm(business_type: Optional[str], categories, weights: GbpWeights = DEFAULT_WEIGHTS.gbp) -> float:
    if not business_type:
        return weights.category_unknown
    return weights.category_match if category_matches(business_type, categories) else weights.category_mismatch


def gbp_score(
    details: PlaceDetails,
    business_type: Optional[str] = None,
    weights: GbpWeights = DEFAULT_WEIGHTS.gbp,
) -> GbpScore:
    """GBP sub-score with its five labeled 0-100 components."""
    parts = {
        "ratingQuality": (weights.rating, rating_norm(details.rating)),
        "reviewVolume": (weights.review_volume, review_volume_norm(details.review_count, weights)),
        "categoryMatch": (weights.category, category_norm(business_type, details.categories, weights)),
        "photos": (weights.photos, 1.0 if details.has_photos else 0.0),
        "hours": (weights.hours, 1.0 if details.has_hours else 0.0),
    }
    total = 100 * sum(weight * norm for weight, norm in parts.values())
    components = {label: clamp_score(100 * norm) for label, (_, norm) in parts.items()}
    return GbpScore(score=clamp_score(total), components=components)


def site_score(signals: SiteSignals, is_https: bool, weights: SiteWeights = DEFAULT_WEIGHTS.site) -> SiteScore:
    health = weights.health_https if is_https else weights.health_plain_http
    total = weights.seo * signals.seo.total + weights.cta * signals.cta.total + weights.health * health
    return SiteScore(score=clamp_score(total), seo=signals.seo, cta=signals.cta, health=health)


def select_path(place_resolved: bool, site_scored: bool, forced_site_only: bool = False) -> Path:
    """
    Decision table over (place resolved, site scored, forced site-only).

    forced + site    → SITE_ONLY_FORCED
    forced, no site  → NEEDS_INPUT
    place + site     → BLENDED_60_40
    place only       → GBP_ONLY
    site only        → SITE_ONLY
    neither          → NEEDS_INPUT
    """
    if forced_site_only:
        return Path.SITE_ONLY_FORCED if site_scored else Path.NEEDS_INPUT
    if place_resolved and site_scored:
        return Path.BLENDED_60_40
    if place_resolved:
        return Path.GBP_ONLY
    if site_scored:
        return Path.SITE_ONLY
    return Path.NEEDS_INPUT


def _rationale(path: Path, gbp: Optional[GbpScore], site: Optional[SiteScore], weights: RubricWeights) -> str:
    if path == Path.BLENDED_60_40:
        return (
            f"Blended {int(weights.blend.gbp * 100)}/{int(weights.blend.site * 100)}: "
            f"profile {gbp.score}, website {site.score}."
        )
    if path == Path.GBP_ONLY:
        return f"Profile only ({gbp.score}); website missing, unreachable or not analyzed."
    if path == Path.SITE_ONLY:
        return f"Website only ({site.score}); no directory profile resolved."
    if path == Path.SITE_ONLY_FORCED:
        return f"Website only ({site.score}), as requested."
    return "Not enough signal to score: provide a resolvable business or a reachable website."


def blend(
    gbp: Optional[GbpScore],
    site: Optional[SiteScore],
    forced_site_only: bool = False,
    weights: RubricWeights = DEFAULT_WEIGHTS,
) -> ScoreResult:
    path = select_path(gbp is not None, site is not None, forced_site_only)

    if path == Path.BLENDED_60_40:
        final: Optional[int] = clamp_score(weights.blend.gbp * gbp.score + weights.blend.site * site.score)
    elif path == Path.GBP_ONLY:
        final = gbp.score
    elif path in (Path.SITE_ONLY, Path.SITE_ONLY_FORCED):
        final = site.score
    else:
        final = None

    if path == Path.SITE_ONLY_FORCED:
        gbp = None
    return ScoreResult(path=path, final_score=final, rationale=_rationale(path, gbp, site, weights), gbp=gbp, site=site)
