"""
Data model for the visibility engine.

Everything here except PlaceDetails is created and discarded within one
request. PlaceDetails records are owned by the details cache and are never
mutated once stored.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class RegionLevel(str, Enum):
    STATE = "state"
    REGION = "region"
    COUNTY = "county"
    LOCALITY = "locality"
    UNKNOWN = "unknown"


class Path(str, Enum):
    """Blending path; decides which signals feed the final score."""
    NEEDS_INPUT = "NEEDS_INPUT"
    SITE_ONLY = "SITE_ONLY"
    SITE_ONLY_FORCED = "SITE_ONLY_FORCED"
    GBP_ONLY = "GBP_ONLY"
    BLENDED_60_40 = "BLENDED_60_40"


class Status(str, Enum):
    OK = "OK"
    NO_MATCH = "NO_MATCH"
    AMBIGUOUS = "AMBIGUOUS"
    NEEDS_INPUT = "NEEDS_INPUT"
    UPSTREAM_QUOTA = "UPSTREAM_QUOTA"
    UPSTREAM_FAILURE = "UPSTREAM_FAILURE"


SITE_UNREACHABLE = "SITE_UNREACHABLE"


# =============================================================================
# REQUEST
# =============================================================================

@dataclass
class ServiceRequest:
    """One analysis request as received from a caller."""
    business_name: Optional[str] = None
    website_url: Optional[str] = None
    service_area: Optional[str] = None
    business_type: Optional[str] = None
    fast: bool = False
    site_only: bool = False
    place_id: Optional[str] = None
    no_cache: bool = False

    def __post_init__(self):
        self.business_name = _clean(self.business_name)
        self.website_url = _clean(self.website_url)
        self.service_area = _clean(self.service_area)
        self.business_type = _clean(self.business_type)
        self.place_id = _clean(self.place_id)

    @property
    def has_identity(self) -> bool:
        return bool(self.business_name or self.place_id)

    @property
    def can_auto_resolve(self) -> bool:
        return bool(self.place_id or (self.business_name and self.service_area))


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = " ".join(str(value).split())
    return value or None


# =============================================================================
# DIRECTORY RECORDS
# =============================================================================

@dataclass(frozen=True)
class Candidate:
    """Unconfirmed directory search result."""
    place_id: str
    name: str
    formatted_address: str = ""
    rating: Optional[float] = None
    review_count: Optional[int] = None
    website: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None

    @classmethod
    def from_api(cls, place: Dict[str, Any]) -> Optional["Candidate"]:
        place_id = place.get("place_id")
        if not place_id:
            return None
        location = (place.get("geometry") or {}).get("location") or {}
        rating = place.get("rating")
        reviews = place.get("user_ratings_total")
        return cls(
            place_id=place_id,
            name=place.get("name") or "",
            formatted_address=place.get("formatted_address") or place.get("vicinity") or "",
            rating=float(rating) if rating is not None else None,
            review_count=int(reviews) if reviews is not None else None,
            website=place.get("website"),
            lat=location.get("lat"),
            lng=location.get("lng"),
        )

    def to_choice(self) -> Dict[str, str]:
        return {"name": self.name, "address": self.formatted_address, "placeId": self.place_id}


@dataclass(frozen=True)
class PlaceDetails:
    place_id: str
    name: str
    address: str = ""
    website: Optional[str] = None
    rating: float = 0.0
    review_count: int = 0
    categories: Tuple[str, ...] = ()
    has_photos: bool = False
    has_hours: bool = False
    open_now: Optional[bool] = None
    phone: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    review_snippets: Tuple[str, ...] = ()

    @classmethod
    def from_api(cls, result: Dict[str, Any]) -> "PlaceDetails":
        hours = result.get("opening_hours") or {}
        location = (result.get("geometry") or {}).get("location") or {}
        rating = result.get("rating")
        reviews = result.get("reviews") or []
        return cls(
            place_id=result.get("place_id") or "",
            name=result.get("name") or "",
            address=result.get("formatted_address") or result.get("vicinity") or "",
            website=result.get("website"),
            rating=min(max(float(rating), 0.0), 5.0) if rating is not None else 0.0,
            review_count=max(int(result.get("user_ratings_total") or 0), 0),
            categories=tuple(result.get("types") or ()),
            has_photos=bool(result.get("photos")),
            has_hours=bool(hours.get("periods") or hours.get("weekday_text")),
            open_now=hours.get("open_now"),
            phone=result.get("formatted_phone_number") or result.get("international_phone_number"),
            lat=location.get("lat"),
            lng=location.get("lng"),
            review_snippets=tuple((r.get("text") or "") for r in reviews[:5] if r.get("text")),
        )

    def to_public(self) -> Dict[str, Any]:
        return {
            "placeId": self.place_id,
            "name": self.name,
            "address": self.address,
            "website": self.website,
            "rating": self.rating,
            "user_ratings_total": self.review_count,
            "open_now": self.open_now,
        }


# =============================================================================
# WEBSITE
# =============================================================================

@dataclass(frozen=True)
class SiteProbeResult:
    url: str
    reachable: bool
    is_https: bool = False
    status_code: Optional[int] = None
    elapsed_ms: int = 0
    contact_reachable: Optional[bool] = None
    error: Optional[str] = None


@dataclass
class SignalBreakdown:
    """Named point contributions for one score group, plus the clamped total."""
    contributions: Dict[str, int] = field(default_factory=dict)
    total: int = 0

    def add(self, name: str, points: int) -> None:
        self.contributions[name] = self.contributions.get(name, 0) + int(points)

    def finalize(self) -> "SignalBreakdown":
        self.total = max(0, min(100, sum(self.contributions.values())))
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {"total": self.total, "breakdown": dict(self.contributions)}


@dataclass
class SiteSignals:
    seo: SignalBreakdown
    cta: SignalBreakdown
    facts: Dict[str, Any] = field(default_factory=dict)


# =============================================================================
# SCORES
# =============================================================================

@dataclass
class GbpScore:
    score: int
    components: Dict[str, int]


@dataclass
class SiteScore:
    score: int
    seo: SignalBreakdown
    cta: SignalBreakdown
    health: int


@dataclass
class ScoreResult:
    path: Path
    final_score: Optional[int]
    rationale: str
    gbp: Optional[GbpScore] = None
    site: Optional[SiteScore] = None


@dataclass
class QualitativeScores:
    """Optional LLM estimate. Absent fields stay None; they are never zero-filled."""
    pain_point_resonance: Optional[int] = None
    cta_strength: Optional[int] = None
    website_health: Optional[int] = None
    on_page_seo: Optional[int] = None
    top_priority: Optional[str] = None
    competitor_ad_analysis: Optional[str] = None
    review_sentiment: Optional[str] = None

    def is_empty(self) -> bool:
        return all(v is None for v in self.__dict__.values())

    def to_dict(self) -> Dict[str, Any]:
        scores = {
            "painPointResonance": self.pain_point_resonance,
            "ctaStrength": self.cta_strength,
            "websiteHealth": self.website_health,
            "onPageSEO": self.on_page_seo,
        }
        out: Dict[str, Any] = {"scores": {k: v for k, v in scores.items() if v is not None}}
        if self.top_priority:
            out["topPriority"] = self.top_priority
        if self.competitor_ad_analysis:
            out["competitorAdAnalysis"] = self.competitor_ad_analysis
        if self.review_sentiment:
            out["reviewSentiment"] = self.review_sentiment
        return out
