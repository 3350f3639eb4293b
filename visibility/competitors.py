"""
Competitive snapshot.

Nearby same-trade businesses around a resolved place, using the shared
first_non_empty search combinator over tiered Nearby Search radii
(5 km → 15 km → 40 km) and a final location-biased text search.
Ranked by profile strength; annotated with distance from the place.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .disambiguate import strength
from .enrich import DetailsLoader
from .geo import haversine_km
from .models import Candidate, PlaceDetails, Status
from .names import expand_trade
from .places import PlacesClient
from .score import GENERIC_CATEGORIES
from .search import first_non_empty

logger = logging.getLogger(__name__)

# Tiered radius (meters): 5 km → 15 km → 40 km
RADIUS_TIERS_M = (5_000, 15_000, 40_000)
DEFAULT_LIMIT = 5
MAX_LIMIT = 10
MAX_TRADE_TERMS = 2


@dataclass
class Competitor:
    candidate: Candidate
    strength: float
    distance_km: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        c = self.candidate
        return {
            "placeId": c.place_id,
            "name": c.name,
            "address": c.formatted_address,
            "rating": c.rating,
            "user_ratings_total": c.review_count or 0,
            "strength": round(self.strength, 1),
            "distanceKm": self.distance_km,
        }


@dataclass
class CompetitiveSnapshot:
    status: Status
    place: Optional[PlaceDetails] = None
    trade: Optional[str] = None
    strategy: Optional[str] = None
    competitors: List[Competitor] = field(default_factory=list)
    message: Optional[str] = None


@dataclass
class TopCompetitor:
    """The strongest rival listing, whose ads feed the qualitative step."""
    place_id: str
    name: str
    website: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"placeId": self.place_id, "name": self.name, "website": self.website}


def strongest_rival(candidates: List[Candidate], place_id: str) -> Optional[Candidate]:
    """Strongest candidate other than the resolved place; earlier wins ties."""
    rivals = [c for c in candidates if c.place_id != place_id]
    if not rivals:
        return None
    return min(enumerate(rivals), key=lambda p: (-strength(p[1]), -(p[1].review_count or 0), p[0]))[1]


def trade_terms(business_type: Optional[str], details: PlaceDetails) -> List[str]:
    if business_type:
        return expand_trade(business_type)[:MAX_TRADE_TERMS]
    for category in details.categories:
        if category not in GENERIC_CATEGORIES:
            return [category.replace("_", " ")]
    return []


def rank_competitors(
    candidates: List[Candidate],
    origin: PlaceDetails,
    limit: int = DEFAULT_LIMIT,
) -> List[Competitor]:
    """Strongest first: strength, then review count, then name."""
    seen = {origin.place_id}
    unique = []
    for c in candidates:
        if c.place_id not in seen:
            seen.add(c.place_id)
            unique.append(c)
    unique.sort(key=lambda c: (-strength(c), -(c.review_count or 0), c.name.lower()))

    ranked = []
    for c in unique[:limit]:
        distance = None
        if None not in (origin.lat, origin.lng, c.lat, c.lng):
            distance = round(haversine_km(origin.lat, origin.lng, c.lat, c.lng), 1)
        ranked.append(Competitor(candidate=c, strength=strength(c), distance_km=distance))
    return ranked


class CompetitorSearch:
    def __init__(self, places: PlacesClient, loader: DetailsLoader):
        self.places = places
        self.loader = loader

    def _strategies(self, details: PlaceDetails, terms: List[str]):
        places = self.places

        def without_origin(raw: List[dict]) -> List[Candidate]:
            out = []
            for place in raw:
                c = Candidate.from_api(place)
                if c and c.place_id != details.place_id:
                    out.append(c)
            return out

        strategies = []
        for radius in RADIUS_TIERS_M:
            async def nearby(radius=radius):
                found: List[Candidate] = []
                for term in terms:
                    found.extend(without_origin(await places.nearby_search(details.lat, details.lng, radius, term)))
                return found
            strategies.append((f"nearby_{radius // 1000}km", nearby))

        async def text():
            return without_origin(
                await places.text_search(terms[0], details.lat, details.lng, RADIUS_TIERS_M[-1])
            )
        strategies.append(("text_search", text))
        return strategies

    async def snapshot(
        self,
        place_id: str,
        business_type: Optional[str] = None,
        limit: Optional[int] = None,
        no_cache: bool = False,
    ) -> CompetitiveSnapshot:
        """
        Rank nearby same-trade businesses around a known place.

        PlacesError from the client propagates to the caller.
        """
        limit = max(1, min(limit or DEFAULT_LIMIT, MAX_LIMIT))
        details = await self.loader.load(place_id, no_cache=no_cache)
        if details is None:
            return CompetitiveSnapshot(status=Status.NO_MATCH, message="Place not found.")
        if details.lat is None or details.lng is None:
            return CompetitiveSnapshot(status=Status.NO_MATCH, place=details,
                                       message="Place has no coordinates to search around.")

        terms = trade_terms(business_type, details)
        if not terms:
            return CompetitiveSnapshot(status=Status.NEEDS_INPUT, place=details,
                                       message="Provide businessType to find competitors.")

        label, found, _ = await first_non_empty(self._strategies(details, terms))
        ranked = rank_competitors(found, details, limit)
        logger.info("Competitive snapshot for %s: %d competitor(s) via %s", place_id, len(ranked), label)
        return CompetitiveSnapshot(status=Status.OK, place=details, trade=terms[0], strategy=label, competitors=ranked)
