"""
Candidate enrichment through the details cache.

Fetches PlaceDetails for the top-N candidates with a small bounded number
of calls in flight, and folds the profile's website/rating/reviews back
into each candidate for ranking.
"""

import asyncio
import dataclasses
import logging
from typing import Dict, List, Optional, Tuple

from .cache import TTLCache
from .models import Candidate, PlaceDetails
from .places import PlacesClient, PlacesError

logger = logging.getLogger(__name__)


class DetailsLoader:
    """Cache-first PlaceDetails lookup keyed by place id."""

    def __init__(self, places: PlacesClient, cache: TTLCache):
        self.places = places
        self.cache = cache

    async def load(self, place_id: str, no_cache: bool = False) -> Optional[PlaceDetails]:
        """
        Cached details for a place; one details call on miss.

        Raises PlacesError on upstream failure. Returns None for unknown ids.
        """
        if no_cache:
            self.cache.invalidate(place_id)
        else:
            cached = self.cache.get(place_id)
            if cached is not None:
                logger.debug("Details cache hit for %s", place_id)
                return cached

        raw = await self.places.place_details(place_id)
        if raw is None:
            return None
        details = PlaceDetails.from_api({**raw, "place_id": raw.get("place_id") or place_id})
        self.cache.set(place_id, details)
        return details


def merge_details(candidate: Candidate, details: Optional[PlaceDetails]) -> Candidate:
    if details is None:
        return candidate
    return dataclasses.replace(
        candidate,
        website=details.website or candidate.website,
        rating=details.rating if details.rating else candidate.rating,
        review_count=details.review_count if details.review_count else candidate.review_count,
        formatted_address=candidate.formatted_address or details.address,
        lat=candidate.lat if candidate.lat is not None else details.lat,
        lng=candidate.lng if candidate.lng is not None else details.lng,
    )


class CandidateEnricher:
    def __init__(self, loader: DetailsLoader, max_candidates: int = 5, concurrency: int = 2):
        self.loader = loader
        self.max_candidates = max_candidates
        self.concurrency = max(concurrency, 1)

    async def enrich(
        self,
        candidates: List[Candidate],
        no_cache: bool = False,
    ) -> Tuple[List[Candidate], Dict[str, PlaceDetails]]:
        """
        Enrich the top-N candidates, preserving input order.

        A failed details call leaves that candidate as searched; it does
        not fail the batch.

        Returns:
            (enriched candidates, details by place id)
        """
        top = candidates[: self.max_candidates]
        semaphore = asyncio.Semaphore(self.concurrency)

        async def fetch(candidate: Candidate) -> Optional[PlaceDetails]:
            async with semaphore:
                try:
                    return await self.loader.load(candidate.place_id, no_cache=no_cache)
                except PlacesError as e:
                    logger.warning("Details fetch failed for %s: %s", candidate.place_id, e)
                    return None

        fetched = await asyncio.gather(*(fetch(c) for c in top))
        details_by_id = {c.place_id: d for c, d in zip(top, fetched) if d is not None}
        enriched = [merge_details(c, details_by_id.get(c.place_id)) for c in top]
        return enriched, details_by_id
