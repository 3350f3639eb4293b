"""
Candidate search.

Query variants are built from name spellings × service area × trade
synonyms. Each variant is tried through an ordered list of strategies
(biased find-place, unbiased find-place, free-text search with a
state filter); the first non-empty result list wins.
"""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, List, Optional, Tuple

from .geo import GeoCenter, address_in_state
from .models import Candidate
from .names import expand_name_variants, expand_trade
from .places import PlacesClient

logger = logging.getLogger(__name__)

MAX_QUERY_VARIANTS = 8
MAX_TRADE_TERMS = 2

Strategy = Tuple[str, Callable[[], Awaitable[List]]]


async def first_non_empty(strategies: Iterable[Strategy]) -> Tuple[Optional[str], List, int]:
    """
    Run strategies in order and stop at the first that returns a non-empty list.

    Returns:
        (label of the winning strategy or None, its results, strategies run)
    """
    attempts = 0
    for label, run in strategies:
        attempts += 1
        results = await run()
        if results:
            logger.debug("Strategy %s returned %d result(s)", label, len(results))
            return label, results, attempts
        logger.debug("Strategy %s returned nothing", label)
    return None, [], attempts


def build_query_variants(
    business_name: str,
    service_area: Optional[str] = None,
    business_type: Optional[str] = None,
    limit: int = MAX_QUERY_VARIANTS,
) -> List[str]:
    """
    Prioritized search strings, most specific first.

    name + area for every spelling, then name + trade + area, then the
    bare names (and name + trade) so a service-area business listed under
    a different town can still be found.
    """
    names = expand_name_variants(business_name)
    trades = expand_trade(business_type)[:MAX_TRADE_TERMS]
    queries: List[str] = []

    if service_area:
        queries.extend(f"{n} {service_area}" for n in names)
        queries.extend(f"{n} {t} {service_area}" for n in names[:2] for t in trades)
    queries.extend(names)
    queries.extend(f"{n} {t}" for n in names[:1] for t in trades)

    seen = set()
    ordered = []
    for q in queries:
        key = q.lower()
        if key not in seen:
            seen.add(key)
            ordered.append(q)
    return ordered[:limit]


def filter_by_state(candidates: List[Candidate], state_code: Optional[str]) -> List[Candidate]:
    """Keep candidates whose address is in the state, unless that would keep none."""
    if not state_code or not candidates:
        return candidates
    kept = [c for c in candidates if address_in_state(c.formatted_address, state_code)]
    if not kept:
        logger.debug("State filter %s would drop all %d candidates; ignoring it", state_code, len(candidates))
        return candidates
    return kept


def _to_candidates(raw: List[dict]) -> List[Candidate]:
    out = []
    seen = set()
    for place in raw:
        candidate = Candidate.from_api(place)
        if candidate and candidate.place_id not in seen:
            seen.add(candidate.place_id)
            out.append(candidate)
    return out


@dataclass
class SearchOutcome:
    candidates: List[Candidate] = field(default_factory=list)
    query: Optional[str] = None
    strategy: Optional[str] = None
    attempts: int = 0
    queries_tried: int = 0

    @property
    def exhausted(self) -> bool:
        return not self.candidates


class CandidateSearch:
    def __init__(self, places: PlacesClient, max_variants: int = MAX_QUERY_VARIANTS):
        self.places = places
        self.max_variants = max_variants

    def strategies_for(self, query: str, center: Optional[GeoCenter]) -> List[Strategy]:
        places = self.places
        strategies: List[Strategy] = []

        if center is not None:
            async def biased():
                return _to_candidates(await places.find_place(query, center.lat, center.lng, center.radius_m))
            strategies.append(("find_place_biased", biased))

        async def unbiased():
            return _to_candidates(await places.find_place(query))
        strategies.append(("find_place", unbiased))

        async def text():
            if center is not None:
                raw = await places.text_search(query, center.lat, center.lng, center.radius_m)
            else:
                raw = await places.text_search(query)
            return filter_by_state(_to_candidates(raw), center.state_code if center else None)
        strategies.append(("text_search", text))

        return strategies

    async def search(
        self,
        business_name: str,
        service_area: Optional[str] = None,
        business_type: Optional[str] = None,
        center: Optional[GeoCenter] = None,
    ) -> SearchOutcome:
        """
        Try each query variant through the strategy chain; first hit wins.

        PlacesError from the client propagates to the caller.
        """
        outcome = SearchOutcome()
        for query in build_query_variants(business_name, service_area, business_type, self.max_variants):
            outcome.queries_tried += 1
            label, results, attempts = await first_non_empty(self.strategies_for(query, center))
            outcome.attempts += attempts
            if results:
                outcome.candidates = results
                outcome.query = query
                outcome.strategy = label
                logger.info("Search hit: %d candidate(s) via %s", len(results), label)
                return outcome

        logger.info("Search exhausted %d queries / %d attempts", outcome.queries_tried, outcome.attempts)
        return outcome
