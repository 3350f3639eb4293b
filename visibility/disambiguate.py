"""
Candidate disambiguation.

Picks one directory entry from the enriched candidates or explains why it
cannot. Ranking is a stable sort on explicit keys so identical inputs
always produce the identical selection and clarification list.

Rules, in order:
1. No candidates → NO_MATCH (with a refinement suggestion) or NEEDS_INPUT
   when no service area was given.
2. A candidate whose website host equals the supplied website host wins.
3. Without a service area nothing else is auto-selected (NEEDS_INPUT).
4. A single candidate is selected.
5. Otherwise rank by name similarity, then strength (rating×20 +
   min(reviews, 100)), then review count, then search order. The top
   candidate wins unless it ties the runner-up on every key or shares no
   name token with the query (AMBIGUOUS).
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urlsplit

from .models import Candidate, RegionLevel, Status
from .names import name_similarity, name_tokens
from .weights import DEFAULT_WEIGHTS, RankingWeights

logger = logging.getLogger(__name__)


def normalize_host(url: Optional[str]) -> str:
    """Lowercase host without scheme, www., port or path."""
    raw = (url or "").strip().lower()
    if not raw:
        return ""
    if "://" not in raw:
        raw = "http://" + raw
    try:
        host = urlsplit(raw).hostname or ""
    except ValueError:
        return ""
    if host.startswith("www."):
        host = host[4:]
    return host.rstrip(".")


def strength(candidate: Candidate, weights: RankingWeights = DEFAULT_WEIGHTS.ranking) -> float:
    return (candidate.rating or 0.0) * weights.rating_factor + min(candidate.review_count or 0, weights.review_cap)


@dataclass(frozen=True)
class RankedCandidate:
    candidate: Candidate
    similarity: float
    strength: float
    position: int

    @property
    def sort_key(self):
        return (-self.similarity, -self.strength, -(self.candidate.review_count or 0), self.position)

    def ties_with(self, other: "RankedCandidate") -> bool:
        return self.sort_key[:3] == other.sort_key[:3]


@dataclass
class Decision:
    status: Status
    selected: Optional[Candidate] = None
    reason: str = ""
    ranked: List[Candidate] = field(default_factory=list)
    suggestion: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.status == Status.OK and self.selected is not None


def rank_candidates(
    query: str,
    candidates: List[Candidate],
    weights: RankingWeights = DEFAULT_WEIGHTS.ranking,
) -> List[RankedCandidate]:
    ranked = [
        RankedCandidate(c, name_similarity(query, c.name, weights), strength(c, weights), i)
        for i, c in enumerate(candidates)
    ]
    return sorted(ranked, key=lambda r: r.sort_key)


def refinement_suggestion(service_area: Optional[str], level: Optional[RegionLevel]) -> str:
    if not service_area:
        return "Add the service area (city and state) the business operates in."
    if level in (RegionLevel.STATE, RegionLevel.REGION):
        return f"'{service_area}' is a wide area; try the city the business is based in, e.g. 'Newark, NJ'."
    if level == RegionLevel.COUNTY:
        return "Try the city or town the business is based in instead of the county."
    return "Check the business name spelling, or add the business website so it can be matched."


def disambiguate(
    query: str,
    candidates: List[Candidate],
    website: Optional[str] = None,
    service_area: Optional[str] = None,
    area_level: Optional[RegionLevel] = None,
    weights: RankingWeights = DEFAULT_WEIGHTS.ranking,
) -> Decision:
    """
    Choose a candidate for the queried business name.

    Args:
        query: Business name as supplied
        candidates: Enriched candidates, in search order
        website: Optional user-supplied website
        service_area: Service area text; None disables auto-selection
        area_level: Classified level of the area, for suggestions

    Returns:
        Decision with status, selected candidate, and ranked clarification list
    """
    if not candidates:
        status = Status.NO_MATCH if service_area else Status.NEEDS_INPUT
        return Decision(status=status, reason="no_candidates",
                        suggestion=refinement_suggestion(service_area, area_level))

    ranked = rank_candidates(query, candidates, weights)
    ordered = [r.candidate for r in ranked]

    host = normalize_host(website)
    if host:
        for r in ranked:
            if normalize_host(r.candidate.website) == host:
                logger.info("Website host match selects %s", r.candidate.place_id)
                return Decision(status=Status.OK, selected=r.candidate, reason="website_match", ranked=ordered)

    if not service_area:
        return Decision(status=Status.NEEDS_INPUT, reason="service_area_missing", ranked=ordered,
                        suggestion=refinement_suggestion(None, None))

    if len(ranked) == 1:
        return Decision(status=Status.OK, selected=ranked[0].candidate, reason="single_candidate", ranked=ordered)

    top, runner_up = ranked[0], ranked[1]
    if top.ties_with(runner_up):
        return Decision(status=Status.AMBIGUOUS, reason="tied_candidates", ranked=ordered)
    if not set(name_tokens(query)) & set(name_tokens(top.candidate.name)):
        return Decision(status=Status.AMBIGUOUS, reason="no_name_overlap", ranked=ordered)

    return Decision(status=Status.OK, selected=top.candidate, reason="ranked", ranked=ordered)
