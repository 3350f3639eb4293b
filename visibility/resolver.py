"""
Place resolution: service area → candidates → one directory entry.

geocode (once) → search → enrich top-N → disambiguate → details for the
chosen candidate. A pre-resolved place id skips straight to details.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .disambiguate import Decision, disambiguate
from .enrich import CandidateEnricher, DetailsLoader
from .geo import GeoCenter, Geocoder, infer_region_level
from .models import Candidate, PlaceDetails, RegionLevel, ServiceRequest, Status
from .search import CandidateSearch, SearchOutcome

logger = logging.getLogger(__name__)


@dataclass
class Resolution:
    status: Status
    details: Optional[PlaceDetails] = None
    candidates: List[Candidate] = field(default_factory=list)
    reason: str = ""
    suggestion: Optional[str] = None
    center: Optional[GeoCenter] = None
    area_level: Optional[RegionLevel] = None
    search: Optional[SearchOutcome] = None

    @property
    def resolved(self) -> bool:
        return self.status == Status.OK and self.details is not None


class PlaceResolver:
    def __init__(self, geocoder: Geocoder, search: CandidateSearch, enricher: CandidateEnricher,
                 loader: DetailsLoader):
        self.geocoder = geocoder
        self.search = search
        self.enricher = enricher
        self.loader = loader

    async def _from_place_id(self, request: ServiceRequest) -> Resolution:
        details = await self.loader.load(request.place_id, no_cache=request.no_cache)
        if details is None:
            return Resolution(status=Status.NO_MATCH, reason="place_id_not_found",
                              suggestion="The place identifier is unknown; search by name and area instead.")
        return Resolution(status=Status.OK, details=details, reason="place_id")

    async def resolve(self, request: ServiceRequest) -> Resolution:
        """
        Resolve the request to a single PlaceDetails, or explain why not.

        PlacesError (quota or upstream failure) from search or from the
        chosen candidate's details propagates.
        """
        if request.place_id:
            return await self._from_place_id(request)
        if not request.business_name:
            return Resolution(status=Status.NEEDS_INPUT, reason="no_identity")

        area = request.service_area
        center = await self.geocoder.locate(area) if area else None
        level = center.level if center else (infer_region_level(area) if area else None)

        outcome = await self.search.search(request.business_name, area, request.business_type, center)
        enriched, details_by_id = await self.enricher.enrich(outcome.candidates, no_cache=request.no_cache)
        decision: Decision = disambiguate(
            request.business_name,
            enriched,
            website=request.website_url,
            service_area=area,
            area_level=level,
        )
        resolution = Resolution(
            status=decision.status,
            candidates=decision.ranked,
            reason=decision.reason,
            suggestion=decision.suggestion,
            center=center,
            area_level=level,
            search=outcome,
        )
        if not decision.resolved:
            logger.info("Place not resolved: %s (%s)", decision.status.value, decision.reason)
            return resolution

        chosen = decision.selected
        details = details_by_id.get(chosen.place_id)
        if details is None:
            details = await self.loader.load(chosen.place_id)
        if details is None:
            resolution.status = Status.NO_MATCH
            resolution.reason = "details_missing"
            return resolution

        resolution.details = details
        logger.info("Resolved %s via %s", chosen.place_id, decision.reason)
        return resolution
