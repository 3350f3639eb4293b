"""
Visibility engine: one analysis request end to end.

resolve place → probe website → extract signals → blend → optional
qualitative enrichment (top competitor and its ads, LLM). Mandatory-step
failures become a structured status; optional-step failures contribute
nothing.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import quote_plus

import httpx

from .ads import AdScraper
from .cache import TTLCache
from .competitors import CompetitiveSnapshot, CompetitorSearch, TopCompetitor, strongest_rival
from .disambiguate import normalize_host
from .enrich import CandidateEnricher, DetailsLoader
from .geo import Geocoder
from .llm import QualitativeContext, QualitativeScorer
from .models import (
    SITE_UNREACHABLE,
    Candidate,
    Path,
    PlaceDetails,
    QualitativeScores,
    ScoreResult,
    ServiceRequest,
    SiteProbeResult,
    SiteScore,
    Status,
)
from .places import PlacesClient, PlacesError, PlacesQuotaError
from .probe import WebsiteProbe, normalize_url
from .resolver import PlaceResolver, Resolution
from .score import blend, gbp_score, site_score
from .search import CandidateSearch
from .settings import Settings
from .signals import extract_signals
from .weights import DEFAULT_WEIGHTS, RubricWeights

logger = logging.getLogger(__name__)

MAP_EMBED_URL = "https://www.google.com/maps/embed/v1/place"

# Site status values reported alongside the path
SITE_NOT_PROVIDED = "NOT_PROVIDED"
SITE_ANALYZED = "ANALYZED"
SITE_NOT_ANALYZED = "REACHABLE_NOT_ANALYZED"


@dataclass
class AnalysisOutcome:
    status: Status
    request: ServiceRequest
    score: Optional[ScoreResult] = None
    place: Optional[PlaceDetails] = None
    candidates: List[Candidate] = field(default_factory=list)
    probe: Optional[SiteProbeResult] = None
    site_status: str = SITE_NOT_PROVIDED
    qualitative: Optional[QualitativeScores] = None
    top_competitor: Optional[TopCompetitor] = None
    ad_snippets: List[str] = field(default_factory=list)
    message: Optional[str] = None
    suggestion: Optional[str] = None
    map_embed_url: Optional[str] = None


def map_embed_url(embed_key: str, place: Optional[PlaceDetails], request: ServiceRequest) -> Optional[str]:
    if not embed_key:
        return None
    if place is not None:
        q = f"place_id:{place.place_id}"
    else:
        q = " ".join(p for p in (request.business_name, request.service_area) if p)
        if not q:
            return None
    return f"{MAP_EMBED_URL}?key={quote_plus(embed_key)}&q={quote_plus(q)}"


class VisibilityEngine:
    """
    Wires the pipeline stages together. Caches are owned here and shared
    by every request this engine serves.
    """

    def __init__(
        self,
        settings: Settings,
        places: PlacesClient,
        http: httpx.AsyncClient,
        details_cache: TTLCache,
        probe_cache: Optional[TTLCache] = None,
        weights: RubricWeights = DEFAULT_WEIGHTS,
        llm: Optional[QualitativeScorer] = None,
        ads: Optional[AdScraper] = None,
    ):
        self.settings = settings
        self.places = places
        self.http = http
        self.weights = weights
        self.details_cache = details_cache
        self.loader = DetailsLoader(places, details_cache)
        self.resolver = PlaceResolver(
            Geocoder(places, weights.radius),
            CandidateSearch(places),
            CandidateEnricher(self.loader, settings.max_candidates, settings.enrich_concurrency),
            self.loader,
        )
        self.probe = WebsiteProbe(http, settings.probe_timeout, settings.homepage_timeout, probe_cache)
        self.competitors = CompetitorSearch(places, self.loader)
        self.llm = llm or QualitativeScorer(settings.openai_api_key, settings.openai_model, settings.llm_timeout)
        self.ads = ads or AdScraper(settings.enable_ad_scrape, settings.ad_scrape_timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> "VisibilityEngine":
        http = httpx.AsyncClient()
        places = PlacesClient(
            settings.places_api_key,
            http,
            timeout=settings.places_timeout,
            retry_backoff=settings.quota_retry_backoff,
        )
        return cls(
            settings,
            places,
            http,
            details_cache=TTLCache(settings.details_cache_ttl, name="details"),
            probe_cache=TTLCache(settings.probe_cache_ttl, name="probe"),
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    # -------------------------------------------------------------------------
    # Analyze
    # -------------------------------------------------------------------------

    async def analyze(self, request: ServiceRequest) -> AnalysisOutcome:
        """
        Score one business.

        Returns an AnalysisOutcome; never raises for directory failures
        (they become UPSTREAM_QUOTA / UPSTREAM_FAILURE).
        """
        if not request.has_identity and not (request.site_only and request.website_url):
            return AnalysisOutcome(
                status=Status.NEEDS_INPUT,
                request=request,
                message="Provide a business name (with its service area) or a place identifier.",
            )

        resolution = Resolution(status=Status.NEEDS_INPUT, reason="skipped")
        if not request.site_only:
            try:
                resolution = await self.resolver.resolve(request)
            except PlacesQuotaError as e:
                logger.warning("Directory quota exceeded: %s", e)
                return AnalysisOutcome(status=Status.UPSTREAM_QUOTA, request=request,
                                       message="Directory API quota exceeded; retry shortly.")
            except PlacesError as e:
                logger.warning("Directory lookup failed: %s", e)
                return AnalysisOutcome(status=Status.UPSTREAM_FAILURE, request=request,
                                       message="Directory API request failed.")

        if resolution.status == Status.AMBIGUOUS:
            return AnalysisOutcome(
                status=Status.AMBIGUOUS,
                request=request,
                candidates=resolution.candidates,
                message="Several businesses match; choose one and resend with its placeId.",
            )

        place = resolution.details if resolution.resolved else None
        website = request.website_url or (place.website if place else None)
        probe, site, site_status = await self._score_site(website, place, request)

        result = blend(
            gbp_score(place, request.business_type, self.weights.gbp) if place else None,
            site,
            forced_site_only=request.site_only,
            weights=self.weights,
        )
        outcome = AnalysisOutcome(
            status=Status.OK,
            request=request,
            score=result,
            place=place,
            candidates=[] if place else resolution.candidates,
            probe=probe,
            site_status=site_status,
            suggestion=resolution.suggestion,
            map_embed_url=map_embed_url(self.settings.embed_api_key, place, request),
        )

        if result.path == Path.NEEDS_INPUT:
            outcome.status = Status.NO_MATCH if resolution.status == Status.NO_MATCH else Status.NEEDS_INPUT
            outcome.score = None
            outcome.message = self._needs_input_message(request, resolution, site_status)
            return outcome

        logger.info("Scored %s: path=%s final=%s", request.business_name or website, result.path.value,
                    result.final_score)
        if not request.fast:
            rival = strongest_rival(resolution.candidates, place.place_id) if place else None
            await self._enrich_qualitative(outcome, website, rival)
        return outcome

    async def _score_site(self, website, place, request):
        if not website:
            return None, None, SITE_NOT_PROVIDED

        probe = await self.probe.probe(website, no_cache=request.no_cache)
        if not probe.reachable:
            return probe, None, SITE_UNREACHABLE
        if request.fast:
            return probe, None, SITE_NOT_ANALYZED

        fetched = await self.probe.fetch_homepage(probe.url)
        if fetched is None:
            return probe, None, SITE_UNREACHABLE
        html, final_url = fetched
        signals = extract_signals(html, final_url, place, self.weights)
        is_https = probe.is_https and final_url.startswith("https://")
        score: SiteScore = site_score(signals, is_https, self.weights.site)
        return probe, score, SITE_ANALYZED

    def _needs_input_message(self, request: ServiceRequest, resolution: Resolution, site_status: str) -> str:
        if request.site_only:
            return "Site-only scoring needs a reachable website."
        if resolution.status == Status.NO_MATCH:
            return "No directory listing matched this business."
        if resolution.candidates:
            return "Possible matches found; add the service area or choose one by placeId."
        if site_status == SITE_UNREACHABLE:
            return "The website could not be reached and no directory listing was resolved."
        return "Not enough information to score: add the service area or a website."

    async def _top_competitor(self, best: Optional[Candidate], no_cache: bool) -> Optional[TopCompetitor]:
        if best is None:
            return None
        try:
            details = await self.loader.load(best.place_id, no_cache=no_cache)
        except PlacesError as e:
            logger.warning("Competitor details skipped for %s: %s", best.place_id, e)
            return None
        if details is None:
            return TopCompetitor(place_id=best.place_id, name=best.name, website=best.website)
        return TopCompetitor(place_id=best.place_id, name=details.name or best.name,
                             website=details.website or best.website)

    async def _enrich_qualitative(self, outcome: AnalysisOutcome, website: Optional[str],
                                  rival: Optional[Candidate]) -> None:
        """Top competitor, its ads, then the LLM estimate. Every step may come back empty."""
        request = outcome.request
        outcome.top_competitor = await self._top_competitor(rival, request.no_cache)

        competitor_site = outcome.top_competitor.website if outcome.top_competitor else None
        competitor_domain = normalize_host(normalize_url(competitor_site)) if competitor_site else ""
        try:
            outcome.ad_snippets = await self.ads.fetch_ads(competitor_domain)
        except Exception as e:
            logger.warning("Ad scrape failed: %s", e)
            outcome.ad_snippets = []

        context = QualitativeContext(
            business_name=(outcome.place.name if outcome.place else request.business_name)
            or normalize_host(normalize_url(website) or ""),
            market=request.service_area or (outcome.place.address if outcome.place else ""),
            trade=request.business_type or "",
            website=website or "",
            review_snippets=list(outcome.place.review_snippets) if outcome.place else [],
            competitor_name=outcome.top_competitor.name if outcome.top_competitor else "",
            ad_snippets=outcome.ad_snippets,
        )
        try:
            outcome.qualitative = await self.llm.score(context)
        except Exception as e:
            logger.warning("Qualitative scoring failed: %s", e)
            outcome.qualitative = None

    # -------------------------------------------------------------------------
    # Other operations
    # -------------------------------------------------------------------------

    async def competitive_snapshot(
        self,
        place_id: str,
        business_type: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> CompetitiveSnapshot:
        try:
            return await self.competitors.snapshot(place_id, business_type, limit)
        except PlacesQuotaError as e:
            logger.warning("Directory quota exceeded: %s", e)
            return CompetitiveSnapshot(status=Status.UPSTREAM_QUOTA, message="Directory API quota exceeded.")
        except PlacesError as e:
            logger.warning("Competitor search failed: %s", e)
            return CompetitiveSnapshot(status=Status.UPSTREAM_FAILURE, message="Directory API request failed.")

    async def reverse_geocode(self, lat: float, lng: float) -> Optional[str]:
        """Coordinate → "City, ST". Raises PlacesError on upstream failure."""
        return await self.places.reverse_geocode(lat, lng)
