"""
End-to-end tests for VisibilityEngine.analyze against the in-memory
directory and a mock website transport.

Scenarios:
  a) Clear single match, no website → GBP_ONLY
  b) Match + reachable website → BLENDED_60_40
  c) Name only, nothing found → NEEDS_INPUT, no score
  d) Near-identical names → review count decides
  e) Exact tie → AMBIGUOUS with candidates
  f) Directory quota → UPSTREAM_QUOTA
  g) Site-only forced, unreachable site, fast mode, cache bypass
"""

import asyncio

from conftest import NEWARK_GEOCODE, StubLLM, details, make_engine, place

from visibility.ads import AdScraper
from visibility.engine import SITE_ANALYZED, SITE_NOT_ANALYZED, SITE_NOT_PROVIDED
from visibility.models import SITE_UNREACHABLE, Path, QualitativeScores, ServiceRequest, Status
from visibility.places import PlacesError, PlacesQuotaError
from visibility.score import round_half_up

AREA = "Newark, NJ"
QUERY = "Acme Roofing Newark, NJ"

HOMEPAGE = """
<html><head><title>Acme Roofing | Newark NJ Roof Repair</title>
<meta name="description" content="Roof repair and replacement across Newark and Essex County since 1998.">
</head><body>
<nav><a href="/">Home</a><a href="/services">Services</a><a href="/contact">Contact</a></nav>
<h1>Newark's Roofers</h1>
<a href="tel:+19735550100">Call (973) 555-0100</a>
<form><input type="submit" value="Get a free estimate"></form>
<p>1 Main St, Newark, NJ</p>
</body></html>
"""


def _request(**kwargs):
    base = {"business_name": "Acme Roofing", "service_area": AREA, "business_type": "roofing"}
    base.update(kwargs)
    return ServiceRequest(**base)


def _single_match(fake_places, website=None, reviews=80):
    fake_places.geocodes[AREA] = NEWARK_GEOCODE
    fake_places.find_biased[QUERY] = [place("p1", "Acme Roofing", rating=4.6, reviews=reviews)]
    fake_places.details["p1"] = details("p1", "Acme Roofing", rating=4.6, reviews=reviews, website=website)


class FakeAds(AdScraper):
    def __init__(self, snippets):
        super().__init__(enabled=True)
        self.snippets = snippets
        self.domains = []

    @property
    def available(self) -> bool:
        return True

    async def _scrape(self, domain):
        self.domains.append(domain)
        return list(self.snippets)


def test_gbp_only_reference_score(fake_places):
    _single_match(fake_places)
    outcome = asyncio.run(make_engine(fake_places).analyze(_request()))

    assert outcome.status == Status.OK
    assert outcome.score.path == Path.GBP_ONLY
    assert outcome.score.final_score == 92
    assert outcome.site_status == SITE_NOT_PROVIDED
    assert outcome.place.place_id == "p1"
    assert fake_places.count("geocode") == 1


def test_blended_when_website_reachable(fake_places):
    _single_match(fake_places, website="https://acme.com")
    pages = {"https://acme.com": HOMEPAGE, "https://acme.com/contact": HOMEPAGE}
    outcome = asyncio.run(make_engine(fake_places, pages).analyze(_request()))

    result = outcome.score
    assert result.path == Path.BLENDED_60_40
    assert outcome.site_status == SITE_ANALYZED
    assert result.gbp.score == 92
    assert result.final_score == round_half_up(0.6 * result.gbp.score + 0.4 * result.site.score)
    assert result.site.health == 100
    assert result.site.cta.contributions["knownPhone"] > 0
    assert outcome.probe.contact_reachable is True


def test_request_website_overrides_profile_website(fake_places):
    _single_match(fake_places, website="https://old-acme.com")
    pages = {"https://acme.com": HOMEPAGE}
    outcome = asyncio.run(make_engine(fake_places, pages).analyze(_request(website_url="acme.com")))
    assert outcome.score.path == Path.BLENDED_60_40
    assert outcome.probe.url.startswith("https://acme.com")


def test_name_only_with_no_results_needs_input(fake_places):
    outcome = asyncio.run(make_engine(fake_places).analyze(ServiceRequest(business_name="Acme Roofing")))
    assert outcome.status == Status.NEEDS_INPUT
    assert outcome.score is None
    assert outcome.message
    assert fake_places.count("geocode") == 0


def test_name_only_never_auto_selects(fake_places):
    fake_places.find_unbiased["Acme Roofing"] = [place("p1", "Acme Roofing", rating=4.6, reviews=80)]
    fake_places.details["p1"] = details("p1", "Acme Roofing")
    outcome = asyncio.run(make_engine(fake_places).analyze(ServiceRequest(business_name="Acme Roofing")))
    assert outcome.status == Status.NEEDS_INPUT
    assert outcome.score is None
    assert [c.place_id for c in outcome.candidates] == ["p1"]


def test_area_with_no_results_is_no_match(fake_places):
    fake_places.geocodes[AREA] = NEWARK_GEOCODE
    outcome = asyncio.run(make_engine(fake_places).analyze(_request()))
    assert outcome.status == Status.NO_MATCH
    assert outcome.score is None


def test_review_count_breaks_near_tie(fake_places):
    fake_places.geocodes[AREA] = NEWARK_GEOCODE
    fake_places.find_biased[QUERY] = [
        place("few", "Acme Roofing LLC", rating=4.5, reviews=5),
        place("many", "Acme Roofing", rating=4.5, reviews=200),
    ]
    fake_places.details["few"] = details("few", "Acme Roofing LLC", rating=4.5, reviews=5)
    fake_places.details["many"] = details("many", "Acme Roofing", rating=4.5, reviews=200)

    outcome = asyncio.run(make_engine(fake_places).analyze(_request()))
    assert outcome.status == Status.OK
    assert outcome.place.place_id == "many"


def test_exact_tie_is_ambiguous(fake_places):
    fake_places.geocodes[AREA] = NEWARK_GEOCODE
    fake_places.find_biased[QUERY] = [place("p1", "Acme Roofing"), place("p2", "Acme Roofing")]
    fake_places.details["p1"] = details("p1", "Acme Roofing", reviews=40)
    fake_places.details["p2"] = details("p2", "Acme Roofing", reviews=40)

    outcome = asyncio.run(make_engine(fake_places).analyze(_request(website_url="acme.com")))
    assert outcome.status == Status.AMBIGUOUS
    assert outcome.score is None
    assert [c.place_id for c in outcome.candidates] == ["p1", "p2"]


def test_quota_becomes_structured_status(fake_places):
    fake_places.fail_with = PlacesQuotaError("OVER_QUERY_LIMIT")
    outcome = asyncio.run(make_engine(fake_places).analyze(_request()))
    assert outcome.status == Status.UPSTREAM_QUOTA
    assert outcome.score is None


def test_upstream_failure_becomes_structured_status(fake_places):
    _single_match(fake_places)
    fake_places.details_fail["p1"] = PlacesError("HTTP 500")
    fake_places.details.pop("p1")
    outcome = asyncio.run(make_engine(fake_places).analyze(_request()))
    assert outcome.status == Status.UPSTREAM_FAILURE


def test_geocode_failure_continues_unbiased(fake_places):
    fake_places.find_unbiased[QUERY] = [place("p1", "Acme Roofing", rating=4.6, reviews=80)]
    fake_places.details["p1"] = details("p1", "Acme Roofing", reviews=80)
    outcome = asyncio.run(make_engine(fake_places).analyze(_request()))
    assert outcome.status == Status.OK
    assert fake_places.count("find_place_biased") == 0


def test_place_id_skips_search(fake_places):
    fake_places.details["p1"] = details("p1", "Acme Roofing", reviews=80)
    outcome = asyncio.run(make_engine(fake_places).analyze(ServiceRequest(place_id="p1", business_type="roofing")))
    assert outcome.score.final_score == 92
    assert [c[0] for c in fake_places.calls] == ["place_details"]


def test_site_only_forced_skips_directory(fake_places):
    pages = {"https://acme.com": HOMEPAGE}
    request = ServiceRequest(website_url="acme.com", site_only=True, business_name="Acme Roofing")
    outcome = asyncio.run(make_engine(fake_places, pages).analyze(request))
    assert outcome.score.path == Path.SITE_ONLY_FORCED
    assert outcome.score.gbp is None
    assert outcome.place is None
    assert fake_places.calls == []


def test_site_only_with_unreachable_site_needs_input(fake_places):
    request = ServiceRequest(website_url="acme.com", site_only=True)
    outcome = asyncio.run(make_engine(fake_places, {"https://acme.com": 503}).analyze(request))
    assert outcome.status == Status.NEEDS_INPUT
    assert outcome.score is None


def test_website_alone_is_not_enough(fake_places):
    outcome = asyncio.run(make_engine(fake_places).analyze(ServiceRequest(website_url="acme.com")))
    assert outcome.status == Status.NEEDS_INPUT
    assert fake_places.calls == []


def test_unreachable_site_falls_back_to_gbp_only(fake_places):
    _single_match(fake_places, website="https://acme.com")
    outcome = asyncio.run(make_engine(fake_places, {"https://acme.com": 503}).analyze(_request()))
    assert outcome.score.path == Path.GBP_ONLY
    assert outcome.score.final_score == 92
    assert outcome.site_status == SITE_UNREACHABLE


def test_fast_mode_skips_homepage_and_llm(fake_places):
    _single_match(fake_places, website="https://acme.com")
    llm = StubLLM(result=QualitativeScores(cta_strength=70))
    engine = make_engine(fake_places, {"https://acme.com": HOMEPAGE}, llm=llm)
    outcome = asyncio.run(engine.analyze(_request(fast=True)))
    assert outcome.score.path == Path.GBP_ONLY
    assert outcome.site_status == SITE_NOT_ANALYZED
    assert outcome.qualitative is None
    assert llm.contexts == []


def test_details_cached_between_requests(fake_places, clock):
    _single_match(fake_places)
    engine = make_engine(fake_places, clock=clock)
    asyncio.run(engine.analyze(_request()))
    asyncio.run(engine.analyze(_request()))
    assert fake_places.count("place_details") == 1

    asyncio.run(engine.analyze(_request(no_cache=True)))
    assert fake_places.count("place_details") == 2

    clock.advance(3 * 3600 + 1)
    asyncio.run(engine.analyze(_request()))
    assert fake_places.count("place_details") == 3


def _match_with_rival(fake_places, rival_website="https://rival-roofing.com"):
    _single_match(fake_places, website="https://acme.com")
    fake_places.find_biased[QUERY].append(place("r1", "Acme Roofing Pros", rating=4.9, reviews=300))
    fake_places.details["r1"] = details("r1", "Acme Roofing Pros", rating=4.9, reviews=300, website=rival_website)


def test_qualitative_scores_reported_without_changing_score(fake_places):
    _match_with_rival(fake_places)
    llm = StubLLM(result=QualitativeScores(cta_strength=70, top_priority="Add reviews."))
    engine = make_engine(fake_places, {"https://acme.com": HOMEPAGE}, llm=llm)
    engine.ads = FakeAds(["Same-day roof repair. Call now."])

    outcome = asyncio.run(engine.analyze(_request()))
    baseline = asyncio.run(make_engine(fake_places, {"https://acme.com": HOMEPAGE}).analyze(_request()))
    assert outcome.place.place_id == "p1"
    assert outcome.qualitative.cta_strength == 70
    assert outcome.score.final_score == baseline.score.final_score
    context = llm.contexts[0]
    assert context.business_name == "Acme Roofing"
    assert "Fixed our roof fast." in context.review_snippets


def test_ads_come_from_the_top_competitor_not_the_business(fake_places):
    _match_with_rival(fake_places)
    llm = StubLLM(result=QualitativeScores(cta_strength=70))
    engine = make_engine(fake_places, {"https://acme.com": HOMEPAGE}, llm=llm)
    engine.ads = FakeAds(["Same-day roof repair. Call now."])

    outcome = asyncio.run(engine.analyze(_request()))
    assert engine.ads.domains == ["rival-roofing.com"]
    assert outcome.top_competitor.place_id == "r1"
    assert outcome.top_competitor.website == "https://rival-roofing.com"
    assert outcome.ad_snippets == ["Same-day roof repair. Call now."]
    context = llm.contexts[0]
    assert context.competitor_name == "Acme Roofing Pros"
    assert context.ad_snippets == outcome.ad_snippets


def test_no_rival_means_no_ad_scrape(fake_places):
    _single_match(fake_places, website="https://acme.com")
    engine = make_engine(fake_places, {"https://acme.com": HOMEPAGE})
    engine.ads = FakeAds(["Own ad"])
    outcome = asyncio.run(engine.analyze(_request()))
    assert outcome.top_competitor is None
    assert outcome.ad_snippets == []
    assert engine.ads.domains == []


def test_rival_without_website_is_named_but_not_scraped(fake_places):
    _match_with_rival(fake_places, rival_website=None)
    engine = make_engine(fake_places, {"https://acme.com": HOMEPAGE})
    engine.ads = FakeAds(["Ad"])
    outcome = asyncio.run(engine.analyze(_request()))
    assert outcome.top_competitor.name == "Acme Roofing Pros"
    assert outcome.top_competitor.website is None
    assert engine.ads.domains == []


def test_rival_details_failure_is_absorbed(fake_places):
    _match_with_rival(fake_places)
    fake_places.details_fail["r1"] = PlacesError("HTTP 500")
    outcome = asyncio.run(make_engine(fake_places, {"https://acme.com": HOMEPAGE}).analyze(_request()))
    assert outcome.status == Status.OK
    assert outcome.top_competitor is None


def test_raising_ad_scraper_is_absorbed(fake_places):
    class BrokenAds(AdScraper):
        async def fetch_ads(self, domain):
            raise RuntimeError("browser crashed")

    _match_with_rival(fake_places)
    baseline = asyncio.run(make_engine(fake_places, {"https://acme.com": HOMEPAGE}).analyze(_request()))
    engine = make_engine(fake_places, {"https://acme.com": HOMEPAGE})
    engine.ads = BrokenAds(enabled=True)
    outcome = asyncio.run(engine.analyze(_request()))
    assert outcome.status == Status.OK
    assert outcome.ad_snippets == []
    assert outcome.score.final_score == baseline.score.final_score


def test_fast_mode_skips_top_competitor(fake_places):
    _match_with_rival(fake_places)
    engine = make_engine(fake_places, {"https://acme.com": HOMEPAGE})
    engine.ads = FakeAds(["Ad"])
    outcome = asyncio.run(engine.analyze(_request(fast=True)))
    assert outcome.top_competitor is None
    assert engine.ads.domains == []


def test_llm_failure_is_absorbed(fake_places):
    _single_match(fake_places)
    engine = make_engine(fake_places, llm=StubLLM(error=RuntimeError("boom")))
    outcome = asyncio.run(engine.analyze(_request()))
    assert outcome.status == Status.OK
    assert outcome.qualitative is None
    assert outcome.score.final_score == 92


def test_map_embed_url_needs_embed_key(fake_places):
    _single_match(fake_places)
    assert asyncio.run(make_engine(fake_places).analyze(_request())).map_embed_url is None

    outcome = asyncio.run(make_engine(fake_places, embed_api_key="embed-key").analyze(_request()))
    assert outcome.map_embed_url.endswith("q=place_id%3Ap1")
    assert "key=embed-key" in outcome.map_embed_url
