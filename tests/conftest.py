"""
Shared fakes for the engine tests.

FakePlaces stands in for PlacesClient: canned responses keyed by query
text / place id, and a log of every call. FakeClock drives TTL caches.
site_transport() builds an httpx.MockTransport serving fixed pages.
"""

import os
import sys
from typing import Callable, Dict, List, Optional

import httpx
import pytest

_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _root)

from visibility.cache import TTLCache  # noqa: E402
from visibility.engine import VisibilityEngine  # noqa: E402
from visibility.llm import QualitativeScorer  # noqa: E402
from visibility.ads import AdScraper  # noqa: E402
from visibility.settings import Settings  # noqa: E402


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def place(place_id, name, address="1 Main St, Newark, NJ 07102, USA", rating=None, reviews=None,
          lat=40.73, lng=-74.17, **extra):
    """Raw search result record as the directory returns it."""
    record = {
        "place_id": place_id,
        "name": name,
        "formatted_address": address,
        "geometry": {"location": {"lat": lat, "lng": lng}},
    }
    if rating is not None:
        record["rating"] = rating
    if reviews is not None:
        record["user_ratings_total"] = reviews
    record.update(extra)
    return record


def details(place_id, name, rating=4.6, reviews=120, types=("roofing_contractor", "establishment"),
            website=None, photos=True, hours=True, phone="(973) 555-0100", lat=40.73, lng=-74.17, **extra):
    """Raw details record as the directory returns it."""
    record = {
        "place_id": place_id,
        "name": name,
        "formatted_address": "1 Main St, Newark, NJ 07102, USA",
        "rating": rating,
        "user_ratings_total": reviews,
        "types": list(types),
        "geometry": {"location": {"lat": lat, "lng": lng}},
        "formatted_phone_number": phone,
        "reviews": [{"text": "Fixed our roof fast."}, {"text": "Great crew."}],
    }
    if website:
        record["website"] = website
    if photos:
        record["photos"] = [{"photo_reference": "p1"}]
    if hours:
        record["opening_hours"] = {"open_now": True, "weekday_text": ["Monday: 8AM-5PM"]}
    record.update(extra)
    return record


NEWARK_GEOCODE = {
    "formatted_address": "Newark, NJ, USA",
    "types": ["locality", "political"],
    "geometry": {"location": {"lat": 40.7357, "lng": -74.1724}},
    "address_components": [
        {"long_name": "Newark", "short_name": "Newark", "types": ["locality", "political"]},
        {"long_name": "New Jersey", "short_name": "NJ", "types": ["administrative_area_level_1", "political"]},
    ],
}


class FakePlaces:
    """
    In-memory directory.

    find_place / text_search answer by exact query text (biased and
    unbiased find_place can differ); anything unmapped returns [].
    Set `fail_with` to an exception instance to make every call raise it.
    """

    def __init__(self):
        self.geocodes: Dict[str, Optional[dict]] = {}
        self.find_biased: Dict[str, List[dict]] = {}
        self.find_unbiased: Dict[str, List[dict]] = {}
        self.text: Dict[str, List[dict]] = {}
        self.nearby: Dict[tuple, List[dict]] = {}
        self.details: Dict[str, dict] = {}
        self.reverse: Dict[tuple, Optional[str]] = {}
        self.calls: List[tuple] = []
        self.fail_with: Optional[Exception] = None
        self.details_fail: Dict[str, Exception] = {}

    def _record(self, *call):
        self.calls.append(call)
        if self.fail_with is not None:
            raise self.fail_with

    def count(self, operation: str) -> int:
        return sum(1 for c in self.calls if c[0] == operation)

    async def geocode(self, address):
        self._record("geocode", address)
        return self.geocodes.get(address)

    async def reverse_geocode(self, lat, lng):
        self._record("reverse_geocode", lat, lng)
        return self.reverse.get((lat, lng))

    async def find_place(self, text, lat=None, lng=None, radius_m=None):
        biased = lat is not None
        self._record("find_place_biased" if biased else "find_place", text)
        table = self.find_biased if biased else self.find_unbiased
        return list(table.get(text, []))

    async def text_search(self, query, lat=None, lng=None, radius_m=None):
        self._record("text_search", query)
        return list(self.text.get(query, []))

    async def nearby_search(self, lat, lng, radius_m, keyword):
        self._record("nearby_search", radius_m, keyword)
        return list(self.nearby.get((radius_m, keyword), []))

    async def place_details(self, place_id):
        self._record("place_details", place_id)
        if place_id in self.details_fail:
            raise self.details_fail[place_id]
        return self.details.get(place_id)

    def get_stats(self):
        return {"total_requests": len(self.calls)}


def site_transport(pages: Dict[str, object]) -> httpx.MockTransport:
    """
    Serve fixed responses by URL. A value is HTML text (200), an int
    status code, or an exception instance to raise.
    """
    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        value = pages.get(url)
        if value is None:
            value = pages.get(url.rstrip("/"))
        if value is None:
            return httpx.Response(404, request=request)
        if isinstance(value, Exception):
            raise value
        if isinstance(value, int):
            return httpx.Response(value, request=request)
        body = value if request.method != "HEAD" else ""
        return httpx.Response(200, text=body, headers={"content-type": "text/html; charset=utf-8"}, request=request)

    return httpx.MockTransport(handler)


class StubLLM(QualitativeScorer):
    def __init__(self, result=None, error: Optional[Exception] = None):
        super().__init__(api_key="")
        self.result = result
        self.error = error
        self.contexts = []

    @property
    def enabled(self) -> bool:
        return True

    async def score(self, context):
        self.contexts.append(context)
        if self.error:
            raise self.error
        return self.result


def make_engine(
    fake_places: FakePlaces,
    pages: Optional[Dict[str, object]] = None,
    clock: Optional[Callable[[], float]] = None,
    llm: Optional[QualitativeScorer] = None,
    **settings_overrides,
) -> VisibilityEngine:
    settings = Settings(places_api_key="test-key", **settings_overrides)
    clock = clock or FakeClock()
    http = httpx.AsyncClient(transport=site_transport(pages or {}))
    return VisibilityEngine(
        settings,
        fake_places,
        http,
        details_cache=TTLCache(settings.details_cache_ttl, clock=clock, name="details"),
        probe_cache=TTLCache(settings.probe_cache_ttl, clock=clock, name="probe"),
        llm=llm or QualitativeScorer(api_key=""),
        ads=AdScraper(enabled=False),
    )


@pytest.fixture
def fake_places():
    return FakePlaces()


@pytest.fixture
def clock():
    return FakeClock()
