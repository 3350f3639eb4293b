"""
Google Places / Geocoding API client.

Async wrapper over the legacy JSON endpoints (Find Place, Text Search,
Nearby Search, Details, Geocoding) with:
- One bounded retry on quota errors (HTTP 429 / OVER_QUERY_LIMIT)
- Explicit per-call timeouts
- Request counting
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

# API Configuration
PLACES_BASE_URL = "https://maps.googleapis.com/maps/api/place"
GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
MAX_NEARBY_RADIUS_M = 50_000  # Nearby Search hard limit

SEARCH_FIELDS = "place_id,name,formatted_address,rating,user_ratings_total,geometry"
DETAILS_FIELDS = (
    "place_id,name,formatted_address,website,rating,user_ratings_total,types,photos,"
    "opening_hours,formatted_phone_number,geometry,url,reviews"
)


class PlacesError(RuntimeError):
    """Raised when the directory API returns a non-successful response."""


class PlacesQuotaError(PlacesError):
    """Quota or rate limit still exceeded after the single retry."""


class PlacesClient:
    """
    Directory API client.

    Attributes:
        request_count: Total HTTP requests made (retries included)
    """

    def __init__(
        self,
        api_key: str,
        http: httpx.AsyncClient,
        timeout: float = 6.0,
        retry_backoff: float = 0.4,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.api_key = api_key
        self.http = http
        self.timeout = timeout
        self.retry_backoff = retry_backoff
        self._sleep = sleep
        self.request_count = 0

    async def _get_json(self, url: str, params: Dict[str, Any], operation: str) -> Dict[str, Any]:
        if not self.api_key:
            raise PlacesError("GOOGLE_PLACES_API_KEY is not configured")
        query = {**params, "key": self.api_key}

        for attempt in (0, 1):
            try:
                self.request_count += 1
                response = await self.http.get(url, params=query, timeout=self.timeout)
            except httpx.TimeoutException as e:
                raise PlacesError(f"{operation} timed out") from e
            except httpx.HTTPError as e:
                raise PlacesError(f"{operation} transport error: {type(e).__name__}") from e

            quota_hit = response.status_code == 429
            payload: Dict[str, Any] = {}
            if not quota_hit:
                if response.status_code >= 400:
                    raise PlacesError(f"{operation} failed: HTTP {response.status_code}")
                try:
                    payload = response.json()
                except ValueError as e:
                    raise PlacesError(f"{operation} returned invalid JSON") from e
                quota_hit = payload.get("status") == "OVER_QUERY_LIMIT"

            if not quota_hit:
                return payload
            if attempt == 0:
                logger.warning("%s rate limited; retrying once in %.1fs", operation, self.retry_backoff)
                await self._sleep(self.retry_backoff)

        raise PlacesQuotaError(f"{operation} quota exceeded")

    def _check(self, payload: Dict[str, Any], operation: str, allowed=("OK", "ZERO_RESULTS")) -> str:
        status = payload.get("status")
        if status not in allowed:
            logger.error("%s failed: status=%s, error_message=%s", operation, status, payload.get("error_message"))
            raise PlacesError(payload.get("error_message") or status or f"{operation} failed")
        return status

    # -------------------------------------------------------------------------
    # Geocoding
    # -------------------------------------------------------------------------

    async def geocode(self, address: str) -> Optional[Dict[str, Any]]:
        """First geocoding result for an address, or None."""
        payload = await self._get_json(GEOCODE_URL, {"address": address, "region": "us"}, "geocode")
        self._check(payload, "geocode")
        results = payload.get("results") or []
        return results[0] if results else None

    async def reverse_geocode(self, lat: float, lng: float) -> Optional[str]:
        """Coordinate → "City, ST", or None when no locality is found."""
        payload = await self._get_json(
            GEOCODE_URL,
            {"latlng": f"{lat},{lng}", "result_type": "locality|political"},
            "reverse_geocode",
        )
        self._check(payload, "reverse_geocode")
        for result in payload.get("results") or []:
            city = state = None
            for comp in result.get("address_components") or []:
                types = comp.get("types") or []
                if "locality" in types or ("postal_town" in types and not city):
                    city = comp.get("long_name")
                elif "administrative_area_level_1" in types:
                    state = comp.get("short_name")
            if city and state:
                return f"{city}, {state}"
            if city:
                return city
        return None

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    async def find_place(
        self,
        text: str,
        lat: Optional[float] = None,
        lng: Optional[float] = None,
        radius_m: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"input": text, "inputtype": "textquery", "fields": SEARCH_FIELDS}
        if lat is not None and lng is not None and radius_m:
            params["locationbias"] = f"circle:{int(radius_m)}@{lat},{lng}"
        payload = await self._get_json(f"{PLACES_BASE_URL}/findplacefromtext/json", params, "find_place")
        self._check(payload, "find_place")
        return payload.get("candidates") or []

    async def text_search(
        self,
        query: str,
        lat: Optional[float] = None,
        lng: Optional[float] = None,
        radius_m: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"query": query}
        if lat is not None and lng is not None:
            params["location"] = f"{lat},{lng}"
            if radius_m:
                params["radius"] = min(int(radius_m), MAX_NEARBY_RADIUS_M)
        payload = await self._get_json(f"{PLACES_BASE_URL}/textsearch/json", params, "text_search")
        self._check(payload, "text_search")
        return payload.get("results") or []

    async def nearby_search(self, lat: float, lng: float, radius_m: int, keyword: str) -> List[Dict[str, Any]]:
        params = {
            "location": f"{lat},{lng}",
            "radius": min(int(radius_m), MAX_NEARBY_RADIUS_M),
            "keyword": keyword,
        }
        payload = await self._get_json(f"{PLACES_BASE_URL}/nearbysearch/json", params, "nearby_search")
        self._check(payload, "nearby_search")
        return payload.get("results") or []

    # -------------------------------------------------------------------------
    # Details
    # -------------------------------------------------------------------------

    async def place_details(self, place_id: str) -> Optional[Dict[str, Any]]:
        """Raw details record, or None when the place id is unknown."""
        payload = await self._get_json(
            f"{PLACES_BASE_URL}/details/json",
            {"place_id": place_id, "fields": DETAILS_FIELDS},
            "place_details",
        )
        status = self._check(payload, "place_details", allowed=("OK", "ZERO_RESULTS", "NOT_FOUND"))
        if status != "OK":
            return None
        return payload.get("result") or None

    def get_stats(self) -> Dict[str, int]:
        """Return current request statistics."""
        return {"total_requests": self.request_count}
