"""
Service-area classification and geocoding.

infer_region_level() guesses how wide a free-text service area is from the
words alone; Geocoder makes the single geocoding call for a request and
corrects that guess from the administrative types the directory returns.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from .models import RegionLevel
from .places import PlacesClient, PlacesError
from .weights import DEFAULT_WEIGHTS, RadiusTable

logger = logging.getLogger(__name__)

# Earth's radius in kilometers
EARTH_RADIUS_KM = 6371.0

US_STATES: Dict[str, str] = {
    "alabama": "AL", "alaska": "AK", "arizona": "AZ", "arkansas": "AR",
    "california": "CA", "colorado": "CO", "connecticut": "CT", "delaware": "DE",
    "florida": "FL", "georgia": "GA", "hawaii": "HI", "idaho": "ID",
    "illinois": "IL", "indiana": "IN", "iowa": "IA", "kansas": "KS",
    "kentucky": "KY", "louisiana": "LA", "maine": "ME", "maryland": "MD",
    "massachusetts": "MA", "michigan": "MI", "minnesota": "MN", "mississippi": "MS",
    "missouri": "MO", "montana": "MT", "nebraska": "NE", "nevada": "NV",
    "new hampshire": "NH", "new jersey": "NJ", "new mexico": "NM", "new york": "NY",
    "north carolina": "NC", "north dakota": "ND", "ohio": "OH", "oklahoma": "OK",
    "oregon": "OR", "pennsylvania": "PA", "rhode island": "RI", "south carolina": "SC",
    "south dakota": "SD", "tennessee": "TN", "texas": "TX", "utah": "UT",
    "vermont": "VT", "virginia": "VA", "washington": "WA", "west virginia": "WV",
    "wisconsin": "WI", "wyoming": "WY", "district of columbia": "DC",
}
STATE_CODES = set(US_STATES.values())

# Colloquial names that stand for a state inside a regional phrase
STATE_ALIASES: Dict[str, str] = {
    "jersey": "NJ",
    "socal": "CA",
    "norcal": "CA",
    "cali": "CA",
    "jersey shore": "NJ",
    "upstate": "NY",
    "panhandle": "FL",
}

DIRECTION_WORDS = (
    "north", "south", "east", "west", "central",
    "northern", "southern", "eastern", "western",
    "northeast", "northwest", "southeast", "southwest",
    "upstate", "downstate", "coastal", "shore", "valley",
)

# Geocoder result type → authoritative level
TYPE_LEVELS = (
    ("administrative_area_level_1", RegionLevel.STATE),
    ("administrative_area_level_2", RegionLevel.COUNTY),
    ("colloquial_area", RegionLevel.REGION),
    ("locality", RegionLevel.LOCALITY),
    ("sublocality", RegionLevel.LOCALITY),
    ("postal_code", RegionLevel.LOCALITY),
    ("neighborhood", RegionLevel.LOCALITY),
)


def _normalize_area(text: str) -> str:
    return " ".join(re.sub(r"[^a-z0-9\s]", " ", (text or "").lower()).split())


def _is_state_phrase(phrase: str) -> bool:
    return phrase in STATE_ALIASES or phrase in US_STATES or phrase.upper() in STATE_CODES


def _is_regional(words: List[str]) -> bool:
    """A direction word directly followed by a state phrase ("south jersey", "central nj")."""
    while words and words[-1] in ("area", "region"):
        words = words[:-1]
    if " ".join(words) in STATE_ALIASES:
        return True
    for i, word in enumerate(words[:-1]):
        if " ".join(words[i:]) in US_STATES:
            # "west virginia" names a state, not the west of one
            break
        if word in DIRECTION_WORDS and _is_state_phrase(" ".join(words[i + 1:])):
            return True
    return False


def infer_region_level(text: Optional[str]) -> RegionLevel:
    """
    Classify a free-text service area by granularity.

    Order matters: an exact state name or code wins, then a direction word
    next to a state alias ("South Jersey"), then the word "county", then a
    trailing state ("Newark, NJ"). Anything else is unknown.
    """
    normalized = _normalize_area(text or "")
    if not normalized:
        return RegionLevel.UNKNOWN

    if normalized in US_STATES or normalized.upper() in STATE_CODES:
        return RegionLevel.STATE

    words = normalized.split()
    if _is_regional(words):
        return RegionLevel.REGION

    if "county" in words or "parish" in words:
        return RegionLevel.COUNTY

    if extract_state_code(text) and len(words) > 1:
        return RegionLevel.LOCALITY

    return RegionLevel.UNKNOWN


def radius_by_level(level: RegionLevel, table: RadiusTable = DEFAULT_WEIGHTS.radius) -> int:
    """Search radius in meters for an area level."""
    return table.for_level(RegionLevel(level).value)


def extract_state_code(text: Optional[str]) -> Optional[str]:
    """Trailing state code or full state name → two-letter code."""
    normalized = _normalize_area(text or "")
    if not normalized:
        return None
    words = normalized.split()
    last = words[-1].upper()
    if len(last) == 2 and last in STATE_CODES:
        return last
    # Longest names first so "west virginia" wins over "virginia"
    for name in sorted(US_STATES, key=len, reverse=True):
        if normalized == name or normalized.endswith(" " + name):
            return US_STATES[name]
    return None


def address_in_state(address: str, state_code: str) -> bool:
    """True when a formatted address carries the state code (", NJ 07102, USA")."""
    pattern = r",\s*" + re.escape(state_code.upper()) + r"(\s+\d{5}(-\d{4})?)?\s*(,|$)"
    return re.search(pattern, address or "") is not None


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        lat1, lng1: First point coordinates in degrees
        lat2, lng2: Second point coordinates in degrees

    Returns:
        Distance in kilometers
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lng = math.radians(lng2 - lng1)

    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lng / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


# =============================================================================
# GEOCODER
# =============================================================================

@dataclass(frozen=True)
class GeoCenter:
    lat: float
    lng: float
    level: RegionLevel
    radius_m: int
    state_code: Optional[str] = None
    formatted_address: str = ""


def level_from_types(types: List[str]) -> Optional[RegionLevel]:
    for type_name, level in TYPE_LEVELS:
        if type_name in (types or ()):
            return level
    return None


def state_from_components(components: List[Dict]) -> Optional[str]:
    for comp in components or ():
        if "administrative_area_level_1" in (comp.get("types") or ()):
            code = (comp.get("short_name") or "").upper()
            if code in STATE_CODES:
                return code
    return None


class Geocoder:
    """Resolve a service area to a center point; one directory call per lookup."""

    def __init__(self, places: PlacesClient, radius_table: RadiusTable = DEFAULT_WEIGHTS.radius):
        self.places = places
        self.radius_table = radius_table

    async def locate(self, service_area: str) -> Optional[GeoCenter]:
        """
        Geocode the area. Returns None on failure; callers continue unbiased.
        """
        guessed = infer_region_level(service_area)
        try:
            result = await self.places.geocode(service_area)
        except PlacesError as e:
            logger.warning("Geocode failed for service area: %s", e)
            return None
        if not result:
            logger.info("Geocode found nothing for %r", service_area)
            return None

        location = (result.get("geometry") or {}).get("location") or {}
        if location.get("lat") is None or location.get("lng") is None:
            return None

        authoritative = level_from_types(result.get("types") or [])
        level = authoritative or guessed
        if authoritative and authoritative != guessed:
            logger.debug("Area level corrected %s -> %s", guessed.value, authoritative.value)

        state_code = state_from_components(result.get("address_components") or []) or extract_state_code(service_area)
        return GeoCenter(
            lat=float(location["lat"]),
            lng=float(location["lng"]),
            level=level,
            radius_m=radius_by_level(level, self.radius_table),
            state_code=state_code,
            formatted_address=result.get("formatted_address") or "",
        )
