"""
GET /api/reverse route (alias GET /reverse).

Coordinate → "City, ST", used to pre-fill the service area.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from backend.services.engine_service import get_engine
from visibility.engine import VisibilityEngine
from visibility.places import PlacesError, PlacesQuotaError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reverse"])


def _coordinate(value: Optional[str], low: float, high: float) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or not low <= number <= high:
        return None
    return number


@router.get("/api/reverse")
@router.get("/reverse", include_in_schema=False)
async def reverse(lat: Optional[str] = None, lon: Optional[str] = None,
                  engine: VisibilityEngine = Depends(get_engine)):
    latitude = _coordinate(lat, -90.0, 90.0)
    longitude = _coordinate(lon, -180.0, 180.0)
    if latitude is None or longitude is None:
        raise HTTPException(status_code=400, detail="Latitude and longitude are required.")

    try:
        area = await engine.reverse_geocode(latitude, longitude)
    except PlacesQuotaError:
        raise HTTPException(status_code=429, detail="Directory API quota exceeded")
    except PlacesError as e:
        logger.warning("Reverse geocode failed: %s", e)
        raise HTTPException(status_code=502, detail="Reverse geocoding failed")

    if not area:
        raise HTTPException(status_code=404, detail="No city found for these coordinates.")
    return {"serviceArea": area}
