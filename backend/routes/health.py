"""
GET /api/health route (alias GET /health).
"""

from fastapi import APIRouter, Depends

from backend.models.schemas import HealthResponse
from backend.services.engine_service import get_engine
from visibility.engine import VisibilityEngine

router = APIRouter(tags=["health"])


@router.get("/api/health", response_model=HealthResponse, response_model_by_alias=True)
@router.get("/health", response_model=HealthResponse, response_model_by_alias=True, include_in_schema=False)
def health(engine: VisibilityEngine = Depends(get_engine)):
    """Liveness plus which credentials are configured (presence only)."""
    settings = engine.settings
    return HealthResponse(
        ok=True,
        maps_key_present=settings.maps_key_present,
        embed_key_present=settings.embed_key_present,
        llm_key_present=settings.llm_key_present,
        ad_scrape_enabled=settings.enable_ad_scrape,
        env=settings.environment,
        rubric_version=engine.weights.version,
    )
