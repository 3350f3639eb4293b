"""
POST /api/analyze route (alias POST /analyze).
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from backend.models.schemas import AnalyzeRequest
from backend.services.engine_service import get_engine
from visibility.assemble import assemble
from visibility.engine import VisibilityEngine
from visibility.models import Status

logger = logging.getLogger(__name__)

router = APIRouter(tags=["analyze"])


@router.post("/api/analyze")
@router.post("/analyze", include_in_schema=False)
async def post_analyze(body: AnalyzeRequest, engine: VisibilityEngine = Depends(get_engine)):
    """
    Score a business's local visibility.

    Required: businessName + serviceArea, or placeId
    Optional: websiteUrl, businessType, fast, siteOnly, noCache
    """
    try:
        outcome = await asyncio.wait_for(
            engine.analyze(body.to_service_request()),
            timeout=engine.settings.request_budget,
        )
    except asyncio.TimeoutError:
        logger.warning("Analyze exceeded the %ss request budget", engine.settings.request_budget)
        return JSONResponse(
            status_code=504,
            content={
                "success": False,
                "status": Status.UPSTREAM_FAILURE.value,
                "candidates": [],
                "message": "Analysis took too long; try again or use fast mode.",
            },
        )
    except Exception as e:
        logger.exception("Analyze failed: %s", e)
        raise HTTPException(status_code=500, detail="Internal server error")

    status_code, payload = assemble(outcome, engine.weights)
    return JSONResponse(status_code=status_code, content=payload)
