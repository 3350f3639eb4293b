"""
POST /api/competitive-snapshot route.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from backend.models.schemas import CompetitiveSnapshotRequest
from backend.services.engine_service import get_engine
from visibility.assemble import assemble_snapshot
from visibility.engine import VisibilityEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["competitive"])


@router.post("/competitive-snapshot")
async def post_competitive_snapshot(
    body: CompetitiveSnapshotRequest,
    engine: VisibilityEngine = Depends(get_engine),
):
    """Nearby same-trade businesses around a resolved place, strongest first."""
    try:
        snapshot = await engine.competitive_snapshot(body.place_id, body.business_type, body.limit)
    except Exception as e:
        logger.exception("Competitive snapshot failed: %s", e)
        raise HTTPException(status_code=500, detail="Internal server error")

    status_code, payload = assemble_snapshot(snapshot)
    return JSONResponse(status_code=status_code, content=payload)
