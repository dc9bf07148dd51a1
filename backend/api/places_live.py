from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from datasets.registry import get_dataset
from overpass.client import fetch_live_places

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["places"])


@router.get("/places-live")
async def places_live():
    """
    Public POI nodes for the dataset's live bbox, straight from Overpass (capped).
    """
    dataset = get_dataset().config
    if dataset.livePois is None:
        return {"places": []}
    try:
        places = await fetch_live_places(dataset.livePois)
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("Overpass error: %s", exc)
        return JSONResponse(status_code=500, content={"error": "failed to fetch places"})
    return {"places": places}
