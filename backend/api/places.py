"""
Feature routes.

  GET /api/places-stream   SSE: one FeatureCollection event, then `ping` heartbeats
  GET /api/places-postgis  alias of /api/places-stream
  GET /api/places          the same snapshot as a single JSON response
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from api.config import heartbeat_interval_s, query_timeout_s
from api.deps import get_feature_store, get_session_registry, get_translator
from api.places_stream import (
    SessionRegistry,
    StreamingSession,
    build_snapshot,
    normalize_lang,
    stream_session,
)
from engine.types import FeatureStore
from geo.aoi import parse_bbox
from translate.client import Translator
from translate.config import source_lang

router = APIRouter(prefix="/api", tags=["places"])


_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.get("/places-stream")
@router.get("/places-postgis")
async def places_stream(
    request: Request,
    bbox: str | None = Query(default=None, description="west,south,east,north"),
    lang: str | None = Query(default=None),
    store: FeatureStore = Depends(get_feature_store),
    translator: Translator = Depends(get_translator),
    registry: SessionRegistry = Depends(get_session_registry),
):
    # Validation happens before any stream bytes, so failures are plain 4xx responses.
    src = source_lang()
    session = StreamingSession(
        aoi=parse_bbox(bbox),
        lang=normalize_lang(lang, default=src),
        store=store,
        translator=translator,
        source_lang=src,
        heartbeat_s=heartbeat_interval_s(),
        query_timeout_s=query_timeout_s(),
        is_disconnected=request.is_disconnected,
    )
    return StreamingResponse(
        stream_session(session, registry),
        media_type="text/event-stream",
        headers=_SSE_HEADERS,
    )


@router.get("/places")
async def places_snapshot(
    bbox: str | None = Query(default=None, description="west,south,east,north"),
    lang: str | None = Query(default=None),
    store: FeatureStore = Depends(get_feature_store),
    translator: Translator = Depends(get_translator),
):
    src = source_lang()
    collection = await build_snapshot(
        store,
        translator,
        parse_bbox(bbox),
        lang=normalize_lang(lang, default=src),
        source_lang=src,
        timeout_s=query_timeout_s(),
    )
    return collection.to_geojson()
