from __future__ import annotations

import logging
import os
from typing import Any

import httpx

from datasets.types import LivePois

logger = logging.getLogger(__name__)

DEFAULT_OVERPASS_URL = "https://overpass-api.de/api/interpreter"


def overpass_url() -> str:
    return (os.getenv("OVERPASS_URL") or "").strip() or DEFAULT_OVERPASS_URL


def build_overpass_query(live: LivePois) -> str:
    """
    Overpass QL for POI nodes inside the live bbox (Overpass order: south,west,north,east).
    """
    b = live.bbox
    bbox_str = f"{b.south},{b.west},{b.north},{b.east}"
    selectors = "".join(f'node["{tag}"]({bbox_str});' for tag in live.tags)
    return f"[out:json][timeout:{live.timeoutS}];({selectors});out center;"


def element_to_place(el: dict[str, Any]) -> dict[str, Any]:
    tags = el.get("tags") or {}
    name = tags.get("name") or tags.get("name:en")
    if not name and tags:
        name = next(iter(tags.values()))

    lat = el.get("lat")
    lon = el.get("lon")
    if lat is None or lon is None:
        center = el.get("center") or {}
        lat = center.get("lat")
        lon = center.get("lon")

    return {
        "id": f"{el.get('type')}-{el.get('id')}",
        "name": name or "unnamed",
        "lat": lat,
        "lng": lon,
        "tags": tags,
    }


def elements_to_places(elements: list[dict[str, Any]], *, limit: int) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    seen: set[str] = set()
    for el in elements:
        if (el or {}).get("type") not in {"node", "way"}:
            continue
        place = element_to_place(el)
        if not place["lat"] or not place["lng"]:
            continue
        if place["id"] in seen:
            continue
        seen.add(place["id"])
        out.append(place)
        # Keep the map responsive.
        if len(out) >= limit:
            break
    return out


async def fetch_live_places(
    live: LivePois,
    *,
    http: httpx.AsyncClient | None = None,
    url: str | None = None,
) -> list[dict[str, Any]]:
    """
    Query Overpass and return simplified places. Raises `httpx.HTTPError` on failure.
    """
    query = build_overpass_query(live)
    owns = http is None
    client = http or httpx.AsyncClient(timeout=float(live.timeoutS) + 5.0)
    try:
        resp = await client.post(
            url or overpass_url(),
            content=query,
            headers={"Content-Type": "text/plain"},
        )
        resp.raise_for_status()
        data = resp.json()
    finally:
        if owns:
            await client.aclose()

    elements = (data or {}).get("elements") if isinstance(data, dict) else None
    if not elements:
        return []
    places = elements_to_places(elements, limit=live.limit)
    logger.info("Overpass returned %d elements, %d places kept", len(elements), len(places))
    return places
