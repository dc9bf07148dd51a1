from __future__ import annotations

import math

from geo.aoi import BBox

TILE_PX = 256.0
MAX_ZOOM = 22.0


def _mercator_y(lat: float) -> float:
    lat = max(-85.0511, min(85.0511, lat))
    return math.log(math.tan(math.pi / 4.0 + math.radians(lat) / 2.0))


def _fit(span: float, world: float, px: int) -> float:
    # Zoom at which `span` (in the same unit as `world`) fills `px` pixels.
    return math.log2(px * world / (TILE_PX * max(span, 1e-9)))


def view_for_bbox(
    aoi: BBox,
    *,
    viewport: dict[str, int] | None = None,
) -> tuple[dict[str, float], float]:
    """
    Map center and the largest zoom that shows all of `aoi` (default viewport 900x600 px).
    """
    b = aoi.normalized()
    width = int((viewport or {}).get("width") or 900)
    height = int((viewport or {}).get("height") or 600)
    center = {"lon": (b.min_lon + b.max_lon) / 2.0, "lat": (b.min_lat + b.max_lat) / 2.0}
    zoom = min(
        _fit(b.max_lon - b.min_lon, 360.0, width),
        _fit(_mercator_y(b.max_lat) - _mercator_y(b.min_lat), 2.0 * math.pi, height),
    )
    return center, max(0.0, min(MAX_ZOOM, zoom))
