from __future__ import annotations

import math
from dataclasses import dataclass

from shapely.geometry import Polygon
from shapely.geometry import box as shapely_box

from api.errors import InvalidRequest


@dataclass(frozen=True)
class BBox:
    """
    WGS84 viewport rectangle in lon/lat degrees.

    Convention used throughout this repo (and on the wire):
    - west, south, east, north == minLon, minLat, maxLon, maxLat
    """

    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    def normalized(self) -> "BBox":
        min_lon = min(self.min_lon, self.max_lon)
        max_lon = max(self.min_lon, self.max_lon)
        min_lat = min(self.min_lat, self.max_lat)
        max_lat = max(self.min_lat, self.max_lat)
        return BBox(min_lon=min_lon, min_lat=min_lat, max_lon=max_lon, max_lat=max_lat)

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.min_lon, self.min_lat, self.max_lon, self.max_lat)

    def to_param(self) -> str:
        """
        Query-string form accepted by `parse_bbox` ("w,s,e,n").
        """
        return ",".join(repr(float(v)) for v in self.as_tuple())

    def polygon(self) -> Polygon:
        b = self.normalized()
        return shapely_box(b.min_lon, b.min_lat, b.max_lon, b.max_lat)


def parse_bbox(raw: str | None) -> BBox:
    """
    Parse a "west,south,east,north" query parameter.

    Exactly four finite numbers are required. Axis ordering is normalized, since
    the rectangle comes straight from a map surface.
    """
    if raw is None or not str(raw).strip():
        raise InvalidRequest("bbox required")

    parts = [p.strip() for p in str(raw).split(",")]
    if len(parts) != 4:
        raise InvalidRequest(
            f"bbox must have exactly 4 comma-separated numbers, got {len(parts)}"
        )

    values: list[float] = []
    for p in parts:
        try:
            v = float(p)
        except ValueError:
            raise InvalidRequest(f"bbox value is not a number: {p!r}") from None
        if not math.isfinite(v):
            raise InvalidRequest(f"bbox value is not finite: {p!r}")
        values.append(v)

    west, south, east, north = values
    return BBox(min_lon=west, min_lat=south, max_lon=east, max_lat=north).normalized()
