from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from shapely.geometry import mapping, shape
from shapely.errors import ShapelyError
from shapely.geometry.base import BaseGeometry

from features.types import Feature

logger = logging.getLogger(__name__)


def load_geojson_features(path: Path) -> list[tuple[Feature, BaseGeometry]]:
    """
    Load a seed GeoJSON FeatureCollection into (Feature, shapely geometry) pairs.

    Rows without a usable geometry are skipped; the first row wins on duplicate ids.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    raw_features = data.get("features") or []

    out: list[tuple[Feature, BaseGeometry]] = []
    seen: set[str] = set()
    skipped = 0
    for i, raw in enumerate(raw_features):
        props = (raw or {}).get("properties") or {}
        geom = _to_geometry((raw or {}).get("geometry"))
        if geom is None:
            skipped += 1
            continue

        fid = str((raw or {}).get("id") or props.get("id") or f"place-{i}")
        if fid in seen:
            skipped += 1
            continue
        seen.add(fid)

        out.append(
            (
                Feature(
                    id=fid,
                    geometry=geometry_to_geojson(geom),
                    category=_opt_str(props.get("category")),
                    name=_opt_str(props.get("name")),
                ),
                geom,
            )
        )

    if skipped:
        logger.warning("Skipped %d seed rows without usable geometry or id in %s", skipped, path)
    return out


def geometry_to_geojson(geom: BaseGeometry) -> dict[str, Any]:
    # shapely.mapping returns tuples; normalize to lists so payloads compare cleanly.
    return json.loads(json.dumps(mapping(geom)))


def _to_geometry(raw: Any) -> BaseGeometry | None:
    if not raw or not raw.get("coordinates"):
        return None
    try:
        geom = shape(raw)
    except (ShapelyError, ValueError, TypeError, AttributeError):
        return None
    if geom.is_empty:
        return None
    if not geom.is_valid:
        geom = geom.buffer(0)
        if geom.is_empty:
            return None
    return geom


def _opt_str(v: Any) -> str | None:
    if v is None:
        return None
    s = str(v)
    return s if s.strip() else None
