from __future__ import annotations

from typing import Any

from shapely.geometry import shape

from features.types import Feature, FeatureCollection
from render.view import view_for_bbox


def _anchor(feature: Feature) -> tuple[float, float] | None:
    # Labels sit on a point guaranteed to be inside the geometry.
    try:
        p = shape(feature.geometry).representative_point()
    except (ValueError, TypeError, AttributeError):
        return None
    if p.is_empty:
        return None
    return float(p.x), float(p.y)


def trace_labels(collection: FeatureCollection, *, name: str = "Places") -> dict[str, Any]:
    lons: list[float] = []
    lats: list[float] = []
    text: list[str] = []
    for f in collection.features:
        anchor = _anchor(f)
        if anchor is None:
            continue
        lons.append(anchor[0])
        lats.append(anchor[1])
        text.append(f.label)
    return {
        "type": "scattermapbox",
        "name": name,
        "lon": lons,
        "lat": lats,
        "mode": "text+markers",
        "text": text,
        "textposition": "bottom center",
        "marker": {"size": 8, "color": "rgba(33, 33, 33, 0.8)"},
        "hovertemplate": "%{text}<extra></extra>",
    }


def build_label_plot(
    collection: FeatureCollection | None,
    *,
    viewport: dict[str, int] | None = None,
) -> dict[str, Any]:
    """
    Plotly figure payload (`data` + `layout`) for the currently displayed labels.
    """
    if collection is None:
        return {"data": [], "layout": {"mapbox": {"style": "carto-positron"}}}

    center, zoom = view_for_bbox(collection.bbox, viewport=viewport)
    return {
        "data": [trace_labels(collection)],
        "layout": {
            "mapbox": {"center": center, "zoom": zoom, "style": "carto-positron"},
            "meta": {"lang": collection.lang, "featureCount": len(collection)},
        },
    }
