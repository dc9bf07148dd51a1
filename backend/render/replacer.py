from __future__ import annotations

from typing import Any

from features.types import TRANSLATED_NAME_PROP, FeatureCollection
from render.surface import MapSurface
from render.traces import build_label_plot


SOURCE_ID = "places"
LAYER_ID = "places-labels"


def label_layer(source_id: str = SOURCE_ID, layer_id: str = LAYER_ID) -> dict[str, Any]:
    # Same label policy as `Feature.label`: translated name first, original otherwise.
    return {
        "id": layer_id,
        "type": "symbol",
        "source": source_id,
        "layout": {
            "text-field": ["coalesce", ["get", TRANSLATED_NAME_PROP], ["get", "name"]],
            "text-font": ["Noto Sans Kannada Regular", "Arial Unicode MS Regular"],
            "text-size": 13,
            "text-offset": [0, 1.2],
            "text-anchor": "top",
        },
        "paint": {
            "text-color": "#222",
            "text-halo-color": "#fff",
            "text-halo-width": 1.2,
        },
    }


class RenderLayerReplacer:
    """
    Swaps the displayed places layer wholesale.

    Each call removes the previous layer and source before installing the new
    ones, so exactly one generation of features is on the map and an empty
    collection clears it.
    """

    def __init__(
        self,
        surface: MapSurface,
        *,
        source_id: str = SOURCE_ID,
        layer_id: str = LAYER_ID,
    ) -> None:
        self.surface = surface
        self.source_id = source_id
        self.layer_id = layer_id
        self.current: FeatureCollection | None = None
        self.generation = 0

    def replace(self, collection: FeatureCollection) -> None:
        if self.surface.get_layer(self.layer_id) is not None:
            self.surface.remove_layer(self.layer_id)
        if self.surface.get_source(self.source_id) is not None:
            self.surface.remove_source(self.source_id)

        self.surface.add_source(
            self.source_id, {"type": "geojson", "data": collection.to_geojson()}
        )
        self.surface.add_layer(label_layer(self.source_id, self.layer_id))
        self.current = collection
        self.generation += 1

    def visible_labels(self) -> list[str]:
        if self.current is None:
            return []
        return [f.label for f in self.current.features]

    def to_plot(self, *, viewport: dict[str, int] | None = None) -> dict[str, Any]:
        return build_label_plot(self.current, viewport=viewport)
