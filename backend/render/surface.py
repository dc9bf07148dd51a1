from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


class MapSurface(Protocol):
    """
    The slice of a basemap library the replacer needs (maplibre-style source/layer API).
    """

    def get_source(self, source_id: str) -> dict[str, Any] | None: ...

    def add_source(self, source_id: str, source: dict[str, Any]) -> None: ...

    def remove_source(self, source_id: str) -> None: ...

    def get_layer(self, layer_id: str) -> dict[str, Any] | None: ...

    def add_layer(self, layer: dict[str, Any]) -> None: ...

    def remove_layer(self, layer_id: str) -> None: ...


@dataclass
class InMemoryMapSurface:
    """
    Headless surface: keeps sources and layers in dicts and enforces the same
    ordering rules maplibre does (unique ids, no removing a source still in use).
    """

    sources: dict[str, dict[str, Any]] = field(default_factory=dict)
    layers: list[dict[str, Any]] = field(default_factory=list)

    def get_source(self, source_id: str) -> dict[str, Any] | None:
        return self.sources.get(source_id)

    def add_source(self, source_id: str, source: dict[str, Any]) -> None:
        if source_id in self.sources:
            raise ValueError(f"There is already a source with ID {source_id!r}")
        self.sources[source_id] = source

    def remove_source(self, source_id: str) -> None:
        in_use = [layer["id"] for layer in self.layers if layer.get("source") == source_id]
        if in_use:
            raise ValueError(f"Source {source_id!r} is still used by layers {in_use}")
        self.sources.pop(source_id, None)

    def get_layer(self, layer_id: str) -> dict[str, Any] | None:
        for layer in self.layers:
            if layer.get("id") == layer_id:
                return layer
        return None

    def add_layer(self, layer: dict[str, Any]) -> None:
        if self.get_layer(layer["id"]) is not None:
            raise ValueError(f"Layer with id {layer['id']!r} already exists on this map")
        if layer.get("source") not in self.sources:
            raise ValueError(f"Source {layer.get('source')!r} not found")
        self.layers.append(layer)

    def remove_layer(self, layer_id: str) -> None:
        self.layers = [layer for layer in self.layers if layer.get("id") != layer_id]
