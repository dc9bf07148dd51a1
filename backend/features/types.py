from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from geo.aoi import BBox


TRANSLATED_NAME_PROP = "name_translated"


@dataclass(frozen=True)
class Feature:
    """
    A single mapped entity.

    `geometry` is a GeoJSON geometry mapping in EPSG:4326 (same CRS as `BBox`).
    `id` is stable across queries for the same underlying row.
    """

    id: str
    geometry: dict[str, Any]
    category: str | None
    name: str | None
    translated_name: str | None = None

    def with_translated_name(self, translated: str | None) -> "Feature":
        return replace(self, translated_name=translated)

    @property
    def label(self) -> str:
        # Display policy: translated label wins, original name otherwise.
        return self.translated_name or self.name or ""

    def to_geojson(self) -> dict[str, Any]:
        props: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "category": self.category,
        }
        if self.translated_name is not None:
            props[TRANSLATED_NAME_PROP] = self.translated_name
        return {
            "type": "Feature",
            "id": self.id,
            "geometry": self.geometry,
            "properties": props,
        }

    @staticmethod
    def from_geojson(raw: dict[str, Any]) -> "Feature":
        props = (raw or {}).get("properties") or {}
        fid = (raw or {}).get("id")
        if fid is None:
            fid = props.get("id")
        if fid is None:
            raise ValueError("feature has no id")
        translated = props.get(TRANSLATED_NAME_PROP)
        return Feature(
            id=str(fid),
            geometry=(raw or {}).get("geometry") or {},
            category=props.get("category"),
            name=props.get("name"),
            translated_name=str(translated) if translated is not None else None,
        )


@dataclass(frozen=True)
class FeatureCollection:
    """
    Ordered, immutable query result tagged with the (bbox, lang) it was produced for.

    Never mutated in place; translation or re-query produces a new collection.
    """

    bbox: BBox
    lang: str
    features: tuple[Feature, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.features)

    def with_features(self, features: list[Feature] | tuple[Feature, ...]) -> "FeatureCollection":
        return FeatureCollection(bbox=self.bbox, lang=self.lang, features=tuple(features))

    def to_geojson(self) -> dict[str, Any]:
        return {
            "type": "FeatureCollection",
            "bbox": list(self.bbox.as_tuple()),
            "lang": self.lang,
            "features": [f.to_geojson() for f in self.features],
        }

    @staticmethod
    def from_geojson(raw: dict[str, Any], *, lang: str | None = None) -> "FeatureCollection":
        if (raw or {}).get("type") != "FeatureCollection":
            raise ValueError("payload is not a FeatureCollection")
        bb = raw.get("bbox") or [0.0, 0.0, 0.0, 0.0]
        if len(bb) != 4:
            raise ValueError("FeatureCollection bbox must have 4 numbers")
        return FeatureCollection(
            bbox=BBox(
                min_lon=float(bb[0]),
                min_lat=float(bb[1]),
                max_lon=float(bb[2]),
                max_lat=float(bb[3]),
            ),
            lang=str(raw.get("lang") or lang or ""),
            features=tuple(Feature.from_geojson(f) for f in raw.get("features") or []),
        )
