from __future__ import annotations

from typing import Protocol

from features.types import Feature
from geo.aoi import BBox


class FeatureStore(Protocol):
    """
    Spatial store interface.

    - InMemoryFeatureStore: seed GeoJSON indexed with an STRtree
    - DuckDBFeatureStore: seed GeoJSON persisted into a DuckDB table

    Implementations raise `DependencyUnavailable` when the backend can't answer.
    """

    name: str

    def query(self, aoi: BBox) -> list[Feature]: ...

    def count(self) -> int: ...
