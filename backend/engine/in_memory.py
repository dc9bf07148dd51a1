from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from shapely.geometry.base import BaseGeometry
from shapely.strtree import STRtree

from api.errors import DependencyUnavailable
from features.loaders import load_geojson_features
from features.types import Feature
from geo.aoi import BBox

logger = logging.getLogger(__name__)


@dataclass
class InMemoryFeatureStore:
    """
    Loads the seed file once, builds an STRtree, then answers bbox queries.

    The tree gives envelope candidates; `intersects` makes the answer exact, so
    features touching the rectangle edge are included.
    """

    seed_path: Path
    name: str = "in_memory"

    _features: list[Feature] = field(default_factory=list, repr=False)
    _geoms: list[BaseGeometry] = field(default_factory=list, repr=False)
    _tree: STRtree | None = field(default=None, repr=False)

    def _ensure_loaded(self) -> STRtree:
        if self._tree is not None:
            return self._tree
        try:
            rows = load_geojson_features(self.seed_path)
        except (OSError, ValueError) as exc:
            raise DependencyUnavailable(
                f"feature store unavailable: {type(exc).__name__}: {exc}"
            ) from exc
        self._features = [f for f, _ in rows]
        self._geoms = [g for _, g in rows]
        self._tree = STRtree(self._geoms)
        logger.info("Loaded %d features from %s", len(self._features), self.seed_path)
        return self._tree

    def query(self, aoi: BBox) -> list[Feature]:
        tree = self._ensure_loaded()
        rect = aoi.polygon()
        # STRtree returns indices; keep seed order for a stable result.
        idxs = sorted(_to_int_list(tree.query(rect)))
        return [self._features[i] for i in idxs if self._geoms[i].intersects(rect)]

    def count(self) -> int:
        self._ensure_loaded()
        return len(self._features)


def _to_int_list(arr) -> list[int]:
    # Shapely STRtree returns numpy.ndarray of indices.
    try:
        return [int(x) for x in arr.tolist()]
    except AttributeError:
        return [int(x) for x in arr]
