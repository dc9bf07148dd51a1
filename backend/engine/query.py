from __future__ import annotations

import asyncio
import logging
import time

from api.errors import DependencyUnavailable
from engine.types import FeatureStore
from features.types import Feature, FeatureCollection
from geo.aoi import BBox

logger = logging.getLogger(__name__)


def query_bbox(store: FeatureStore, aoi: BBox, *, lang: str) -> FeatureCollection:
    """
    Every stored feature whose geometry intersects `aoi`, tagged with (aoi, lang).

    Read-only and unbounded in size. Store failures surface as `DependencyUnavailable`.
    """
    t0 = time.perf_counter()
    try:
        features = store.query(aoi)
    except DependencyUnavailable:
        raise
    except Exception as exc:
        raise DependencyUnavailable(
            f"feature store query failed: {type(exc).__name__}: {exc}"
        ) from exc

    ids = [f.id for f in features]
    if len(set(ids)) != len(ids):
        # Keep the first row per id; the collection must not repeat identifiers.
        unique: dict[str, Feature] = {}
        for f in features:
            unique.setdefault(f.id, f)
        features = list(unique.values())

    logger.debug(
        "bbox query %s on %s -> %d features in %.1fms",
        aoi.as_tuple(),
        getattr(store, "name", type(store).__name__),
        len(features),
        (time.perf_counter() - t0) * 1000.0,
    )
    return FeatureCollection(bbox=aoi, lang=lang, features=tuple(features))


async def query_bbox_async(store: FeatureStore, aoi: BBox, *, lang: str) -> FeatureCollection:
    # Store calls are blocking I/O; keep them off the event loop so sessions don't wait on each other.
    return await asyncio.to_thread(query_bbox, store, aoi, lang=lang)
