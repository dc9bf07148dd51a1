from __future__ import annotations

import json

import pytest
from shapely.geometry import shape

from api.errors import DependencyUnavailable
from conftest import EXAMPLE_IDS_INSIDE
from engine.duckdb import DuckDBFeatureStore
from engine.factory import clear_store_cache, get_store
from engine.in_memory import InMemoryFeatureStore
from engine.query import query_bbox
from geo.aoi import BBox, parse_bbox


@pytest.fixture(params=["in_memory", "duckdb"])
def store(request, seed_path, tmp_path):
    if request.param == "duckdb":
        s = DuckDBFeatureStore(path=tmp_path / "places.duckdb", seed_path=seed_path)
        yield s
        s.close()
    else:
        yield InMemoryFeatureStore(seed_path=seed_path)


def _seed_geoms(seed_path) -> dict[str, object]:
    data = json.loads(seed_path.read_text(encoding="utf-8"))
    return {str(f["id"]): shape(f["geometry"]) for f in data["features"]}


def test_example_viewport_returns_only_intersecting_features(store):
    fc = query_bbox(store, parse_bbox("77.55,12.90,77.60,12.95"), lang="en")
    ids = [f.id for f in fc.features]
    assert set(ids) == EXAMPLE_IDS_INSIDE
    assert len(ids) == len(set(ids))
    assert fc.lang == "en"
    assert all(f.translated_name is None for f in fc.features)


@pytest.mark.parametrize(
    "aoi",
    [
        BBox(77.50, 12.80, 77.70, 13.00),
        BBox(77.58, 12.93, 77.59, 12.94),
        BBox(77.60, 12.91, 77.61, 12.92),
        BBox(77.00, 12.00, 77.10, 12.10),
    ],
)
def test_query_matches_brute_force_intersects(store, seed_path, aoi):
    expected = {fid for fid, g in _seed_geoms(seed_path).items() if g.intersects(aoi.polygon())}
    got = {f.id for f in query_bbox(store, aoi, lang="en").features}
    assert got == expected


def test_feature_touching_rectangle_edge_is_included(store):
    # Jayanagar 4th Block sits exactly on this rectangle's west edge.
    fc = query_bbox(store, BBox(77.5838, 12.92, 77.59, 12.93), lang="en")
    assert "1" in {f.id for f in fc.features}


def test_polygon_crossing_the_boundary_keeps_full_geometry(store):
    fc = query_bbox(store, parse_bbox("77.55,12.90,77.60,12.95"), lang="en")
    lalbagh = next(f for f in fc.features if f.id == "9")
    assert lalbagh.geometry["type"] == "Polygon"
    assert lalbagh.category == "park"
    ring = lalbagh.geometry["coordinates"][0]
    assert max(lat for _, lat in ring) == pytest.approx(12.956)


def test_empty_area_returns_empty_collection(store):
    fc = query_bbox(store, BBox(10.0, 10.0, 10.1, 10.1), lang="kn")
    assert len(fc) == 0
    assert fc.to_geojson()["features"] == []


def test_missing_seed_file_is_dependency_unavailable(tmp_path):
    store = InMemoryFeatureStore(seed_path=tmp_path / "missing.geojson")
    with pytest.raises(DependencyUnavailable):
        query_bbox(store, BBox(0, 0, 1, 1), lang="en")


def test_unexpected_store_error_is_dependency_unavailable():
    class BrokenStore:
        name = "broken"

        def query(self, aoi):
            raise RuntimeError("socket closed")

        def count(self):
            return 0

    with pytest.raises(DependencyUnavailable) as exc:
        query_bbox(BrokenStore(), BBox(0, 0, 1, 1), lang="en")
    assert exc.value.status_code == 503


def test_duckdb_store_reuses_seeded_file(seed_path, tmp_path):
    path = tmp_path / "places.duckdb"
    first = DuckDBFeatureStore(path=path, seed_path=seed_path)
    n = first.count()
    first.close()

    second = DuckDBFeatureStore(path=path, seed_path=seed_path)
    try:
        assert second.count() == n == 16
    finally:
        second.close()


@pytest.fixture()
def fresh_store_cache():
    clear_store_cache()
    yield
    clear_store_cache()


def test_factory_selects_store_from_env(monkeypatch, tmp_path, fresh_store_cache):
    assert isinstance(get_store(), InMemoryFeatureStore)
    assert get_store() is get_store()

    monkeypatch.setenv("BHUVAN_STORE", "duckdb")
    monkeypatch.setenv("BHUVAN_DUCKDB_PATH", str(tmp_path / "factory.duckdb"))
    store = get_store()
    try:
        assert isinstance(store, DuckDBFeatureStore)
        assert store.path == tmp_path / "factory.duckdb"
        assert store.count() == 16
    finally:
        store.close()
