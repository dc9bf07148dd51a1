from __future__ import annotations

from functools import lru_cache

from datasets.registry import get_dataset, resolve_repo_path
from engine.config import default_store_name, duckdb_path, duckdb_threads, normalize_store
from engine.duckdb import DuckDBFeatureStore
from engine.in_memory import InMemoryFeatureStore
from engine.types import FeatureStore


@lru_cache(maxsize=4)
def _store(name: str, dataset_id: str) -> FeatureStore:
    dataset = get_dataset(dataset_id).config
    seed_path = resolve_repo_path(dataset.seed.path)
    if name == "duckdb":
        return DuckDBFeatureStore(
            path=duckdb_path(dataset.id),
            seed_path=seed_path,
            threads=duckdb_threads(),
        )
    return InMemoryFeatureStore(seed_path=seed_path)


def get_store(name: str | None = None, *, dataset_id: str | None = None) -> FeatureStore:
    store_name = default_store_name() if name is None else normalize_store(name)
    return _store(store_name, get_dataset(dataset_id).config.id)


def clear_store_cache() -> None:
    _store.cache_clear()
