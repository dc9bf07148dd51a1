from __future__ import annotations

import os
from pathlib import Path

from datasets.registry import default_dataset_id, resolve_repo_path


def normalize_store(name: str | None) -> str:
    n = (name or "in_memory").strip().lower()
    if n in {"duckdb", "in_memory"}:
        return n
    return "in_memory"


def default_store_name() -> str:
    return normalize_store(os.getenv("BHUVAN_STORE"))


def duckdb_path(dataset_id: str | None = None) -> Path:
    env_path = (os.getenv("BHUVAN_DUCKDB_PATH") or "").strip()
    if env_path:
        return Path(env_path)
    did = (dataset_id or "").strip() or default_dataset_id()
    return resolve_repo_path(f"data/duckdb/{did}.duckdb")


def duckdb_threads() -> int:
    raw = (os.getenv("BHUVAN_DUCKDB_THREADS") or "").strip()
    if raw:
        try:
            return max(1, int(raw))
        except ValueError:
            pass
    return max(1, int(os.cpu_count() or 1))
