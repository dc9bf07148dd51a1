from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Iterable

import yaml

from datasets.types import DatasetConfig


DEFAULT_DATASET_ID = "south_bangalore"


def _repo_root() -> Path:
    # .../backend/datasets/registry.py -> repo root is 2 levels up
    return Path(__file__).resolve().parents[2]


def _datasets_root() -> Path:
    return _repo_root() / "data" / "datasets"


@dataclass(frozen=True)
class DatasetEntry:
    config: DatasetConfig
    # Absolute path to dataset.yaml on disk (useful for debugging).
    path: Path


def _iter_dataset_yaml_files() -> Iterable[Path]:
    root = _datasets_root()
    if not root.exists():
        return []
    # Convention: data/datasets/*/dataset.yaml
    return root.glob("*/dataset.yaml")


def _load_yaml(path: Path) -> dict:
    raw = path.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid dataset yaml root: {path}")
    return data


@lru_cache(maxsize=1)
def get_registry() -> dict[str, DatasetEntry]:
    out: dict[str, DatasetEntry] = {}
    for p in sorted(_iter_dataset_yaml_files(), key=lambda x: str(x)):
        cfg = DatasetConfig.model_validate(_load_yaml(p))
        if not cfg.enabled:
            continue
        out[cfg.id] = DatasetEntry(config=cfg, path=p)
    return out


def default_dataset_id() -> str:
    env = (os.getenv("BHUVAN_DATASET") or "").strip()
    reg = get_registry()
    if env and env in reg:
        return env
    if DEFAULT_DATASET_ID in reg or not reg:
        return DEFAULT_DATASET_ID
    return next(iter(reg.keys()))


def get_dataset(dataset_id: str | None = None) -> DatasetEntry:
    reg = get_registry()
    if not reg:
        raise RuntimeError("No datasets discovered under `data/datasets/*/dataset.yaml`")
    did = (dataset_id or "").strip() or default_dataset_id()
    if did not in reg:
        raise KeyError(f"Unknown dataset: {did}")
    return reg[did]


def resolve_repo_path(repo_relative: str) -> Path:
    # Allow both "data/..." and "/data/..." inputs (normalize to repo-relative).
    rel = (repo_relative or "").lstrip("/")
    return _repo_root() / rel
