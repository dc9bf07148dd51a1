from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


SeedSourceType = Literal["geojson"]


class DatasetSeed(BaseModel):
    type: SeedSourceType = "geojson"
    # Repo-relative path to the seed FeatureCollection.
    path: str


class LivePoiBBox(BaseModel):
    south: float
    west: float
    north: float
    east: float


class LivePois(BaseModel):
    """
    Overpass POI lookup used by `/api/places-live`.
    """

    bbox: LivePoiBBox
    tags: list[str] = Field(
        default_factory=lambda: ["amenity", "tourism", "shop", "leisure", "historic"]
    )
    limit: int = Field(default=200, ge=1, le=10_000)
    timeoutS: int = Field(default=25, ge=1, le=180)


class DatasetConfig(BaseModel):
    id: str
    title: str
    enabled: bool = True
    # Locale the stored names are written in.
    sourceLang: str = "en"
    # Locale offered by the language toggle.
    alternateLang: str = "kn"
    seed: DatasetSeed
    livePois: LivePois | None = None
