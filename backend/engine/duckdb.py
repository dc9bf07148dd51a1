from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

import duckdb
from shapely.wkb import dumps as wkb_dumps
from shapely.wkb import loads as wkb_loads

from api.errors import DependencyUnavailable
from features.loaders import geometry_to_geojson, load_geojson_features
from features.types import Feature
from geo.aoi import BBox

logger = logging.getLogger(__name__)


_CREATE_PLACES_SQL = """
CREATE TABLE IF NOT EXISTS places (
  seq INTEGER,
  id TEXT PRIMARY KEY,
  name TEXT,
  category TEXT,
  geom_wkb BLOB,
  min_lon DOUBLE,
  min_lat DOUBLE,
  max_lon DOUBLE,
  max_lat DOUBLE
);
"""

# Envelope pre-filter; the exact predicate runs in shapely on the candidates.
_BBOX_WHERE = "max_lon >= ? AND min_lon <= ? AND max_lat >= ? AND min_lat <= ?"


@dataclass
class DuckDBFeatureStore:
    """
    DuckDB-backed store.

    The `places` table is seeded from the dataset's GeoJSON on first use (only when
    empty), so an existing database file is reused across restarts.
    """

    path: Path
    seed_path: Path
    threads: int = 1
    name: str = "duckdb"

    _init_lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _root: duckdb.DuckDBPyConnection | None = field(default=None, repr=False)
    _local: threading.local = field(default_factory=threading.local, repr=False)

    def ensure_initialized(self) -> duckdb.DuckDBPyConnection:
        if self._root is not None:
            return self._root
        with self._init_lock:
            if self._root is not None:
                return self._root
            conn = self._connect()
            try:
                conn.execute(_CREATE_PLACES_SQL)
                if _count(conn) == 0:
                    _seed_places(conn, self.seed_path)
            except BaseException:
                conn.close()
                raise
            self._root = conn
            return conn

    def _connect(self) -> duckdb.DuckDBPyConnection:
        p = Path(self.path)
        if p.parent and str(p.parent) not in {".", ""}:
            p.parent.mkdir(parents=True, exist_ok=True)
        return duckdb.connect(database=str(p), read_only=False, config={"threads": int(self.threads)})

    def _conn(self) -> duckdb.DuckDBPyConnection:
        # One cursor per worker thread on top of the shared root connection.
        root = self.ensure_initialized()
        c = getattr(self._local, "conn", None)
        if c is None:
            c = root.cursor()
            self._local.conn = c
        return c

    def query(self, aoi: BBox) -> list[Feature]:
        try:
            b = aoi.normalized()
            rows = self._conn().execute(
                f"SELECT id, name, category, geom_wkb FROM places WHERE {_BBOX_WHERE} ORDER BY seq",
                [b.min_lon, b.max_lon, b.min_lat, b.max_lat],
            ).fetchall()
        except (duckdb.Error, OSError, ValueError) as exc:
            raise DependencyUnavailable(
                f"feature store unavailable: {type(exc).__name__}: {exc}"
            ) from exc

        rect = aoi.polygon()
        out: list[Feature] = []
        for fid, name, category, geom_wkb in rows:
            geom = wkb_loads(bytes(geom_wkb))
            if not geom.intersects(rect):
                continue
            out.append(
                Feature(
                    id=str(fid),
                    geometry=geometry_to_geojson(geom),
                    category=category,
                    name=name,
                )
            )
        return out

    def count(self) -> int:
        try:
            return _count(self._conn())
        except (duckdb.Error, OSError, ValueError) as exc:
            raise DependencyUnavailable(
                f"feature store unavailable: {type(exc).__name__}: {exc}"
            ) from exc

    def close(self) -> None:
        with self._init_lock:
            if self._root is not None:
                self._root.close()
                self._root = None
            self._local = threading.local()


def _count(conn: duckdb.DuckDBPyConnection) -> int:
    row = conn.execute("SELECT COUNT(*) FROM places").fetchone()
    return int(row[0] or 0) if row else 0


def _seed_places(conn: duckdb.DuckDBPyConnection, seed_path: Path) -> None:
    rows = []
    for seq, (feature, geom) in enumerate(load_geojson_features(seed_path)):
        min_lon, min_lat, max_lon, max_lat = geom.bounds
        rows.append(
            (
                seq,
                feature.id,
                feature.name,
                feature.category,
                wkb_dumps(geom),
                float(min_lon),
                float(min_lat),
                float(max_lon),
                float(max_lat),
            )
        )
    if rows:
        conn.executemany("INSERT OR IGNORE INTO places VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)", rows)
    logger.info("Seeded %d places into DuckDB from %s", len(rows), seed_path)
