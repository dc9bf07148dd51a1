import sys
from pathlib import Path

import pytest


# Ensure `backend/` is on sys.path so tests can import local modules
# like `geo.*`, `engine.*`, and `main`.
BACKEND_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_ROOT))

# Example viewport from the product brief (South Bengaluru).
EXAMPLE_BBOX = "77.55,12.90,77.60,12.95"
EXAMPLE_IDS_INSIDE = {str(i) for i in range(1, 12)}


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    monkeypatch.delenv("LINGVANEX_API_KEY", raising=False)
    monkeypatch.delenv("BHUVAN_STORE", raising=False)
    monkeypatch.delenv("BHUVAN_DATASET", raising=False)
    monkeypatch.delenv("BHUVAN_QUERY_TIMEOUT_S", raising=False)
    monkeypatch.setenv("BHUVAN_SOURCE_LANG", "en")


@pytest.fixture()
def seed_path() -> Path:
    return BACKEND_ROOT.parent / "data" / "places" / "south_bangalore.geojson"


class FakeTranslator:
    """
    Records calls; returns `lines` (or a per-text transform) or raises `error`.
    """

    def __init__(self, *, lines=None, transform=None, error=None):
        self.lines = lines
        self.transform = transform or (lambda t: f"kn:{t}")
        self.error = error
        self.calls: list[dict] = []

    async def translate_batch(self, texts, *, source, target):
        self.calls.append({"texts": list(texts), "source": source, "target": target})
        if self.error is not None:
            raise self.error
        if self.lines is not None:
            return list(self.lines)
        return [self.transform(t) for t in texts]


class FailingStore:
    name = "failing"

    def query(self, aoi):
        from api.errors import DependencyUnavailable

        raise DependencyUnavailable("feature store unavailable: connection refused")

    def count(self):
        return 0


@pytest.fixture()
def fake_translator():
    return FakeTranslator()
