from __future__ import annotations

from fastapi import Request

from api.places_stream import SessionRegistry
from engine.factory import get_store
from engine.types import FeatureStore
from translate.client import LingvanexClient, Translator


def get_feature_store() -> FeatureStore:
    return get_store()


def get_translator(request: Request) -> Translator:
    # Created in the app lifespan; lazily here for callers that skip it (plain TestClient).
    translator = getattr(request.app.state, "translator", None)
    if translator is None:
        translator = LingvanexClient()
        request.app.state.translator = translator
    return translator


def get_session_registry(request: Request) -> SessionRegistry:
    registry = getattr(request.app.state, "sessions", None)
    if registry is None:
        registry = SessionRegistry()
        request.app.state.sessions = registry
    return registry
