from __future__ import annotations

import asyncio
import json
import time

import pytest

from api.places_stream import (
    SessionRegistry,
    SessionState,
    StreamingSession,
    format_event,
    EventType,
    normalize_lang,
    stream_session,
)
from api.errors import ClientDisconnected, InvalidRequest
from conftest import EXAMPLE_IDS_INSIDE, FailingStore, FakeTranslator
from engine.in_memory import InMemoryFeatureStore
from geo.aoi import parse_bbox


def _parse(chunk: str) -> tuple[str, str]:
    event, data = "message", ""
    for line in chunk.strip("\n").split("\n"):
        name, _, value = line.partition(": ")
        if name == "event":
            event = value
        elif name == "data":
            data = value
    return event, data


def _session(store, *, lang="en", translator=None, **kw) -> StreamingSession:
    return StreamingSession(
        aoi=parse_bbox("77.55,12.90,77.60,12.95"),
        lang=lang,
        store=store,
        translator=translator or FakeTranslator(),
        source_lang="en",
        heartbeat_s=kw.pop("heartbeat_s", 0.01),
        **kw,
    )


def test_format_event_uses_sse_framing():
    assert format_event(EventType.ping, "123") == "event: ping\ndata: 123\n\n"


def test_normalize_lang_defaults_and_validates():
    assert normalize_lang(None, default="en") == "en"
    assert normalize_lang(" KN ", default="en") == "kn"
    assert normalize_lang("pt-BR", default="en") == "pt-br"
    with pytest.raises(InvalidRequest):
        normalize_lang("kn;drop table", default="en")


def test_session_pushes_one_snapshot_then_heartbeats(seed_path):
    async def run():
        session = _session(InMemoryFeatureStore(seed_path=seed_path))
        agen = session.events()
        chunks = [await agen.__anext__() for _ in range(3)]
        assert session.state is SessionState.heartbeat
        assert session.heartbeat_active
        task = session._heartbeat_task
        await agen.aclose()
        with pytest.raises(asyncio.CancelledError):
            await task
        return session, chunks

    session, chunks = asyncio.run(run())

    event, data = _parse(chunks[0])
    assert event == "message"
    payload = json.loads(data)
    assert payload["type"] == "FeatureCollection"
    assert payload["lang"] == "en"
    assert payload["bbox"] == [77.55, 12.90, 77.60, 12.95]
    assert {f["id"] for f in payload["features"]} == EXAMPLE_IDS_INSIDE

    for chunk in chunks[1:]:
        event, data = _parse(chunk)
        assert event == "ping"
        assert int(data) <= int(time.time() * 1000)

    assert session.pushes == 1
    assert session.heartbeats == 2
    assert session.state is SessionState.closed
    assert not session.heartbeat_active


def test_session_translates_labels_for_alternate_language(seed_path):
    translator = FakeTranslator()

    async def run():
        session = _session(
            InMemoryFeatureStore(seed_path=seed_path), lang="kn", translator=translator
        )
        agen = session.events()
        first = await agen.__anext__()
        await agen.aclose()
        return first

    payload = json.loads(_parse(asyncio.run(run()))[1])
    props = {f["id"]: f["properties"] for f in payload["features"]}
    assert payload["lang"] == "kn"
    assert props["9"]["name"] == "Lalbagh Botanical Garden"
    assert props["9"]["name_translated"] == "kn:Lalbagh Botanical Garden"
    assert "name_translated" not in props["11"]
    assert len(translator.calls) == 1


def test_close_stops_pending_stream(seed_path):
    async def run():
        session = _session(InMemoryFeatureStore(seed_path=seed_path), heartbeat_s=60.0)
        agen = session.events()
        await agen.__anext__()
        pending = asyncio.ensure_future(agen.__anext__())
        await asyncio.sleep(0)
        session.close()
        with pytest.raises(StopAsyncIteration):
            await pending
        return session

    session = asyncio.run(run())
    assert session.state is SessionState.closed
    assert session.heartbeats == 0
    # Idempotent.
    session.close()


def test_store_failure_yields_single_error_event_and_no_heartbeat():
    async def run():
        session = _session(FailingStore())
        chunks = [c async for c in session.events()]
        return session, chunks

    session, chunks = asyncio.run(run())
    assert len(chunks) == 1
    event, data = _parse(chunks[0])
    assert event == "message"
    assert json.loads(data) == {
        "error": "Streaming failed",
        "detail": "feature store unavailable: connection refused",
    }
    assert session.pushes == 0
    assert session._heartbeat_task is None
    assert session.state is SessionState.closed


def test_slow_query_times_out_as_error_event():
    class SlowStore:
        name = "slow"

        def query(self, aoi):
            time.sleep(0.2)
            return []

        def count(self):
            return 0

    async def run():
        session = _session(SlowStore(), query_timeout_s=0.01)
        return [c async for c in session.events()]

    chunks = asyncio.run(run())
    assert len(chunks) == 1
    assert "exceeded" in json.loads(_parse(chunks[0])[1])["detail"]


def test_disconnected_client_ends_stream_on_next_tick(seed_path):
    async def gone() -> bool:
        return True

    async def run():
        session = _session(InMemoryFeatureStore(seed_path=seed_path), is_disconnected=gone)
        chunks = [c async for c in session.events()]
        return session, chunks

    session, chunks = asyncio.run(run())
    assert len(chunks) == 1
    assert session.heartbeats == 0
    assert session.state is SessionState.closed


def test_registry_tracks_and_closes_open_sessions(seed_path):
    registry = SessionRegistry()

    async def run():
        session = _session(InMemoryFeatureStore(seed_path=seed_path), heartbeat_s=60.0)
        agen = stream_session(session, registry)
        await agen.__anext__()
        assert len(registry) == 1
        assert registry.close_all() == 1
        with pytest.raises(StopAsyncIteration):
            await agen.__anext__()
        return session

    session = asyncio.run(run())
    assert session.state is SessionState.closed
    assert len(registry) == 0


def test_translator_crash_still_pushes_untranslated_snapshot(seed_path):
    translator = FakeTranslator(error=RuntimeError("provider sdk blew up"))

    async def run():
        session = _session(
            InMemoryFeatureStore(seed_path=seed_path), lang="kn", translator=translator
        )
        agen = session.events()
        first = await agen.__anext__()
        await agen.aclose()
        return session, first

    session, first = asyncio.run(run())
    payload = json.loads(_parse(first)[1])
    assert "error" not in payload
    assert payload["lang"] == "kn"
    assert {f["id"] for f in payload["features"]} == EXAMPLE_IDS_INSIDE
    assert all("name_translated" not in f["properties"] for f in payload["features"])
    assert session.pushes == 1


def test_next_heartbeat_signals_client_disconnect(seed_path):
    async def gone() -> bool:
        return True

    async def run():
        session = _session(InMemoryFeatureStore(seed_path=seed_path), is_disconnected=gone)
        session._queue.put_nowait(format_event(EventType.ping, "1"))
        with pytest.raises(ClientDisconnected):
            await session._next_heartbeat()
        session.close()
        assert await session._next_heartbeat() is None

    asyncio.run(run())
