from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable
from uuid import uuid4

from api.errors import ClientDisconnected, DependencyUnavailable, InvalidRequest
from engine.query import query_bbox_async
from engine.types import FeatureStore
from features.types import FeatureCollection
from geo.aoi import BBox
from translate.client import Translator
from translate.merge import merge_translations

logger = logging.getLogger(__name__)


_LANG_RE = re.compile(r"^[a-z]{2,3}([-_][a-z0-9]{2,8})?$")


class EventType(str, Enum):
    message = "message"
    ping = "ping"


class SessionState(str, Enum):
    open = "OPEN"
    pushed = "PUSHED"
    heartbeat = "HEARTBEAT"
    closed = "CLOSED"


def format_event(type: EventType, data: str):
    return f"event: {type.value}\ndata: {data}\n\n"


def normalize_lang(raw: str | None, *, default: str) -> str:
    lang = (raw or "").strip().lower()
    if not lang:
        return default
    if not _LANG_RE.match(lang):
        raise InvalidRequest(f"unsupported lang: {raw!r}")
    return lang


async def build_snapshot(
    store: FeatureStore,
    translator: Translator,
    aoi: BBox,
    *,
    lang: str,
    source_lang: str,
    timeout_s: float | None = None,
) -> FeatureCollection:
    """
    One bbox query followed by one translation merge, optionally time-bounded.
    """

    async def _run() -> FeatureCollection:
        collection = await query_bbox_async(store, aoi, lang=lang)
        return await merge_translations(
            collection, target=lang, source=source_lang, translator=translator
        )

    if timeout_s is None:
        return await _run()
    try:
        return await asyncio.wait_for(_run(), timeout=timeout_s)
    except asyncio.TimeoutError:
        raise DependencyUnavailable(f"query+merge exceeded {timeout_s:.1f}s") from None


@dataclass(eq=False)
class StreamingSession:
    """
    One push channel: a single (bbox, lang) snapshot, then heartbeats until closed.

    OPEN -> PUSHED -> HEARTBEAT -> CLOSED. The heartbeat task is created only after
    the push and is cancelled in `close()`, which every exit path of `events()`
    reaches through its `finally`.
    """

    aoi: BBox
    lang: str
    store: FeatureStore
    translator: Translator
    source_lang: str
    heartbeat_s: float = 10.0
    query_timeout_s: float | None = None
    # Polled on every heartbeat tick; the ASGI server also cancels the generator on disconnect.
    is_disconnected: Callable[[], Awaitable[bool]] | None = None

    id: str = field(default_factory=lambda: uuid4().hex[:12])
    state: SessionState = SessionState.open
    pushes: int = 0
    heartbeats: int = 0

    _queue: "asyncio.Queue[str | None]" = field(default_factory=asyncio.Queue, repr=False)
    _heartbeat_task: asyncio.Task | None = field(default=None, repr=False)

    async def snapshot(self) -> FeatureCollection:
        return await build_snapshot(
            self.store,
            self.translator,
            self.aoi,
            lang=self.lang,
            source_lang=self.source_lang,
            timeout_s=self.query_timeout_s,
        )

    async def events(self) -> AsyncIterator[str]:
        t0 = time.perf_counter()
        logger.info(
            "Session %s open: bbox=%s lang=%s", self.id, self.aoi.as_tuple(), self.lang
        )
        try:
            try:
                collection = await self.snapshot()
            except DependencyUnavailable as exc:
                logger.error("Session %s query failed: %s", self.id, exc.message)
                yield _error_event(exc.message)
                return
            except Exception as exc:
                logger.exception("Session %s streaming error", self.id)
                yield _error_event(f"{type(exc).__name__}: {exc}")
                return

            if self.state is SessionState.closed:
                return

            yield format_event(
                EventType.message,
                json.dumps(collection.to_geojson(), ensure_ascii=False),
            )
            self.pushes += 1
            self.state = SessionState.pushed
            logger.info(
                "Session %s pushed %d features in %.1fms",
                self.id,
                len(collection),
                (time.perf_counter() - t0) * 1000.0,
            )

            self._start_heartbeat()
            try:
                while True:
                    event = await self._next_heartbeat()
                    if event is None:
                        break
                    self.heartbeats += 1
                    yield event
            except ClientDisconnected:
                logger.info("Client disconnected from session %s", self.id)
        finally:
            self.close()

    async def _next_heartbeat(self) -> str | None:
        """
        Next queued ping, or None once the session is closed.
        """
        event = await self._queue.get()
        if event is None:
            return None
        if self.is_disconnected is not None and await self.is_disconnected():
            raise ClientDisconnected(f"session {self.id}")
        return event

    def _start_heartbeat(self) -> None:
        if self.state is SessionState.closed or self._heartbeat_task is not None:
            return
        self.state = SessionState.heartbeat
        self._heartbeat_task = asyncio.get_running_loop().create_task(
            self._heartbeat_loop(), name=f"heartbeat-{self.id}"
        )

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_s)
            # Coalesce ticks when the consumer lags behind.
            if self._queue.empty():
                self._queue.put_nowait(
                    format_event(EventType.ping, str(int(time.time() * 1000)))
                )

    @property
    def heartbeat_active(self) -> bool:
        return self._heartbeat_task is not None and not self._heartbeat_task.done()

    def close(self) -> None:
        """
        Idempotent teardown: cancel the heartbeat timer and wake the event loop in `events()`.
        """
        if self.state is SessionState.closed:
            return
        self.state = SessionState.closed
        task = self._heartbeat_task
        self._heartbeat_task = None
        if task is not None:
            task.cancel()
        self._queue.put_nowait(None)
        logger.info(
            "Session %s closed after %d push(es), %d heartbeat(s)",
            self.id,
            self.pushes,
            self.heartbeats,
        )


def _error_event(detail: str) -> str:
    return format_event(
        EventType.message,
        json.dumps({"error": "Streaming failed", "detail": detail}, ensure_ascii=False),
    )


class SessionRegistry:
    """
    Open sessions of this process, tracked only so shutdown can close them.
    """

    def __init__(self) -> None:
        self._sessions: set[StreamingSession] = set()

    def __len__(self) -> int:
        return len(self._sessions)

    def add(self, session: StreamingSession) -> None:
        self._sessions.add(session)

    def discard(self, session: StreamingSession) -> None:
        self._sessions.discard(session)

    def close_all(self) -> int:
        sessions = list(self._sessions)
        for s in sessions:
            s.close()
        self._sessions.clear()
        return len(sessions)


async def stream_session(
    session: StreamingSession, registry: SessionRegistry | None = None
) -> AsyncIterator[str]:
    if registry is not None:
        registry.add(session)
    try:
        async for chunk in session.events():
            yield chunk
    finally:
        session.close()
        if registry is not None:
            registry.discard(session)
