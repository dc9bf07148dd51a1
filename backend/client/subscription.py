"""
Viewport/language subscription controller for the places stream.

The controller is the single writer of "the current subscription". Every trigger
closes the previous subscription and waits for it to finish before opening the
next one, so a slow response for an old viewport can never overwrite the display
for a newer one. All of this runs on one asyncio loop; the lock only orders
triggers that arrive while a close is still in flight.
"""
from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field

import httpx

from client.sse import ServerSentEvent, SSEDecoder
from datasets.types import DatasetConfig
from features.types import FeatureCollection
from geo.aoi import BBox
from render.replacer import RenderLayerReplacer

logger = logging.getLogger(__name__)

STREAM_PATH = "/api/places-stream"


@dataclass(eq=False)
class Subscription:
    aoi: BBox
    lang: str
    generation: int
    task: asyncio.Task | None = field(default=None, repr=False)
    closed: bool = False
    messages: int = 0
    last_heartbeat: float | None = None
    error: str | None = None

    @property
    def is_open(self) -> bool:
        return not self.closed and self.task is not None and not self.task.done()

    async def close(self) -> None:
        self.closed = True
        task = self.task
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


class SubscriptionController:
    """
    Keeps at most one places stream open, always for the latest (viewport, language).

    Messages go to the `RenderLayerReplacer`; stream errors close the subscription
    without retrying. The next viewport or language change subscribes again.
    """

    def __init__(
        self,
        *,
        replacer: RenderLayerReplacer,
        base_url: str = "http://localhost:4000",
        http: httpx.AsyncClient | None = None,
        lang: str = "en",
        source_lang: str = "en",
        alternate_lang: str = "kn",
        heartbeat_s: float = 10.0,
    ) -> None:
        self.replacer = replacer
        self.lang = lang
        self.source_lang = source_lang
        self.alternate_lang = alternate_lang
        self.viewport: BBox | None = None

        # Three missed heartbeats count as a dead stream.
        self._http = http or httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(10.0, read=heartbeat_s * 3),
        )
        self._owns_http = http is None
        self._active: Subscription | None = None
        self._generation = 0
        self._lock = asyncio.Lock()
        self._closed = False

    @classmethod
    def for_dataset(
        cls, dataset: DatasetConfig, *, replacer: RenderLayerReplacer, **kwargs
    ) -> "SubscriptionController":
        """
        Controller that starts in the dataset's source locale and toggles to its alternate one.
        """
        return cls(
            replacer=replacer,
            lang=dataset.sourceLang,
            source_lang=dataset.sourceLang,
            alternate_lang=dataset.alternateLang,
            **kwargs,
        )

    @property
    def active(self) -> Subscription | None:
        sub = self._active
        return sub if sub is not None and sub.is_open else None

    @property
    def current(self) -> Subscription | None:
        return self._active

    async def viewport_settled(self, aoi: BBox) -> None:
        self.viewport = aoi.normalized()
        await self._resubscribe()

    async def set_language(self, lang: str) -> None:
        self.lang = lang
        await self._resubscribe()

    async def toggle_language(self) -> str:
        nxt = self.alternate_lang if self.lang == self.source_lang else self.source_lang
        logger.info("Switching language to: %s", nxt)
        await self.set_language(nxt)
        return nxt

    async def close(self) -> None:
        async with self._lock:
            self._closed = True
            old, self._active = self._active, None
            if old is not None:
                await old.close()
        if self._owns_http:
            await self._http.aclose()

    async def _resubscribe(self) -> None:
        async with self._lock:
            if self._closed:
                return
            old, self._active = self._active, None
            if old is not None:
                await old.close()
            if self.viewport is None:
                return

            self._generation += 1
            sub = Subscription(aoi=self.viewport, lang=self.lang, generation=self._generation)
            sub.task = asyncio.get_running_loop().create_task(
                self._run(sub), name=f"places-stream-{sub.generation}"
            )
            self._active = sub

    def _is_current(self, sub: Subscription) -> bool:
        return not sub.closed and sub is self._active and sub.generation == self._generation

    async def _run(self, sub: Subscription) -> None:
        params = {"bbox": sub.aoi.to_param(), "lang": sub.lang}
        logger.info("Connecting stream: bbox=%s lang=%s", params["bbox"], sub.lang)
        try:
            async with self._http.stream(
                "GET",
                STREAM_PATH,
                params=params,
                headers={"Accept": "text/event-stream"},
            ) as resp:
                if resp.status_code != 200:
                    body = (await resp.aread()).decode("utf-8", "replace")
                    sub.error = f"HTTP {resp.status_code}: {body[:200]}"
                    logger.error("Stream rejected: %s", sub.error)
                    return

                decoder = SSEDecoder()
                async for line in resp.aiter_lines():
                    event = decoder.decode(line)
                    if event is None:
                        continue
                    if not self._dispatch(sub, event):
                        return
        except httpx.HTTPError as exc:
            sub.error = f"{type(exc).__name__}: {exc}"
            logger.error("Stream error: %s", sub.error)
        finally:
            sub.closed = True

    def _dispatch(self, sub: Subscription, event: ServerSentEvent) -> bool:
        """
        Handle one event; False closes the subscription.
        """
        if not self._is_current(sub):
            return False

        if event.event == "ping":
            sub.last_heartbeat = time.monotonic()
            return True
        if event.event != "message":
            return True

        try:
            payload = json.loads(event.data)
            if isinstance(payload, dict) and "error" in payload:
                sub.error = str(payload.get("detail") or payload["error"])
                logger.error("Stream reported error: %s", sub.error)
                return False
            collection = FeatureCollection.from_geojson(payload, lang=sub.lang)
        except (ValueError, TypeError, KeyError) as exc:
            sub.error = f"{type(exc).__name__}: {exc}"
            logger.error("Failed to parse streamed GeoJSON: %s", sub.error)
            return False

        sub.messages += 1
        logger.info("Received streamed features: %d", len(collection))
        self.replacer.replace(collection)
        return True
