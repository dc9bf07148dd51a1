"""
Async client for the Lingvanex batch translation API.

The provider takes one text blob per request, so a batch is sent as
newline-joined lines and split back by the same delimiter. Every failure mode
(unreachable, non-2xx, bad JSON, missing `result`) raises
`TranslationProviderError` so callers can decide whether to absorb it.
"""
from __future__ import annotations

import logging
from typing import Protocol

import httpx

from api.errors import TranslationDegraded
from translate.config import lingvanex_api_key, lingvanex_timeout_s, lingvanex_url

logger = logging.getLogger(__name__)

BATCH_DELIMITER = "\n"


class TranslationProviderError(TranslationDegraded):
    def __init__(self, message: str, *, reason: str, provider_status: int | None = None):
        super().__init__(message)
        self.reason = reason
        self.provider_status = provider_status


class Translator(Protocol):
    async def translate_batch(
        self, texts: list[str], *, source: str, target: str
    ) -> list[str]: ...


def join_batch(texts: list[str]) -> str:
    # A delimiter inside a label would shift every later position.
    return BATCH_DELIMITER.join(
        (t or "").replace("\r\n", " ").replace(BATCH_DELIMITER, " ") for t in texts
    )


def split_batch(result: str, *, expected: int | None = None) -> list[str]:
    lines = result.split(BATCH_DELIMITER)
    # Providers sometimes append a trailing newline to the blob.
    if expected is not None and len(lines) == expected + 1 and lines[-1] == "":
        lines = lines[:-1]
    return lines


class LingvanexClient:
    """
    Thin async wrapper around the Lingvanex translate endpoint.

    Auth is a pre-shared key sent verbatim in `Authorization` (no `Bearer` prefix).
    """

    def __init__(
        self,
        *,
        url: str | None = None,
        api_key: str | None = None,
        timeout_s: float | None = None,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url or lingvanex_url()
        self.api_key = lingvanex_api_key() if api_key is None else api_key
        self.timeout_s = lingvanex_timeout_s() if timeout_s is None else timeout_s
        self._http = http
        self._owns_http = http is None

        if not self.enabled:
            logger.warning(
                "LINGVANEX_API_KEY not set; translated labels are disabled and "
                "maps will show original names."
            )

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout_s)
        return self._http

    async def aclose(self) -> None:
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None

    async def translate_text(self, data: str, *, source: str, target: str) -> str:
        """
        Send one newline-joined blob and return the provider's `result` string.
        """
        if not self.enabled:
            raise TranslationProviderError(
                "Missing translation API key", reason="not_configured"
            )

        try:
            resp = await self._client().post(
                self.url,
                headers={
                    "Authorization": self.api_key,
                    "Content-Type": "application/json",
                },
                json={"from": source, "to": target, "data": data},
            )
        except httpx.HTTPError as exc:
            raise TranslationProviderError(
                f"translation provider unreachable: {type(exc).__name__}: {exc}",
                reason="unreachable",
            ) from exc

        if resp.status_code < 200 or resp.status_code >= 300:
            raise TranslationProviderError(
                f"translation provider returned HTTP {resp.status_code}: {resp.text[:200]}",
                reason="http_error",
                provider_status=resp.status_code,
            )

        try:
            body = resp.json()
        except ValueError as exc:
            raise TranslationProviderError(
                "translation provider returned invalid JSON", reason="invalid_json"
            ) from exc

        result = body.get("result") if isinstance(body, dict) else None
        if not isinstance(result, str):
            err = body.get("err") if isinstance(body, dict) else None
            raise TranslationProviderError(
                f"translation provider response has no result (err={err!r})",
                reason="missing_result",
            )
        return result

    async def translate_batch(
        self, texts: list[str], *, source: str, target: str
    ) -> list[str]:
        if not texts:
            return []
        result = await self.translate_text(join_batch(texts), source=source, target=target)
        return split_batch(result, expected=len(texts))
