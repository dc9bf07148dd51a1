from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from api.deps import get_translator
from translate.client import (
    LingvanexClient,
    TranslationProviderError,
    join_batch,
    split_batch,
)
from translate.config import source_lang

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["translate"])


class ApiTranslateRequest(BaseModel):
    # Shape checked by hand so a bad `texts` answers 400 like the rest of the API.
    texts: Any = None
    target: str = "kn"


class ApiTranslatedItem(BaseModel):
    original: str
    translated: str


class ApiTranslateResponse(BaseModel):
    translated: list[ApiTranslatedItem]


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message})


@router.post("/translate", response_model=ApiTranslateResponse)
async def translate_texts(
    body: ApiTranslateRequest,
    translator: LingvanexClient = Depends(get_translator),
):
    if not getattr(translator, "enabled", True):
        logger.error("Missing translation API key")
        return _error(500, "Missing translation API key")

    texts = body.texts
    if not isinstance(texts, list) or not texts:
        return _error(400, "No texts provided")
    texts = ["" if t is None else str(t) for t in texts]

    src = source_lang()
    logger.info("Outgoing translation request: %s->%s, %d texts", src, body.target, len(texts))
    try:
        result = await translator.translate_text(join_batch(texts), source=src, target=body.target)
    except TranslationProviderError as exc:
        logger.error("Translation failed (%s): %s", exc.reason, exc.message)
        if exc.reason == "http_error" and exc.provider_status:
            return _error(exc.provider_status, "Translation API error")
        if exc.reason == "invalid_json":
            return _error(500, "Invalid response from translation provider")
        return _error(500, "Translation failed")

    lines = split_batch(result, expected=len(texts))
    return ApiTranslateResponse(
        translated=[
            ApiTranslatedItem(
                original=t,
                translated=(lines[i] if i < len(lines) else "") or t,
            )
            for i, t in enumerate(texts)
        ]
    )
