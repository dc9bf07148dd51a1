from __future__ import annotations

import logging

from api.errors import TranslationDegraded
from features.types import FeatureCollection
from translate.client import Translator

logger = logging.getLogger(__name__)


def needs_translation(target: str | None, *, source: str) -> bool:
    t = (target or "").strip().lower()
    return bool(t) and t != (source or "").strip().lower()


async def merge_translations(
    collection: FeatureCollection,
    *,
    target: str | None,
    source: str,
    translator: Translator,
) -> FeatureCollection:
    """
    Attach translated names to `collection`, one provider call per collection.

    Identity when the target equals the source locale. Provider failures and
    length-mismatched batches leave every name untranslated; a blank line leaves
    only its own feature untranslated. Ids, geometries and categories are never
    touched.
    """
    if not needs_translation(target, source=source) or not collection.features:
        return collection

    target = (target or "").strip().lower()
    texts = [f.name or "" for f in collection.features]
    try:
        lines = await translator.translate_batch(texts, source=source, target=target)
    except TranslationDegraded as exc:
        logger.warning(
            "Translation %s->%s degraded for %d labels, keeping originals: %s",
            source,
            target,
            len(texts),
            exc.message,
        )
        return collection
    except Exception:
        logger.exception(
            "Translation %s->%s failed unexpectedly for %d labels, keeping originals",
            source,
            target,
            len(texts),
        )
        return collection

    if len(lines) != len(texts):
        logger.warning(
            "Translation %s->%s degraded: got %d lines for %d labels, keeping originals",
            source,
            target,
            len(lines),
            len(texts),
        )
        return collection

    merged = []
    for f, line in zip(collection.features, lines):
        if f.name is not None and (line or "").strip():
            f = f.with_translated_name(line)
        merged.append(f)
    return collection.with_features(merged)
