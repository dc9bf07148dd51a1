from __future__ import annotations

import os

from datasets.registry import get_dataset


DEFAULT_LINGVANEX_URL = "https://api-b2b.backenster.com/b1/api/v3/translate"


def lingvanex_url() -> str:
    return (os.getenv("LINGVANEX_URL") or "").strip() or DEFAULT_LINGVANEX_URL


def lingvanex_api_key() -> str:
    return (os.getenv("LINGVANEX_API_KEY") or "").strip()


def lingvanex_timeout_s() -> float:
    raw = (os.getenv("LINGVANEX_TIMEOUT_S") or "").strip()
    if raw:
        try:
            return max(0.1, float(raw))
        except ValueError:
            pass
    return 10.0


def source_lang() -> str:
    """
    Locale the stored names are written in: `BHUVAN_SOURCE_LANG`, else the active dataset's `sourceLang`.
    """
    env = (os.getenv("BHUVAN_SOURCE_LANG") or "").strip().lower()
    if env:
        return env
    return (get_dataset().config.sourceLang or "").strip().lower() or "en"
