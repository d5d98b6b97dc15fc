from __future__ import annotations

import httpx

from adsdash.adapters.base import AdPlatformAdapter, paginate
from adsdash.adapters.google import GoogleAdapter
from adsdash.adapters.meta import MetaAdapter
from adsdash.config import Settings

ADAPTERS: dict[str, type[AdPlatformAdapter]] = {
    "meta": MetaAdapter,
    "google": GoogleAdapter,
}


def get_adapter(
    platform: str, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
) -> AdPlatformAdapter:
    p = (platform or "").strip().lower()
    if p not in ADAPTERS:
        raise ValueError(f"platform must be one of: {', '.join(ADAPTERS)}")
    return ADAPTERS[p](settings, transport=transport)


__all__ = ["ADAPTERS", "AdPlatformAdapter", "GoogleAdapter", "MetaAdapter", "get_adapter", "paginate"]
