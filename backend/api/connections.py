from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from adsdash.config import Settings

from backend.api.auth import TOKEN_COOKIES, get_settings

router = APIRouter()


def _get_connection_status(platform: str, settings: Settings) -> dict[str, Any]:
    if platform == "google":
        fields = {"developer_token": bool(settings.google_developer_token)}
        api_version = settings.google_api_version
    else:
        fields = {}
        api_version = settings.meta_api_version

    return {
        "platform": platform,
        "configured": all(fields.values()),
        "fields": fields,
        "api_version": api_version,
        "token_cookie": TOKEN_COOKIES[platform],
    }


@router.get("/status")
async def connections_status(settings: Settings = Depends(get_settings)):
    """Show which ad platforms have their server-side configuration in place."""
    return {
        "platforms": [_get_connection_status(p, settings) for p in ("meta", "google")],
        "locale": settings.locale,
        "http_timeout": settings.http_timeout,
    }
