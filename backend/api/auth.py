"""Credential extraction for platform-backed endpoints.

The OAuth callbacks that set these cookies live outside this service; here we
only read the bearer token a request carries.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from adsdash.adapters import ADAPTERS, AdPlatformAdapter, get_adapter
from adsdash.config import Settings

TOKEN_COOKIES = {
    "meta": "meta_token",
    "google": "google_access_token",
}


def extract_request_token(request: Request, platform: str) -> str:
    auth_header = str(request.headers.get("authorization", "")).strip()
    if auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip()

    cookie_name = TOKEN_COOKIES.get(platform)
    cookie_token = request.cookies.get(cookie_name) if cookie_name else None
    if cookie_token:
        return str(cookie_token).strip()

    return ""


def require_credential(request: Request, platform: str) -> str:
    token = extract_request_token(request, platform)
    if not token:
        raise HTTPException(
            status_code=401,
            detail={"message": f"Not authorized: no {platform} token found", "reauthenticate": True},
        )
    return token


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def check_platform(platform: str) -> str:
    p = (platform or "").strip().lower()
    if p not in ADAPTERS:
        raise HTTPException(status_code=400, detail=f"platform must be one of: {', '.join(ADAPTERS)}")
    return p


def platform_adapter(platform: str, request: Request) -> AdPlatformAdapter:
    p = check_platform(platform)
    return get_adapter(p, get_settings(request), transport=getattr(request.app.state, "transport", None))
