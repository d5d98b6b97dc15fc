from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from adsdash.adapters import AdPlatformAdapter

from backend.api.auth import platform_adapter, require_credential

router = APIRouter()


@router.get("/{platform}/accounts")
async def list_accounts(request: Request, adapter: AdPlatformAdapter = Depends(platform_adapter)):
    """Ad accounts visible to the signed-in user on ``platform`` (meta | google)."""
    token = require_credential(request, adapter.platform)
    accounts = await adapter.list_accounts(token)
    return [a.to_json_dict() for a in accounts]
