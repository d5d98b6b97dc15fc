from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from adsdash.adapters import AdPlatformAdapter
from adsdash.aggregate import aggregate_daily, table_rows
from adsdash.config import Settings
from adsdash.daterange import parse_option, resolve_date_range
from adsdash.models import DataLevel

from backend.api.auth import get_settings, platform_adapter, require_credential

router = APIRouter()


def _parse_level(level: str) -> DataLevel:
    try:
        return DataLevel((level or "").strip().lower())
    except ValueError as exc:
        valid = ", ".join(lv.value for lv in DataLevel)
        raise HTTPException(status_code=400, detail=f"level must be one of: {valid}") from exc


@router.get("/{platform}/kpis")
async def get_kpis(
    request: Request,
    account_id: str = Query(..., min_length=1),
    level: str = Query(default=DataLevel.ACCOUNT.value),
    date_range: str = Query(default="last_14_days"),
    entity_ids: list[str] = Query(default=[]),
    adapter: AdPlatformAdapter = Depends(platform_adapter),
    settings: Settings = Depends(get_settings),
):
    """Daily KPI rows for one account plus the chart and table views built from them.

    Query params:
    - account_id: platform account id (act_XXXX for Meta, customer id for Google)
    - level: account | campaign | adset | ad
    - date_range: last_7_days | last_14_days | last_30_days | this_month | last_month
    - entity_ids: optional, restricts the daily curve to the selected entities
    """
    lvl = _parse_level(level)
    token = require_credential(request, adapter.platform)

    window = resolve_date_range(date_range)
    rows = await adapter.list_kpis(token, account_id, lvl, window)
    summary = []
    if adapter.native_summary and lvl != DataLevel.ACCOUNT:
        summary = await adapter.list_kpi_summary(token, account_id, lvl, window)

    daily = aggregate_daily(rows, lvl, entity_ids, name_template=settings.label("daily_summary"))
    table = table_rows(rows + summary, lvl)

    return {
        "platform": adapter.platform,
        "account_id": account_id,
        "level": lvl.value,
        "date_range": {"option": parse_option(date_range).value, **window.to_json_dict()},
        "rows": [r.to_json_dict() for r in rows + summary],
        "daily": [r.to_json_dict() for r in daily],
        "table": [r.to_json_dict() for r in table],
    }
