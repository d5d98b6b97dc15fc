from __future__ import annotations

from adsdash.models import DataLevel, KpiData
from adsdash.util import round_half_up, safe_div


def kpi_id(entity_id: str, day: str, period_total: bool = False) -> str:
    return f"{entity_id}_summary" if period_total else f"{entity_id}_{day}"


def derive_metrics(
    spend: float,
    impressions: int,
    clicks: int,
    results: float,
    link_clicks: int = 0,
    *,
    per_thousand_results: bool = False,
) -> dict[str, float]:
    """Ratios from raw counts, rounded to cents; a zero denominator gives 0."""
    cost_per_result = safe_div(spend, results)
    if per_thousand_results:
        cost_per_result *= 1000
    return {
        "ctr": round_half_up(safe_div(clicks, impressions) * 100),
        "cpc": round_half_up(safe_div(spend, clicks)),
        "cpm": round_half_up(safe_div(spend, impressions) * 1000),
        "cost_per_result": round_half_up(cost_per_result),
        "cost_per_link_click": round_half_up(safe_div(spend, link_clicks)),
    }


def build_kpi(
    *,
    entity_id: str,
    name: str,
    level: DataLevel,
    day: str,
    spend: float,
    impressions: int,
    reach: int,
    clicks: int,
    link_clicks: int,
    results: float,
    native: dict[str, float] | None = None,
    per_thousand_results: bool = False,
    objective: str | None = None,
    period_total: bool = False,
    row_id: str | None = None,
) -> KpiData:
    metrics = derive_metrics(
        spend,
        impressions,
        clicks,
        results,
        link_clicks,
        per_thousand_results=per_thousand_results,
    )
    # Non-zero platform-supplied ratios replace the computed ones.
    for key, value in (native or {}).items():
        if value:
            metrics[key] = round_half_up(value)

    return KpiData(
        id=row_id or kpi_id(entity_id, day, period_total),
        entity_id=entity_id,
        name=name,
        level=level,
        date=day,
        amount_spent=spend,
        impressions=impressions,
        reach=reach,
        clicks=clicks,
        link_clicks=link_clicks,
        results=results,
        objective=objective,
        is_period_total=period_total,
        **metrics,
    )
