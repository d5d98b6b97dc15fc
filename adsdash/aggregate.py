"""Roll per-entity KPI rows up into daily curves and per-entity period totals.

Derived ratios are always recomputed from the summed counts; averaging the
per-row ratios would weight every row equally regardless of its volume.
"""

from __future__ import annotations

from collections.abc import Iterable

from adsdash.config import Settings
from adsdash.kpi import build_kpi
from adsdash.models import DataLevel, KpiData
from adsdash.util import round_half_up

_SUMMED = ("amount_spent", "impressions", "reach", "clicks", "link_clicks", "results")


def _empty_totals() -> dict[str, float]:
    return {field: 0 for field in _SUMMED}


def _accumulate(totals: dict[str, float], row: KpiData) -> None:
    for field in _SUMMED:
        totals[field] += getattr(row, field)


def _from_totals(
    totals: dict[str, float],
    *,
    entity_id: str,
    name: str,
    level: DataLevel,
    day: str,
    objective: str | None = None,
    period_total: bool = False,
) -> KpiData:
    return build_kpi(
        entity_id=entity_id,
        name=name,
        level=level,
        day=day,
        spend=round_half_up(totals["amount_spent"]),
        impressions=int(totals["impressions"]),
        reach=int(totals["reach"]),
        clicks=int(totals["clicks"]),
        link_clicks=int(totals["link_clicks"]),
        results=float(totals["results"]),
        objective=objective,
        period_total=period_total,
        row_id=None if period_total else day,
    )


def _daily_only(rows: Iterable[KpiData], entity_ids: Iterable[str] | None) -> list[KpiData]:
    selected = set(entity_ids or ())
    out = [r for r in rows if not r.is_period_total]
    if selected:
        out = [r for r in out if r.entity_id in selected]
    return out


def aggregate_daily(
    rows: Iterable[KpiData],
    level: DataLevel | str,
    entity_ids: Iterable[str] | None = None,
    name_template: str | None = None,
) -> list[KpiData]:
    """One summary row per date, sorted ascending.

    Account-level data is already one row per day and is passed through.
    """
    level = DataLevel(level)
    if name_template is None:
        name_template = Settings().label("daily_summary")
    daily = _daily_only(rows, entity_ids)

    if level == DataLevel.ACCOUNT:
        return sorted(daily, key=lambda r: r.date)

    by_date: dict[str, dict[str, float]] = {}
    objectives: dict[str, str | None] = {}
    for row in daily:
        if row.date not in by_date:
            by_date[row.date] = _empty_totals()
            objectives[row.date] = row.objective
        _accumulate(by_date[row.date], row)

    return [
        _from_totals(
            by_date[day],
            entity_id=day,
            name=name_template.format(date=day),
            level=level,
            day=day,
            objective=objectives[day],
        )
        for day in sorted(by_date)
    ]


def summarize_by_entity(rows: Iterable[KpiData]) -> list[KpiData]:
    totals: dict[str, dict[str, float]] = {}
    firsts: dict[str, KpiData] = {}
    since: dict[str, str] = {}

    for row in rows:
        if row.is_period_total:
            continue
        if row.entity_id not in totals:
            totals[row.entity_id] = _empty_totals()
            firsts[row.entity_id] = row
            since[row.entity_id] = row.date
        _accumulate(totals[row.entity_id], row)
        since[row.entity_id] = min(since[row.entity_id], row.date)

    return [
        _from_totals(
            totals[entity_id],
            entity_id=entity_id,
            name=firsts[entity_id].name,
            level=firsts[entity_id].level,
            day=since[entity_id],
            objective=firsts[entity_id].objective,
            period_total=True,
        )
        for entity_id in totals
    ]


def table_rows(rows: Iterable[KpiData], level: DataLevel | str) -> list[KpiData]:
    """Rows for the tabular view: days at account level, entity totals otherwise."""
    rows = list(rows)
    level = DataLevel(level)

    if level == DataLevel.ACCOUNT:
        return sorted((r for r in rows if not r.is_period_total), key=lambda r: r.date)

    summary = [r for r in rows if r.is_period_total]
    if summary:
        return summary
    return summarize_by_entity(rows)
