from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any


UTC = timezone.utc


def iso_date(d: date) -> str:
    return d.strftime("%Y-%m-%d")


def utc_today(now: datetime | None = None) -> date:
    now = now or datetime.now(UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return now.astimezone(UTC).date()


def to_int(value: Any, default: int = 0) -> int:
    if value is None:
        return default
    if isinstance(value, int):
        return value
    s = str(value).strip()
    if s == "":
        return default
    try:
        return int(float(s))
    except ValueError:
        return default


def to_float(value: Any, default: float = 0.0) -> float:
    if value is None:
        return default
    if isinstance(value, (int, float)):
        return float(value)
    s = str(value).strip().replace(",", "")
    if s == "":
        return default
    try:
        return float(s)
    except ValueError:
        return default


def safe_div(n: float, d: float) -> float:
    if not d:
        return 0.0
    return n / d


def round_half_up(value: float | None, places: int = 2) -> float:
    """Round on the decimal representation, halves away from zero (2.675 -> 2.68)."""
    if value is None:
        return 0.0
    try:
        quantum = Decimal(1).scaleb(-places)
        return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return 0.0


def deep_get(payload: dict[str, Any], *path: str) -> Any:
    cur: Any = payload
    for key in path:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


def first_present(payload: dict[str, Any], *paths: tuple[str, ...]) -> Any:
    for path in paths:
        value = deep_get(payload, *path)
        if value not in (None, ""):
            return value
    return ""
