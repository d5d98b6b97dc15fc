"""Named date-range tokens -> inclusive UTC calendar windows."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta

from adsdash.models import DateRange, DateRangeOption
from adsdash.util import iso_date, utc_today

logger = logging.getLogger(__name__)

DEFAULT_OPTION = DateRangeOption.LAST_14_DAYS

# Rolling windows end today and include it.
_ROLLING_DAYS = {
    DateRangeOption.LAST_7_DAYS: 7,
    DateRangeOption.LAST_14_DAYS: 14,
    DateRangeOption.LAST_30_DAYS: 30,
}


def parse_option(option: str | DateRangeOption | None) -> DateRangeOption:
    if isinstance(option, DateRangeOption):
        return option
    raw = (option or "").strip().lower()
    try:
        return DateRangeOption(raw)
    except ValueError:
        logger.debug("Unknown date range %r, using %s", option, DEFAULT_OPTION.value)
        return DEFAULT_OPTION


def resolve_bounds(option: str | DateRangeOption | None, today: date | datetime | None = None) -> tuple[date, date]:
    if isinstance(today, datetime):
        today = utc_today(today)
    elif today is None:
        today = utc_today()

    opt = parse_option(option)

    if opt in _ROLLING_DAYS:
        return today - timedelta(days=_ROLLING_DAYS[opt] - 1), today

    first_of_month = today.replace(day=1)
    if opt == DateRangeOption.THIS_MONTH:
        return first_of_month, today

    # last_month
    last_of_previous = first_of_month - timedelta(days=1)
    return last_of_previous.replace(day=1), last_of_previous


def resolve_date_range(option: str | DateRangeOption | None, today: date | datetime | None = None) -> DateRange:
    since, until = resolve_bounds(option, today)
    return DateRange(since=iso_date(since), until=iso_date(until))
