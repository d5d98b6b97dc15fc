from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from datetime import date

from dotenv import load_dotenv

from adsdash.adapters import get_adapter
from adsdash.aggregate import aggregate_daily, table_rows
from adsdash.config import load_settings
from adsdash.daterange import resolve_date_range
from adsdash.errors import AdsDashError, AuthFailure
from adsdash.models import DataLevel, DateRangeOption


def _print(obj: object) -> None:
    print(json.dumps(obj, indent=2, sort_keys=True))


def _token(args: argparse.Namespace) -> str:
    token = (args.token or os.environ.get(f"{args.platform.upper()}_ACCESS_TOKEN", "")).strip()
    if not token:
        raise SystemExit(f"--token (or {args.platform.upper()}_ACCESS_TOKEN) is required")
    return token


async def _accounts(args: argparse.Namespace) -> object:
    adapter = get_adapter(args.platform, load_settings())
    return [a.to_json_dict() for a in await adapter.list_accounts(_token(args))]


async def _kpis(args: argparse.Namespace) -> object:
    settings = load_settings()
    adapter = get_adapter(args.platform, settings)
    level = DataLevel(args.level)
    window = resolve_date_range(args.date_range)
    rows = await adapter.list_kpis(_token(args), args.account_id, level, window)

    if args.view == "daily":
        rows = aggregate_daily(rows, level, name_template=settings.label("daily_summary"))
    elif args.view == "table":
        if adapter.native_summary and level != DataLevel.ACCOUNT:
            rows = rows + await adapter.list_kpi_summary(_token(args), args.account_id, level, window)
        rows = table_rows(rows, level)

    return {"date_range": window.to_json_dict(), "level": level.value, "rows": [r.to_json_dict() for r in rows]}


def main(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(prog="adsdash", description="Meta / Google Ads KPI fetcher and aggregator.")
    parser.add_argument("--log-level", type=str, default=os.environ.get("ADSDASH_LOG_LEVEL", "WARNING"))

    sub = parser.add_subparsers(dest="cmd", required=True)

    dr = sub.add_parser("date-range", help="Resolve a named date range to since/until.")
    dr.add_argument("--option", type=str, default=DateRangeOption.LAST_14_DAYS.value)
    dr.add_argument("--today", type=str, default="", help="Reference date YYYY-MM-DD (default: today, UTC)")

    accounts = sub.add_parser("accounts", help="List ad accounts for a platform.")
    accounts.add_argument("--platform", type=str, default="meta", choices=["meta", "google"])
    accounts.add_argument("--token", type=str, default="")

    kpis = sub.add_parser("kpis", help="Fetch daily KPI rows for an account.")
    kpis.add_argument("--platform", type=str, default="meta", choices=["meta", "google"])
    kpis.add_argument("--token", type=str, default="")
    kpis.add_argument("--account-id", type=str, required=True)
    kpis.add_argument("--level", type=str, default="account", choices=[lv.value for lv in DataLevel])
    kpis.add_argument("--date-range", type=str, default=DateRangeOption.LAST_14_DAYS.value)
    kpis.add_argument("--view", type=str, default="rows", choices=["rows", "daily", "table"])

    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    if args.cmd == "date-range":
        try:
            today = date.fromisoformat(args.today) if args.today else None
        except ValueError:
            raise SystemExit("--today must be YYYY-MM-DD")
        _print(resolve_date_range(args.option, today).to_json_dict())
        return 0

    load_dotenv()
    handler = _accounts if args.cmd == "accounts" else _kpis
    try:
        _print(asyncio.run(handler(args)))
    except AuthFailure as exc:
        print(f"{exc.platform}: {exc.message} (sign in again)", file=sys.stderr)
        return 2
    except AdsDashError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


def run() -> int:
    return main(sys.argv[1:])


if __name__ == "__main__":
    raise SystemExit(run())
