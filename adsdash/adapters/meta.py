"""Meta Graph API adapter: ad accounts and daily insights."""

from __future__ import annotations

import json
import logging
from typing import Any

from adsdash.adapters.base import AdPlatformAdapter, paginate
from adsdash.errors import AuthFailure, UpstreamError
from adsdash.kpi import build_kpi
from adsdash.models import AdAccount, DataLevel, DateRange, KpiData
from adsdash.util import deep_get, to_float, to_int

logger = logging.getLogger(__name__)

INVALID_TOKEN_CODE = 190

ACCOUNT_FIELDS = "id,name,balance,spend_cap,amount_spent,currency,prepay_balance"

INSIGHT_FIELDS = [
    "spend",
    "impressions",
    "reach",
    "clicks",
    "inline_link_clicks",
    "ctr",
    "cpc",
    "cpm",
    "results",
    "cost_per_result",
    "actions",
    "objective",
    "date_start",
    "date_stop",
]

LEVEL_FIELDS = {
    DataLevel.ACCOUNT: ["account_id", "account_name"],
    DataLevel.CAMPAIGN: ["campaign_id", "campaign_name"],
    DataLevel.AD_SET: ["campaign_id", "campaign_name", "adset_id", "adset_name"],
    DataLevel.AD: ["campaign_id", "campaign_name", "adset_id", "adset_name", "ad_id", "ad_name"],
}

TRAFFIC_OBJECTIVES = {"OUTCOME_TRAFFIC", "TRAFFIC"}
ENGAGEMENT_OBJECTIVES = {"OUTCOME_ENGAGEMENT", "MESSAGES", "POST_ENGAGEMENT"}
SALES_OBJECTIVES = {"OUTCOME_SALES", "CONVERSIONS"}
AWARENESS_OBJECTIVES = {"OUTCOME_AWARENESS", "BRAND_AWARENESS", "REACH"}

# (action key, exact match only)
_TRAFFIC_PRIORITIES = [
    ("omni_messaging_conversation_started", False),
    ("messaging_conversation_started", False),
    ("click_to_whatsapp", False),
    ("whatsapp", False),
    ("purchase", True),
]
_ENGAGEMENT_PRIORITIES = [
    ("omni_messaging_conversation_started", False),
    ("messaging_conversation_started", False),
    ("leads", False),
    ("lead", False),
    ("purchase", True),
    ("schedule", False),
    ("complete_registration", False),
    ("submit_application", False),
]
_SALES_PRIORITIES = [
    ("purchase", True),
    ("leads", False),
    ("lead", False),
    ("messaging_conversation_started", False),
    ("schedule", False),
    ("complete_registration", False),
]
_DEFAULT_PRIORITIES = [
    ("leads", False),
    ("lead", False),
    ("purchase", True),
    ("messaging_conversation_started", False),
]


def _act_id(account_id: str) -> str:
    return "act_" + account_id.replace("act_", "").strip()


def first_result_value(entries: Any) -> float:
    """Value of the first element of a Meta ``results``/``cost_per_result`` list."""
    if not isinstance(entries, list) or not entries:
        return 0.0
    first = entries[0]
    if not isinstance(first, dict):
        return to_float(first)
    if "value" in first:
        return to_float(first.get("value"))
    values = first.get("values") or []
    if values and isinstance(values[0], dict):
        return to_float(values[0].get("value"))
    return 0.0


def _priorities_for(objective: str) -> list[tuple[str, bool]]:
    if objective in TRAFFIC_OBJECTIVES:
        return _TRAFFIC_PRIORITIES
    if objective in ENGAGEMENT_OBJECTIVES:
        return _ENGAGEMENT_PRIORITIES
    if objective in SALES_OBJECTIVES:
        return _SALES_PRIORITIES
    return _DEFAULT_PRIORITIES


def results_from_actions(actions: Any, objective: str) -> float:
    """Pick the conversion count that best matches the campaign objective.

    Non-exact keys prefer the 7d/1d/28d attribution-window variants and then
    sum every action type containing the key.
    """
    by_type: dict[str, float] = {}
    for action in actions or []:
        if isinstance(action, dict) and action.get("action_type"):
            by_type[str(action["action_type"])] = to_float(action.get("value"))

    for key, exact in _priorities_for(objective):
        if exact:
            if by_type.get(key, 0.0) > 0:
                return by_type[key]
            continue

        for window in ("7d", "1d", "28d"):
            for candidate in (f"onsite_conversion.{key}_{window}", f"{key}_{window}"):
                if by_type.get(candidate, 0.0) > 0:
                    return by_type[candidate]

        partial = sum(v for t, v in by_type.items() if key in t)
        if partial > 0:
            return partial

    return 0.0


class MetaAdapter(AdPlatformAdapter):
    platform = "meta"
    native_summary = True

    def _url(self, path: str) -> str:
        return f"{self.settings.meta_graph_url}/{self.settings.meta_api_version}/{path}"

    def _raise_for_error(self, status_code: int, payload: dict[str, Any]) -> None:
        error = payload.get("error")
        if error:
            code = to_int(error.get("code")) if isinstance(error, dict) else 0
            message = str(error.get("message") or "") if isinstance(error, dict) else str(error)
            if code == INVALID_TOKEN_CODE:
                logger.info("Meta rejected the access token (code 190)")
                raise AuthFailure(self.platform)
            logger.warning("Meta API error %s: %s", code, message)
            raise UpstreamError(self.platform, message or "Error fetching data from Meta", status_code)
        if status_code >= 400:
            raise UpstreamError(self.platform, f"Meta API returned HTTP {status_code}", status_code)

    async def _fetch_all(self, url: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        async with self._client() as client:

            async def fetch_page(next_url: str | None) -> tuple[list[dict[str, Any]], str | None]:
                if next_url:
                    payload = await self._send(client, "GET", next_url)
                else:
                    payload = await self._send(client, "GET", url, params=params)
                data = payload.get("data") or []
                return list(data), deep_get(payload, "paging", "next") or None

            return await paginate(fetch_page, max_pages=self.settings.max_pages, platform=self.platform)

    # ── accounts ──────────────────────────────────────────────────────────────

    @staticmethod
    def to_account(raw: dict[str, Any]) -> AdAccount:
        amount_spent = to_float(raw.get("amount_spent")) / 100
        spending_limit = to_float(raw.get("spend_cap")) / 100
        prepaid = deep_get(raw, "prepay_balance", "amount")
        if prepaid not in (None, ""):
            balance = to_float(prepaid)
        else:
            balance = to_float(raw.get("balance")) / 100

        return AdAccount(
            id=str(raw.get("id") or ""),
            name=str(raw.get("name") or ""),
            balance=balance,
            spending_limit=spending_limit,
            amount_spent=amount_spent,
            currency=str(raw.get("currency") or ""),
        )

    async def list_accounts(self, credential: str) -> list[AdAccount]:
        params = {
            "fields": ACCOUNT_FIELDS,
            "limit": str(self.settings.page_limit),
            "access_token": credential,
        }
        raw = await self._fetch_all(self._url("me/adaccounts"), params)
        logger.info("Fetched %d Meta ad accounts", len(raw))
        return [self.to_account(r) for r in raw]

    # ── insights ──────────────────────────────────────────────────────────────

    def _entity(self, item: dict[str, Any], level: DataLevel, account_id: str) -> tuple[str, str]:
        label = self.settings.label
        if level == DataLevel.ACCOUNT:
            entity_id = str(item.get("account_id") or account_id)
            return entity_id, str(item.get("account_name") or label("account"))

        campaign = str(item.get("campaign_name") or label("campaign"))
        if level == DataLevel.CAMPAIGN:
            return str(item.get("campaign_id") or "unknown_campaign"), campaign

        adset = str(item.get("adset_name") or label("adset"))
        if level == DataLevel.AD_SET:
            return str(item.get("adset_id") or "unknown_adset"), f"{campaign} > {adset}"

        ad = str(item.get("ad_name") or label("ad"))
        return str(item.get("ad_id") or "unknown_ad"), f"{campaign} > {adset} > {ad}"

    def to_kpi(
        self, item: dict[str, Any], level: DataLevel, account_id: str, period_total: bool = False
    ) -> KpiData:
        entity_id, name = self._entity(item, level, account_id)
        spend = to_float(item.get("spend"))
        impressions = to_int(item.get("impressions"))
        reach = to_int(item.get("reach"))
        clicks = to_int(item.get("clicks"))
        link_clicks = to_int(item.get("inline_link_clicks"))
        objective = str(item.get("objective") or "") or None

        native = {
            "ctr": to_float(item.get("ctr")),
            "cpc": to_float(item.get("cpc")),
            "cpm": to_float(item.get("cpm")),
        }
        per_thousand = False

        if "results" in item:
            results = first_result_value(item.get("results"))
            native["cost_per_result"] = first_result_value(item.get("cost_per_result"))
        else:
            results = results_from_actions(item.get("actions"), objective or "")
            if results == 0:
                if objective in TRAFFIC_OBJECTIVES or objective == "LINK_CLICKS":
                    results = float(link_clicks)
                elif objective in AWARENESS_OBJECTIVES:
                    results = float(reach)
                    per_thousand = True

        return build_kpi(
            entity_id=entity_id,
            name=name,
            level=level,
            day=str(item.get("date_start") or ""),
            spend=spend,
            impressions=impressions,
            reach=reach,
            clicks=clicks,
            link_clicks=link_clicks,
            results=results,
            native=native,
            per_thousand_results=per_thousand,
            objective=objective,
            period_total=period_total,
        )

    def _insights_params(
        self, credential: str, level: DataLevel, date_range: DateRange, daily: bool
    ) -> dict[str, Any]:
        params = {
            "level": level.value,
            "fields": ",".join(INSIGHT_FIELDS + LEVEL_FIELDS[level]),
            "time_range": json.dumps({"since": date_range.since, "until": date_range.until}, separators=(",", ":")),
            "limit": str(self.settings.page_limit),
            "access_token": credential,
        }
        if daily:
            params["time_increment"] = "1"
        return params

    async def _insights(
        self, credential: str, account_id: str, level: DataLevel, date_range: DateRange, daily: bool
    ) -> list[KpiData]:
        level = DataLevel(level)
        url = self._url(f"{_act_id(account_id)}/insights")
        raw = await self._fetch_all(url, self._insights_params(credential, level, date_range, daily))
        logger.info(
            "Fetched %d Meta insight rows (level=%s, %s..%s, daily=%s)",
            len(raw), level.value, date_range.since, date_range.until, daily,
        )
        return [self.to_kpi(item, level, account_id, period_total=not daily) for item in raw]

    async def list_kpis(
        self, credential: str, account_id: str, level: DataLevel, date_range: DateRange
    ) -> list[KpiData]:
        return await self._insights(credential, account_id, level, date_range, daily=True)

    async def list_kpi_summary(
        self, credential: str, account_id: str, level: DataLevel, date_range: DateRange
    ) -> list[KpiData]:
        """Period totals straight from Meta; reach does not add up across days."""
        return await self._insights(credential, account_id, level, date_range, daily=False)
