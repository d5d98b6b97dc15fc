"""Google Ads REST adapter (listAccessibleCustomers + googleAds:search)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from adsdash.adapters.base import AdPlatformAdapter, paginate
from adsdash.aggregate import summarize_by_entity
from adsdash.config import Settings
from adsdash.errors import (
    AuthFailure,
    ConfigurationError,
    PaginationLimitError,
    TransportError,
    UpstreamError,
)
from adsdash.kpi import build_kpi
from adsdash.models import AdAccount, DataLevel, DateRange, KpiData
from adsdash.util import deep_get, first_present, to_float, to_int

logger = logging.getLogger(__name__)

MICROS = 1_000_000

METRIC_FIELDS = (
    "segments.date, "
    "metrics.cost_micros, "
    "metrics.impressions, "
    "metrics.clicks, "
    "metrics.ctr, "
    "metrics.average_cpc, "
    "metrics.conversions, "
    "metrics.cost_per_conversion"
)

# level -> (resource fields, FROM resource, status filter)
LEVEL_QUERIES = {
    DataLevel.ACCOUNT: ("customer.id, customer.descriptive_name", "customer", ""),
    DataLevel.CAMPAIGN: ("campaign.id, campaign.name", "campaign", "campaign.status = 'ENABLED'"),
    DataLevel.AD_SET: ("ad_group.id, ad_group.name", "ad_group", "ad_group.status = 'ENABLED'"),
    DataLevel.AD: ("ad_group_ad.ad.id, ad_group_ad.ad.name", "ad_group_ad", "ad_group_ad.status = 'ENABLED'"),
}

CLIENTS_QUERY = (
    "SELECT "
    "customer_client.id, "
    "customer_client.descriptive_name, "
    "customer_client.currency_code, "
    "customer_client.manager, "
    "customer_client.status "
    "FROM customer_client "
    "WHERE customer_client.status = 'ENABLED' "
    "AND customer_client.level <= 1"
)

NOT_APPROVED_MESSAGE = (
    "Google Ads rejected the request: the developer token (GOOGLE_DEVELOPER_TOKEN) is not "
    "approved yet or the signed-in user is not a manager (MCC) account."
)


def clean_customer_id(customer_id: str) -> str:
    return customer_id.replace("customers/", "").replace("-", "").strip()


def build_query(level: DataLevel, date_range: DateRange) -> str:
    resource_fields, resource, status_filter = LEVEL_QUERIES[DataLevel(level)]
    select = f"{resource_fields}, {METRIC_FIELDS}"
    where = f"segments.date BETWEEN '{date_range.since}' AND '{date_range.until}'"
    if status_filter:
        where = f"{where} AND {status_filter}"
    return f"SELECT {select} FROM {resource} WHERE {where}"


def _is_unimplemented(exc: UpstreamError) -> bool:
    return exc.status_code == 501 or "not implemented" in exc.message.lower()


class GoogleAdapter(AdPlatformAdapter):
    platform = "google"

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        if not settings.google_developer_token:
            raise ConfigurationError("GOOGLE_DEVELOPER_TOKEN is required for Google Ads")
        super().__init__(settings, transport=transport)

    def _url(self, path: str) -> str:
        return f"{self.settings.google_ads_url}/{self.settings.google_api_version}/{path}"

    def _headers(self, credential: str, login_customer_id: str = "") -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {credential}",
            "developer-token": self.settings.google_developer_token,
            "Content-Type": "application/json",
        }
        if login_customer_id.strip():
            headers["login-customer-id"] = clean_customer_id(login_customer_id)
        return headers

    def _raise_for_error(self, status_code: int, payload: dict[str, Any]) -> None:
        error = payload.get("error")
        if not error and status_code < 400:
            return

        error = error if isinstance(error, dict) else {}
        status = str(error.get("status") or "")
        message = str(error.get("message") or f"Google Ads API returned HTTP {status_code}")
        if status_code == 401 or status == "UNAUTHENTICATED":
            logger.info("Google rejected the access token")
            raise AuthFailure(self.platform)

        code = to_int(error.get("code")) or status_code
        if status == "UNIMPLEMENTED":
            code = 501
        logger.warning("Google Ads API error %s (%s): %s", code, status or "-", message)
        raise UpstreamError(self.platform, message, code)

    async def _search(
        self,
        client: httpx.AsyncClient,
        credential: str,
        customer_id: str,
        query: str,
        login_customer_id: str = "",
    ) -> list[dict[str, Any]]:
        url = self._url(f"customers/{clean_customer_id(customer_id)}/googleAds:search")
        headers = self._headers(credential, login_customer_id)

        async def fetch_page(page_token: str | None) -> tuple[list[dict[str, Any]], str | None]:
            body: dict[str, Any] = {"query": query}
            if page_token:
                body["pageToken"] = page_token
            payload = await self._send(client, "POST", url, json=body, headers=headers)
            return list(payload.get("results") or []), str(payload.get("nextPageToken") or "").strip() or None

        return await paginate(fetch_page, max_pages=self.settings.max_pages, platform=self.platform)

    # ── accounts ──────────────────────────────────────────────────────────────

    async def _accessible_customers(self, client: httpx.AsyncClient, credential: str) -> list[str]:
        try:
            payload = await self._send(
                client, "GET", self._url("customers:listAccessibleCustomers"), headers=self._headers(credential)
            )
        except UpstreamError as exc:
            msg = exc.message.lower()
            if exc.status_code == 403 or "implemented" in msg or "supported" in msg:
                raise UpstreamError(self.platform, NOT_APPROVED_MESSAGE, exc.status_code) from exc
            raise
        return [str(rn) for rn in payload.get("resourceNames") or []]

    async def list_accounts(self, credential: str) -> list[AdAccount]:
        accounts: list[AdAccount] = []

        async with self._client() as client:
            resource_names = await self._accessible_customers(client, credential)

            for resource_name in resource_names[: self.settings.google_max_customers]:
                customer_id = clean_customer_id(resource_name)
                try:
                    rows = await self._search(
                        client, credential, customer_id, CLIENTS_QUERY, login_customer_id=customer_id
                    )
                except PaginationLimitError:
                    raise
                except (UpstreamError, TransportError) as exc:
                    logger.warning("Skipping Google customer %s: %s", customer_id, exc.message)
                    continue

                for row in rows:
                    cc = row.get("customerClient") or row.get("customer_client") or {}
                    if cc.get("manager"):
                        continue
                    client_id = str(cc.get("id") or "")
                    accounts.append(
                        AdAccount(
                            id=client_id,
                            name=str(
                                cc.get("descriptiveName")
                                or self.settings.label("google_customer", id=client_id)
                            ),
                            currency=str(cc.get("currencyCode") or self.settings.default_currency),
                        )
                    )

        if not accounts:
            for resource_name in resource_names:
                customer_id = clean_customer_id(resource_name)
                accounts.append(
                    AdAccount(
                        id=customer_id,
                        name=self.settings.label("google_customer", id=customer_id),
                        currency=self.settings.default_currency,
                    )
                )

        unique: dict[str, AdAccount] = {}
        for account in accounts:
            unique[account.id] = account
        logger.info("Fetched %d Google Ads accounts", len(unique))
        return list(unique.values())

    # ── KPIs ──────────────────────────────────────────────────────────────────

    def _entity(self, row: dict[str, Any], level: DataLevel, account_id: str) -> tuple[str, str]:
        label = self.settings.label
        if level == DataLevel.CAMPAIGN:
            return (
                str(first_present(row, ("campaign", "id")) or "unknown_campaign"),
                str(first_present(row, ("campaign", "name")) or label("campaign")),
            )
        if level == DataLevel.AD_SET:
            return (
                str(first_present(row, ("adGroup", "id"), ("ad_group", "id")) or "unknown_adset"),
                str(first_present(row, ("adGroup", "name"), ("ad_group", "name")) or label("adset")),
            )
        if level == DataLevel.AD:
            return (
                str(first_present(row, ("adGroupAd", "ad", "id"), ("ad_group_ad", "ad", "id")) or "unknown_ad"),
                str(first_present(row, ("adGroupAd", "ad", "name"), ("ad_group_ad", "ad", "name")) or label("ad")),
            )
        return (
            str(first_present(row, ("customer", "id")) or clean_customer_id(account_id)),
            str(first_present(row, ("customer", "descriptiveName"), ("customer", "descriptive_name")) or label("google_account")),
        )

    def to_kpi(self, row: dict[str, Any], level: DataLevel, account_id: str) -> KpiData:
        entity_id, name = self._entity(row, level, account_id)
        metrics = row.get("metrics") or {}

        spend = to_float(first_present(metrics, ("costMicros",), ("cost_micros",))) / MICROS
        impressions = to_int(metrics.get("impressions"))
        clicks = to_int(metrics.get("clicks"))
        conversions = to_float(metrics.get("conversions"))

        native = {
            "ctr": to_float(metrics.get("ctr")) * 100,
            "cpc": to_float(first_present(metrics, ("averageCpc",), ("average_cpc",))) / MICROS,
            "cost_per_result": to_float(first_present(metrics, ("costPerConversion",), ("cost_per_conversion",))) / MICROS,
        }

        # No reach or link-click concept on Google; mirror impressions and clicks.
        return build_kpi(
            entity_id=entity_id,
            name=name,
            level=level,
            day=str(deep_get(row, "segments", "date") or ""),
            spend=spend,
            impressions=impressions,
            reach=impressions,
            clicks=clicks,
            link_clicks=clicks,
            results=conversions,
            native=native,
        )

    async def list_kpis(
        self, credential: str, account_id: str, level: DataLevel, date_range: DateRange
    ) -> list[KpiData]:
        level = DataLevel(level)
        query = build_query(level, date_range)

        async with self._client() as client:
            try:
                rows = await self._search(client, credential, account_id, query)
            except UpstreamError as exc:
                if not _is_unimplemented(exc):
                    raise
                # Some accounts only answer when addressed through themselves as login customer.
                logger.info("Retrying Google query for %s with login-customer-id", clean_customer_id(account_id))
                rows = await self._search(client, credential, account_id, query, login_customer_id=account_id)

        logger.info(
            "Fetched %d Google Ads rows (level=%s, %s..%s)",
            len(rows), level.value, date_range.since, date_range.until,
        )
        return [self.to_kpi(row, level, account_id) for row in rows]

    async def list_kpi_summary(
        self, credential: str, account_id: str, level: DataLevel, date_range: DateRange
    ) -> list[KpiData]:
        return summarize_by_entity(await self.list_kpis(credential, account_id, level, date_range))
