import asyncio

import httpx
import pytest

from adsdash.adapters.google import GoogleAdapter, build_query, clean_customer_id
from adsdash.config import Settings
from adsdash.errors import AuthFailure, ConfigurationError, PaginationLimitError, UpstreamError
from adsdash.models import DataLevel, DateRange

WINDOW = DateRange(since="2024-03-01", until="2024-03-14")


def _customer(request: httpx.Request) -> str:
    # /v18/customers/<id>/googleAds:search
    return request.url.path.split("/")[3]


def test_developer_token_is_required():
    with pytest.raises(ConfigurationError):
        GoogleAdapter(Settings())


def test_query_per_level():
    q = build_query(DataLevel.AD, WINDOW)
    assert q.startswith("SELECT ad_group_ad.ad.id, ad_group_ad.ad.name, segments.date, metrics.cost_micros")
    assert "FROM ad_group_ad" in q
    assert "segments.date BETWEEN '2024-03-01' AND '2024-03-14'" in q
    assert "ad_group_ad.status = 'ENABLED'" in q

    account = build_query(DataLevel.ACCOUNT, WINDOW)
    assert "FROM customer WHERE" in account
    assert "status" not in account
    for field in ("metrics.ctr", "metrics.average_cpc", "metrics.conversions", "metrics.cost_per_conversion"):
        assert field in account


def test_clean_customer_id():
    assert clean_customer_id("customers/123-456-7890") == "1234567890"


def _accounts_handler(failing: str = "", unauthorized: str = "", empty: bool = False):
    def handler(request):
        if request.url.path.endswith("customers:listAccessibleCustomers"):
            return httpx.Response(200, json={"resourceNames": [f"customers/{i}" for i in range(1, 13)]})
        cid = _customer(request)
        if cid == failing:
            return httpx.Response(500, json={"error": {"code": 500, "message": "boom", "status": "INTERNAL"}})
        if cid == unauthorized:
            return httpx.Response(401, json={"error": {"code": 401, "status": "UNAUTHENTICATED"}})
        if empty:
            return httpx.Response(200, json={})
        return httpx.Response(
            200,
            json={
                "results": [
                    {"customerClient": {"id": cid, "descriptiveName": "MCC", "manager": True}},
                    {"customerClient": {"id": f"{cid}00", "descriptiveName": f"Client {cid}", "currencyCode": "USD", "manager": False}},
                ]
            },
        )

    return handler


def test_accounts_query_first_ten_customers_and_skip_failures(settings, record):
    rec = record(_accounts_handler(failing="3"))
    accounts = asyncio.run(GoogleAdapter(settings, transport=rec.transport).list_accounts("tok"))

    searches = [r for r in rec.requests if r.url.path.endswith("googleAds:search")]
    assert [_customer(r) for r in searches] == [str(i) for i in range(1, 11)]
    assert all(r.headers["login-customer-id"] == _customer(r) for r in searches)
    assert all(r.headers["developer-token"] == "dev-token" for r in rec.requests)
    assert rec.requests[0].headers["authorization"] == "Bearer tok"

    assert [a.id for a in accounts] == [f"{i}00" for i in (1, 2, 4, 5, 6, 7, 8, 9, 10)]
    first = accounts[0]
    assert (first.name, first.currency) == ("Client 1", "USD")
    assert (first.balance, first.spending_limit, first.amount_spent) == (0, 0, 0)


def test_auth_failure_on_one_customer_aborts_listing(settings, record):
    rec = record(_accounts_handler(unauthorized="2"))
    with pytest.raises(AuthFailure):
        asyncio.run(GoogleAdapter(settings, transport=rec.transport).list_accounts("tok"))


def test_accessible_customers_become_accounts_when_no_clients(settings, record):
    rec = record(_accounts_handler(empty=True))
    accounts = asyncio.run(GoogleAdapter(settings, transport=rec.transport).list_accounts("tok"))
    assert len(accounts) == 12
    assert accounts[0].id == "1"
    assert accounts[0].name == "Conta 1"
    assert accounts[0].currency == "BRL"


def test_unapproved_developer_token_message(settings, record):
    rec = record(lambda r: httpx.Response(403, json={"error": {"code": 403, "message": "The caller does not have permission", "status": "PERMISSION_DENIED"}}))
    with pytest.raises(UpstreamError) as info:
        asyncio.run(GoogleAdapter(settings, transport=rec.transport).list_accounts("tok"))
    assert "GOOGLE_DEVELOPER_TOKEN" in info.value.message


def test_kpi_unit_conversions(settings, record):
    row = {
        "segments": {"date": "2024-03-01"},
        "campaign": {"id": "11", "name": "Search"},
        "metrics": {
            "costMicros": "12500000",
            "impressions": "1000",
            "clicks": "50",
            "ctr": 0.05,
            "averageCpc": "250000",
            "conversions": 5.0,
            "costPerConversion": "2500000",
        },
    }
    rec = record(lambda r: httpx.Response(200, json={"results": [row]}))
    (kpi,) = asyncio.run(GoogleAdapter(settings, transport=rec.transport).list_kpis("tok", "123-456", DataLevel.CAMPAIGN, WINDOW))

    assert rec.requests[0].url.path == "/v18/customers/123456/googleAds:search"
    assert "FROM campaign" in rec.body(0)["query"]
    assert kpi.id == "11_2024-03-01"
    assert kpi.name == "Search"
    assert kpi.amount_spent == 12.5
    assert kpi.ctr == 5.0
    assert kpi.cpc == 0.25
    assert kpi.cpm == 12.5
    assert kpi.results == 5
    assert kpi.cost_per_result == 2.5
    assert (kpi.reach, kpi.link_clicks) == (1000, 50)


def test_account_level_entity_and_missing_metrics(settings, record):
    row = {"segments": {"date": "2024-03-02"}, "metrics": {"impressions": "0"}}
    rec = record(lambda r: httpx.Response(200, json={"results": [row]}))
    (kpi,) = asyncio.run(GoogleAdapter(settings, transport=rec.transport).list_kpis("tok", "999", DataLevel.ACCOUNT, WINDOW))
    assert kpi.entity_id == "999"
    assert kpi.name == "Conta Google"
    assert (kpi.amount_spent, kpi.ctr, kpi.cpm, kpi.cost_per_result) == (0, 0, 0, 0)


def test_search_follows_page_tokens(settings, record):
    def handler(request):
        if b"pageToken" not in request.content:
            return httpx.Response(200, json={"results": [{"segments": {"date": "2024-03-01"}, "adGroup": {"id": "1"}}], "nextPageToken": "abc"})
        return httpx.Response(200, json={"results": [{"segments": {"date": "2024-03-02"}, "adGroup": {"id": "1"}}]})

    rec = record(handler)
    rows = asyncio.run(GoogleAdapter(settings, transport=rec.transport).list_kpis("tok", "1", DataLevel.AD_SET, WINDOW))
    assert [r.date for r in rows] == ["2024-03-01", "2024-03-02"]
    assert rec.body(1)["pageToken"] == "abc"


def test_unimplemented_is_retried_with_login_customer_id(settings, record):
    def handler(request):
        if "login-customer-id" not in request.headers:
            return httpx.Response(501, json={"error": {"code": 501, "message": "Operation is not implemented", "status": "UNIMPLEMENTED"}})
        return httpx.Response(200, json={"results": []})

    rec = record(handler)
    rows = asyncio.run(GoogleAdapter(settings, transport=rec.transport).list_kpis("tok", "777", DataLevel.AD, WINDOW))
    assert rows == []
    assert len(rec.requests) == 2
    assert rec.requests[1].headers["login-customer-id"] == "777"


def test_unauthorized_kpis(settings, record):
    rec = record(lambda r: httpx.Response(401, json={"error": {"code": 401, "message": "Request had invalid authentication credentials."}}))
    with pytest.raises(AuthFailure):
        asyncio.run(GoogleAdapter(settings, transport=rec.transport).list_kpis("tok", "1", DataLevel.AD, WINDOW))


def test_summary_is_computed_from_daily_rows(settings, record):
    rows = [
        {"segments": {"date": d}, "adGroupAd": {"ad": {"id": "5", "name": "RSA"}}, "metrics": {"costMicros": "1000000", "impressions": "100", "clicks": "10"}}
        for d in ("2024-03-01", "2024-03-02")
    ]
    rec = record(lambda r: httpx.Response(200, json={"results": rows}))
    (total,) = asyncio.run(GoogleAdapter(settings, transport=rec.transport).list_kpi_summary("tok", "1", DataLevel.AD, WINDOW))
    assert total.id == "5_summary"
    assert total.amount_spent == 2.0
    assert total.clicks == 20
    assert total.cpc == 0.1


def test_unauthorized_without_json_body(settings, record):
    rec = record(lambda r: httpx.Response(401, text=""))
    with pytest.raises(AuthFailure) as info:
        asyncio.run(GoogleAdapter(settings, transport=rec.transport).list_kpis("tok", "1", DataLevel.CAMPAIGN, WINDOW))
    assert info.value.platform == "google"


def test_unreachable_customer_is_skipped(settings, record):
    accounts_ok = _accounts_handler()

    def handler(request):
        if request.url.path.endswith("googleAds:search") and _customer(request) == "4":
            raise httpx.ReadTimeout("timed out", request=request)
        return accounts_ok(request)

    rec = record(handler)
    accounts = asyncio.run(GoogleAdapter(settings, transport=rec.transport).list_accounts("tok"))
    ids = [a.id for a in accounts]
    assert "400" not in ids
    assert ids == [f"{i}00" for i in (1, 2, 3, 5, 6, 7, 8, 9, 10)]


def test_endless_client_listing_is_an_error(settings, record):
    def handler(request):
        if request.url.path.endswith("customers:listAccessibleCustomers"):
            return httpx.Response(200, json={"resourceNames": ["customers/1", "customers/2"]})
        return httpx.Response(200, json={"results": [], "nextPageToken": "more"})

    rec = record(handler)
    adapter = GoogleAdapter(settings.with_overrides(max_pages=3), transport=rec.transport)
    with pytest.raises(PaginationLimitError):
        asyncio.run(adapter.list_accounts("tok"))
    searches = [r for r in rec.requests if r.url.path.endswith("googleAds:search")]
    assert len(searches) == 3
    assert {_customer(r) for r in searches} == {"1"}


def test_endless_search_pages_are_bounded(settings, record):
    rec = record(lambda r: httpx.Response(200, json={"results": [], "nextPageToken": "more"}))
    adapter = GoogleAdapter(settings.with_overrides(max_pages=4), transport=rec.transport)
    with pytest.raises(PaginationLimitError):
        asyncio.run(adapter.list_kpis("tok", "1", DataLevel.AD, WINDOW))
    assert len(rec.requests) == 4
