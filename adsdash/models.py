from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class DataLevel(str, Enum):
    ACCOUNT = "account"
    CAMPAIGN = "campaign"
    AD_SET = "adset"
    AD = "ad"


class DateRangeOption(str, Enum):
    LAST_7_DAYS = "last_7_days"
    LAST_14_DAYS = "last_14_days"
    LAST_30_DAYS = "last_30_days"
    THIS_MONTH = "this_month"
    LAST_MONTH = "last_month"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True)


class DateRange(_CamelModel):
    since: str
    until: str


class AdAccount(_CamelModel):
    id: str
    name: str
    balance: float = 0.0
    spending_limit: float = 0.0
    amount_spent: float = 0.0
    currency: str = ""


class KpiData(_CamelModel):
    """One entity's performance on one calendar day (or over the whole period)."""

    id: str
    entity_id: str
    name: str
    level: DataLevel
    date: str
    amount_spent: float = 0.0
    impressions: int = 0
    reach: int = 0
    clicks: int = 0
    link_clicks: int = 0
    results: float = 0.0
    cost_per_result: float = 0.0
    ctr: float = 0.0
    cpc: float = 0.0
    cpm: float = 0.0
    cost_per_link_click: float = 0.0
    objective: str | None = None
    is_period_total: bool = False
