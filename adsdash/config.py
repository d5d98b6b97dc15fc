from __future__ import annotations

import os
from dataclasses import dataclass, replace

from adsdash.errors import ConfigurationError


# Display strings for entities the upstream returns without a name.
LABELS: dict[str, dict[str, str]] = {
    "pt-BR": {
        "account": "Resumo da Conta",
        "campaign": "(Campanha Desconhecida)",
        "adset": "(Grupo Desconhecido)",
        "ad": "(Anúncio Desconhecido)",
        "google_account": "Conta Google",
        "google_customer": "Conta {id}",
        "daily_summary": "Resumo - {date}",
    },
    "en": {
        "account": "Account summary",
        "campaign": "(Unknown campaign)",
        "adset": "(Unknown ad set)",
        "ad": "(Unknown ad)",
        "google_account": "Google account",
        "google_customer": "Account {id}",
        "daily_summary": "Summary - {date}",
    },
}


@dataclass(frozen=True)
class Settings:
    google_developer_token: str = ""
    meta_graph_url: str = "https://graph.facebook.com"
    meta_api_version: str = "v19.0"
    google_ads_url: str = "https://googleads.googleapis.com"
    google_api_version: str = "v18"
    http_timeout: float = 30.0
    max_pages: int = 50
    page_limit: int = 100
    google_max_customers: int = 10
    locale: str = "pt-BR"
    default_currency: str = "BRL"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ
        defaults = cls()

        def _str(name: str, default: str) -> str:
            return str(env.get(name, default) or default).strip()

        def _num(name: str, default: float, cast: type) -> float:
            raw = str(env.get(name, "") or "").strip()
            if not raw:
                return default
            try:
                return cast(raw)
            except ValueError as exc:
                raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc

        return cls(
            google_developer_token=_str("GOOGLE_DEVELOPER_TOKEN", ""),
            meta_graph_url=_str("ADSDASH_META_GRAPH_URL", defaults.meta_graph_url).rstrip("/"),
            meta_api_version=_str("ADSDASH_META_API_VERSION", defaults.meta_api_version),
            google_ads_url=_str("ADSDASH_GOOGLE_ADS_URL", defaults.google_ads_url).rstrip("/"),
            google_api_version=_str("ADSDASH_GOOGLE_API_VERSION", defaults.google_api_version),
            http_timeout=_num("ADSDASH_HTTP_TIMEOUT", defaults.http_timeout, float),
            max_pages=_num("ADSDASH_MAX_PAGES", defaults.max_pages, int),
            page_limit=_num("ADSDASH_PAGE_LIMIT", defaults.page_limit, int),
            google_max_customers=_num("ADSDASH_GOOGLE_MAX_CUSTOMERS", defaults.google_max_customers, int),
            locale=_str("ADSDASH_LOCALE", defaults.locale),
            default_currency=_str("ADSDASH_DEFAULT_CURRENCY", defaults.default_currency),
        )

    def validate(self) -> "Settings":
        if self.http_timeout <= 0:
            raise ConfigurationError("ADSDASH_HTTP_TIMEOUT must be greater than zero")
        if self.max_pages < 1:
            raise ConfigurationError("ADSDASH_MAX_PAGES must be at least 1")
        if self.page_limit < 1:
            raise ConfigurationError("ADSDASH_PAGE_LIMIT must be at least 1")
        if self.google_max_customers < 1:
            raise ConfigurationError("ADSDASH_GOOGLE_MAX_CUSTOMERS must be at least 1")
        if self.locale not in LABELS:
            raise ConfigurationError(f"ADSDASH_LOCALE must be one of: {', '.join(sorted(LABELS))}")
        return self

    def with_overrides(self, **changes: object) -> "Settings":
        return replace(self, **changes).validate()

    def label(self, key: str, **fmt: str) -> str:
        text = LABELS[self.locale][key]
        return text.format(**fmt) if fmt else text


def load_settings() -> Settings:
    return Settings.from_env().validate()
