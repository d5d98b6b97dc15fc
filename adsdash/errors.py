"""Error taxonomy shared by the adapters, the HTTP layer and the CLI."""

from __future__ import annotations


class AdsDashError(Exception):
    """Base class for every failure surfaced to a dashboard caller."""


class AuthFailure(AdsDashError):
    """The upstream platform rejected the credential (expired or revoked).

    Callers must drop the stored credential and force a new login instead of
    showing a generic error.
    """

    def __init__(self, platform: str, message: str = "Access token is invalid or expired") -> None:
        super().__init__(message)
        self.platform = platform
        self.message = message


class UpstreamError(AdsDashError):
    def __init__(self, platform: str, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.platform = platform
        self.message = message
        self.status_code = status_code


class PaginationLimitError(UpstreamError):
    pass


class ConfigurationError(AdsDashError):
    """A required server-side setting is missing or invalid."""


class TransportError(AdsDashError):
    def __init__(self, platform: str, message: str) -> None:
        super().__init__(message)
        self.platform = platform
        self.message = message
