"""Alpha Vantage client with response normalization.

Alpha Vantage frequently answers HTTP 200 while carrying a rate-limit or
error message in the body. Every call made here is reshaped into an
:class:`AVResult`; no exception crosses the client boundary.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Protocol, Union

import httpx
from fastapi import Request

from av_dashboard.config import AppSettings, get_settings
from av_dashboard.storage.key_store import KeyStore

logger = logging.getLogger(__name__)

BASE_URL = "https://www.alphavantage.co/query"

# Checked in this order; the first non-empty string wins.
SOFT_ERROR_FIELDS = ("Note", "Information", "Error Message")

RATE_LIMITED_STATUS = 429

QueryValue = Union[str, int, float, bool, None]
QueryParams = Mapping[str, QueryValue]


@dataclass(frozen=True)
class AVResult:
    """Outcome of a single Alpha Vantage call."""

    ok: bool
    status: int
    data: Any = None
    text: str | None = None
    upstream_note: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the result with only the populated optional fields."""

        payload: dict[str, Any] = {"ok": self.ok, "status": self.status}
        if self.data is not None:
            payload["data"] = self.data
        if self.text is not None:
            payload["text"] = self.text
        if self.upstream_note is not None:
            payload["upstreamNote"] = self.upstream_note
        if self.error is not None:
            payload["error"] = self.error
        return payload


# Key resolution


class KeySource(Protocol):
    """Strategy deciding which API key a call uses."""

    missing_status: int
    missing_error: str

    def resolve(self, explicit: str | None = None) -> str | None:
        ...


class StoredKeySource:
    """Explicit key first, then whatever the key store holds."""

    missing_status = 400
    missing_error = "Missing Alpha Vantage API key in key store"

    def __init__(self, store: KeyStore) -> None:
        self.store = store

    def resolve(self, explicit: str | None = None) -> str | None:
        if explicit:
            return explicit
        try:
            return self.store.get() or None
        except Exception as exc:  # noqa: BLE001 - a failing store means no key
            logger.warning("Key store lookup failed: %s", exc)
            return None


class ConfiguredKeySource:
    """Operator-configured key; absence is a server misconfiguration."""

    missing_status = 500
    missing_error = "Server misconfigured: ALPHA_VANTAGE_API_KEY is not set"

    def __init__(self, api_key: str | None) -> None:
        self.api_key = api_key

    def resolve(self, explicit: str | None = None) -> str | None:
        return self.api_key or None


# URL building


def _coerce(value: QueryValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_url(base_url: str, params: QueryParams) -> str:
    """Return ``base_url`` with ``params`` set on its query string.

    ``None`` values are skipped; any other value replaces a parameter of the
    same name already present on the base URL.
    """

    url = httpx.URL(base_url)
    for key, value in params.items():
        if value is None:
            continue
        url = url.copy_set_param(key, _coerce(value))
    return str(url)


def merge_query(function: str, api_key: str, params: QueryParams | None = None) -> dict[str, QueryValue]:
    """Combine function and key with caller parameters; caller values win."""

    merged: dict[str, QueryValue] = {"function": function, "apikey": api_key}
    for key, value in (params or {}).items():
        if value is None:
            continue
        merged[key] = value
    return merged


# Classification


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are not JSON
    raise ValueError(f"Invalid JSON constant {name}")


def find_upstream_note(payload: Any) -> str | None:
    """Return the first soft-error message carried in ``payload``, if any."""

    if not isinstance(payload, dict):
        return None
    for field in SOFT_ERROR_FIELDS:
        value = payload.get(field)
        if isinstance(value, str) and value:
            return value
    return None


def classify_response(status_code: int, body: str) -> AVResult:
    """Turn a completed upstream exchange into an :class:`AVResult`."""

    transport_ok = 200 <= status_code < 300
    try:
        parsed = json.loads(body, parse_constant=_reject_constant)
    except ValueError:
        return AVResult(ok=transport_ok, status=status_code, text=body)

    note = find_upstream_note(parsed)
    if note:
        logger.warning("Alpha Vantage soft error (HTTP %s): %s", status_code, note)
        return AVResult(ok=False, status=RATE_LIMITED_STATUS, data=parsed, upstream_note=note)

    if not transport_ok:
        logger.warning("Alpha Vantage returned HTTP %s", status_code)
    return AVResult(ok=transport_ok, status=status_code, data=parsed)


# Client


class AlphaVantageClient:
    """Single-request Alpha Vantage caller parameterized by its key source."""

    def __init__(
        self,
        key_source: KeySource,
        *,
        base_url: str = BASE_URL,
        client: httpx.AsyncClient | None = None,
        network_error_status: int = 0,
        timeout: float | None = None,
    ) -> None:
        self.key_source = key_source
        self.base_url = base_url
        self.network_error_status = network_error_status
        self.timeout = timeout
        self._client = client

    async def call(self, function: str, params: QueryParams | None = None) -> AVResult:
        """Issue exactly one GET for ``function`` and classify the outcome."""

        params = params or {}
        explicit = params.get("apikey")
        api_key = self.key_source.resolve(str(explicit) if explicit else None)
        if not api_key:
            logger.info("No Alpha Vantage key available for %s", function)
            return AVResult(
                ok=False,
                status=self.key_source.missing_status,
                error=self.key_source.missing_error,
            )

        try:
            url = build_url(self.base_url, merge_query(function, api_key, params))
            status_code, body = await self._fetch(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error("Alpha Vantage request for %s failed: %s", function, exc)
            return AVResult(
                ok=False,
                status=self.network_error_status,
                error=str(exc) or exc.__class__.__name__,
            )
        return classify_response(status_code, body)

    async def _fetch(self, url: str) -> tuple[int, str]:
        kwargs: dict[str, Any] = {}
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        if self._client is not None:
            response = await self._client.get(url, **kwargs)
            return response.status_code, response.text
        async with httpx.AsyncClient() as client:
            response = await client.get(url, **kwargs)
            return response.status_code, response.text

    # Convenience helpers

    async def overview(self, symbol: str) -> AVResult:
        return await self.call("OVERVIEW", {"symbol": symbol})

    async def global_quote(self, symbol: str) -> AVResult:
        return await self.call("GLOBAL_QUOTE", {"symbol": symbol})

    async def income_statement(self, symbol: str) -> AVResult:
        return await self.call("INCOME_STATEMENT", {"symbol": symbol})

    async def balance_sheet(self, symbol: str) -> AVResult:
        return await self.call("BALANCE_SHEET", {"symbol": symbol})

    async def cash_flow(self, symbol: str) -> AVResult:
        return await self.call("CASH_FLOW", {"symbol": symbol})

    async def earnings(self, symbol: str) -> AVResult:
        return await self.call("EARNINGS", {"symbol": symbol})

    async def earnings_call_transcript(self, symbol: str, quarter: str) -> AVResult:
        return await self.call("EARNINGS_CALL_TRANSCRIPT", {"symbol": symbol, "quarter": quarter})

    async def news_sentiment(
        self,
        *,
        tickers: str | None = None,
        topics: str | None = None,
        time_from: str | None = None,
        time_to: str | None = None,
        sort: str | None = None,
        limit: int | str | None = None,
    ) -> AVResult:
        return await self.call(
            "NEWS_SENTIMENT",
            {
                "tickers": tickers,
                "topics": topics,
                "time_from": time_from,
                "time_to": time_to,
                "sort": sort,
                "limit": limit,
            },
        )

    async def symbol_search(self, keywords: str) -> AVResult:
        """Search tickers by keywords; blank input answers without a request."""

        if not keywords or not keywords.strip():
            return AVResult(ok=True, status=200, data={"bestMatches": []})
        return await self.call("SYMBOL_SEARCH", {"keywords": keywords.strip()})


def stored_key_client(store: KeyStore, **kwargs: Any) -> AlphaVantageClient:
    """Client whose key comes from an explicit parameter or the key store."""

    kwargs.setdefault("network_error_status", 0)
    return AlphaVantageClient(StoredKeySource(store), **kwargs)


def configured_key_client(settings: AppSettings, **kwargs: Any) -> AlphaVantageClient:
    """Client whose key comes from server configuration."""

    kwargs.setdefault("base_url", settings.alpha_vantage_base_url)
    kwargs.setdefault("timeout", settings.alpha_vantage_timeout_seconds)
    kwargs.setdefault("network_error_status", 502)
    return AlphaVantageClient(ConfiguredKeySource(settings.alpha_vantage_api_key), **kwargs)


def get_alpha_vantage_client(request: Request) -> AlphaVantageClient:
    """FastAPI dependency returning the server-side client.

    Uses the settings the app was built with, falling back to the global ones.
    """

    settings = getattr(request.app.state, "settings", None) or get_settings()
    return configured_key_client(settings)


__all__ = [
    "AVResult",
    "AlphaVantageClient",
    "BASE_URL",
    "ConfiguredKeySource",
    "KeySource",
    "QueryParams",
    "SOFT_ERROR_FIELDS",
    "StoredKeySource",
    "build_url",
    "classify_response",
    "configured_key_client",
    "find_upstream_note",
    "get_alpha_vantage_client",
    "merge_query",
    "stored_key_client",
]
