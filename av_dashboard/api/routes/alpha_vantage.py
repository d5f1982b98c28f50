"""Proxy endpoints forwarding to Alpha Vantage with the server-side key."""

from __future__ import annotations

import logging
import math
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response

from av_dashboard.api.responses import missing_param, result_response
from av_dashboard.providers.alpha_vantage import AlphaVantageClient, get_alpha_vantage_client

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/av")
async def passthrough(
    request: Request,
    client: AlphaVantageClient = Depends(get_alpha_vantage_client),
) -> Response:
    """Forward any Alpha Vantage function; every other query param is passed on."""

    function = request.query_params.get("function")
    if not function:
        return missing_param("Missing required query param: function")

    params = {k: v for k, v in request.query_params.items() if k.lower() != "function"}
    logger.debug("Proxying %s with params %s", function, sorted(params))
    result = await client.call(function, params)
    return result_response(result)


@router.get("/overview")
async def overview(
    symbol: Optional[str] = Query(default=None, description="Ticker symbol"),
    client: AlphaVantageClient = Depends(get_alpha_vantage_client),
) -> Response:
    if not symbol:
        return missing_param("Missing required query param: symbol")
    result = await client.overview(symbol)
    return result_response(result)


@router.get("/earnings-history")
async def earnings_history(
    symbol: Optional[str] = Query(default=None, description="Ticker symbol"),
    client: AlphaVantageClient = Depends(get_alpha_vantage_client),
) -> Response:
    if not symbol:
        return missing_param("Missing required query param: symbol")
    result = await client.earnings(symbol)
    return result_response(result)


def _limit_value(raw: str | None) -> float | None:
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return value


def truncate_feed(payload: Any, limit: float | None) -> Any:
    """Trim ``payload['feed']`` to ``limit`` items when upstream returns more."""

    if limit is None or not isinstance(payload, dict):
        return payload
    feed = payload.get("feed")
    if not isinstance(feed, list):
        return payload
    return {**payload, "feed": feed[: int(limit)]}


@router.get("/news-sentiment")
async def news_sentiment(
    tickers: Optional[str] = Query(default=None, examples=["AAPL,MSFT"]),
    topics: Optional[str] = Query(default=None, examples=["technology"]),
    time_from: Optional[str] = Query(default=None, examples=["20240101T0000"]),
    time_to: Optional[str] = Query(default=None, examples=["20251231T2359"]),
    sort: Optional[str] = Query(default=None, description="LATEST or EARLIEST"),
    limit: Optional[str] = Query(default=None),
    client: AlphaVantageClient = Depends(get_alpha_vantage_client),
) -> Response:
    if not tickers and not topics:
        return missing_param("Provide at least one of: tickers or topics")

    result = await client.news_sentiment(
        tickers=tickers or None,
        topics=topics or None,
        time_from=time_from or None,
        time_to=time_to or None,
        sort=sort or None,
        limit=limit or None,
    )
    if not result.ok or result.data is None:
        return result_response(result)
    return result_response(result, truncate_feed(result.data, _limit_value(limit)))


__all__ = ["router", "truncate_feed"]
