"""Helpers turning classified Alpha Vantage results into HTTP responses."""

from __future__ import annotations

from typing import Any

from fastapi import status
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from av_dashboard.providers.alpha_vantage import AVResult

NO_STORE = {"cache-control": "no-store"}


def missing_param(message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status.HTTP_400_BAD_REQUEST)


def result_response(result: AVResult, payload: Any = None) -> Response:
    """Render ``result`` with the status the classifier produced.

    ``payload`` replaces ``result.data`` on success, for routes that reshape it.
    """

    if result.text and result.data is None:
        return PlainTextResponse(result.text, status_code=result.status)

    if not result.ok:
        body = result.data
        if body is None:
            body = {
                "error": result.error or "Alpha Vantage request failed",
                "details": result.upstream_note,
            }
        return JSONResponse(body, status_code=result.status)

    data = result.data if payload is None else payload
    return JSONResponse(
        data if data is not None else {},
        status_code=result.status,
        headers=NO_STORE,
    )


__all__ = ["missing_param", "result_response"]
