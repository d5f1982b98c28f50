"""Route registration helpers."""

from __future__ import annotations

from fastapi import APIRouter

from .alpha_vantage import router as alpha_vantage_router

api_router = APIRouter()
api_router.include_router(alpha_vantage_router, prefix="/api", tags=["alpha-vantage"])

__all__ = ["api_router"]
