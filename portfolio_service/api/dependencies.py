"""Shared FastAPI dependencies for the Stockfolio API."""

from __future__ import annotations

from fastapi import Depends, Header, HTTPException, Request, status

from ..config import AppSettings
from ..services.portfolio import PortfolioService
from ..services.prices import PriceRefresher


def get_app_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def get_portfolio_service(request: Request) -> PortfolioService:
    return request.app.state.portfolio_service


def get_price_refresher(request: Request) -> PriceRefresher | None:
    return getattr(request.app.state, "price_refresher", None)


def verify_internal_token(
    x_internal_token: str | None = Header(default=None),
    settings: AppSettings = Depends(get_app_settings),
) -> None:
    if settings.internal_auth_token is None:
        return
    if x_internal_token != settings.internal_auth_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid internal token")


InternalAuth = Depends(verify_internal_token)


__all__ = [
    "InternalAuth",
    "get_app_settings",
    "get_portfolio_service",
    "get_price_refresher",
    "verify_internal_token",
]
