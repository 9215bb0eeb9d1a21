"""FastAPI application entrypoint."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncEngine

from stock_ledger.engine import OversellPolicy

from .api.routes import api_router
from .config import AppSettings, get_settings
from .core.logging import setup_logging
from .core.telemetry import setup_telemetry
from .db.session import create_engine
from .providers.yahoo import YahooChartClient
from .services.portfolio import PortfolioService
from .services.prices import PriceBook, PriceRefresher
from .services.repository import JsonFileRepository, SqlRepository

logger = logging.getLogger(__name__)


def build_service(settings: AppSettings) -> tuple[PortfolioService, AsyncEngine | None]:
    """Wire the configured repository into a ``PortfolioService``."""

    engine: AsyncEngine | None = None
    if settings.storage_backend == "sql":
        engine = create_engine(settings.database_url)
        repository = SqlRepository(engine)
    else:
        repository = JsonFileRepository(settings.json_store_path, strict=settings.strict_validation)
    service = PortfolioService(
        repository,
        PriceBook(settings.default_usd_twd_rate),
        oversell=OversellPolicy(settings.oversell_policy),
        strict=settings.strict_validation,
    )
    return service, engine


def _allowed_origins(settings: AppSettings) -> list[str]:
    return [o.strip() for o in settings.cors_origins.split(",") if o.strip()]


def create_app(
    settings: AppSettings | None = None,
    *,
    service: PortfolioService | None = None,
    refresher: PriceRefresher | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    setup_logging()

    engine: AsyncEngine | None = None
    quote_client: YahooChartClient | None = None
    if service is None:
        service, engine = build_service(settings)
        if refresher is None:
            quote_client = YahooChartClient(
                settings.price_provider_url,
                timeout=settings.price_request_timeout_seconds,
            )
            refresher = PriceRefresher(service.prices, quote_client)

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        logger.info("Starting %s with settings %s", settings.app_name, settings.dict_for_logging())
        if isinstance(service.repository, SqlRepository):
            await service.repository.init()
        task: asyncio.Task | None = None
        if refresher is not None and settings.price_refresh_interval_seconds > 0:
            task = asyncio.create_task(
                refresher.run_forever(service.held_symbols, settings.price_refresh_interval_seconds)
            )
        try:
            yield
        finally:
            if task is not None:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
            if quote_client is not None:
                await quote_client.aclose()
            if engine is not None:
                await engine.dispose()

    app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=_lifespan)
    app.state.settings = settings
    app.state.portfolio_service = service
    app.state.price_refresher = refresher

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_allowed_origins(settings),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_telemetry(app, settings, engine=engine)

    @app.get(f"{settings.api_prefix}/health", tags=["health"])
    async def health() -> dict[str, str]:
        """Return service readiness metadata."""

        return {
            "status": "ok",
            "timestamp": datetime.now().isoformat(),
            "storage": settings.storage_backend,
        }

    app.include_router(api_router, prefix=settings.api_prefix)
    return app


_app: FastAPI | None = None


def __getattr__(name: str) -> FastAPI:
    """Build ``app`` on first access so ``uvicorn portfolio_service.main:app`` works."""

    global _app  # noqa: PLW0603 - built once per process

    if name != "app":
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    if _app is None:
        _app = create_app()
    return _app


__all__ = ["app", "build_service", "create_app"]
