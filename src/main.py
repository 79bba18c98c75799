"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.tk_common.database import async_session_factory, engine
from src.tk_common.errors import AppError, InternalError
from src.tk_common.redis_client import close_redis, get_redis
from src.tk_common.response import error_response
from src.tk_event.infrastructure.persistence import EventRepository
from src.tk_gateway.container import ServiceContainer
from src.tk_gateway.middleware.request_log import RequestLogMiddleware
from src.tk_listing.api.router import router as listing_router
from src.tk_listing.application.service import BulkIntakeService
from src.tk_listing.infrastructure.persistence import ListingRepository
from src.tk_notify.infrastructure.redis_publisher import (
    RedisInstantMatchHook,
    RedisMatchNotifier,
)
from src.tk_offer.api.router import router as offer_router
from src.tk_offer.application.lifecycle import OfferLifecycleManager
from src.tk_offer.application.sweeper import BackgroundSweeper
from src.tk_offer.infrastructure.persistence import OfferRepository
from src.tk_payment.infrastructure.http_gateway import HttpPaymentGateway
from src.tk_pricing.infrastructure.http_client import HttpPricingEngine
from src.tk_settlement.api.admin_router import router as admin_router
from src.tk_settlement.api.router import router as settlement_router
from src.tk_settlement.engine.engine import SettlementEngine
from src.tk_settlement.infrastructure.persistence import TransactionRepository

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis, build services, start sweeper. Shutdown: reverse."""
    # Startup
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    redis = await get_redis()

    offers = OfferRepository()
    events = EventRepository()
    listings = ListingRepository()
    payments = HttpPaymentGateway.from_settings()
    pricing = HttpPricingEngine.from_settings()

    lifecycle = OfferLifecycleManager(
        async_session_factory,
        offers,
        events,
        payments,
        pricing,
        instant_match=RedisInstantMatchHook(redis),
    )
    settlement = SettlementEngine(
        async_session_factory,
        offers,
        listings,
        TransactionRepository(),
        payments,
        notifier=RedisMatchNotifier(redis),
    )
    app.state.services = ServiceContainer(
        lifecycle=lifecycle,
        settlement=settlement,
        bulk_intake=BulkIntakeService(async_session_factory, listings, events),
    )

    sweeper: BackgroundSweeper | None = None
    if settings.SWEEPER_ENABLED:
        sweeper = BackgroundSweeper(
            {"expiry": lifecycle.expire_sweep, "reconcile": settlement.reconcile_sweep},
            settings.EXPIRY_SWEEP_INTERVAL_SECONDS,
        )
        sweeper.start()

    yield

    # Shutdown
    if sweeper is not None:
        await sweeper.stop()
    await lifecycle.drain()
    await payments.aclose()
    await pricing.aclose()
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message, request)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    err = InternalError()
    return JSONResponse(
        status_code=err.http_status,
        content=error_response(err.code, err.message, request).model_dump(),
    )


app.include_router(offer_router, prefix="/api/v1")
app.include_router(settlement_router, prefix="/api/v1")
app.include_router(listing_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
