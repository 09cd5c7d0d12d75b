import logging
import time
from datetime import datetime
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import get_settings, Settings
from .core.logging import init_logging, request_context_middleware
from .core import errors
from .routers import health, prices, swap
from .services.admin import AdminGate
from .services.price_store import (
    PriceStore,
    build_default_document,
    load_default_fiat_spec,
)
from .services.rates.base import RateProvider
from .services.rates.cache_service import RateCache
from .services.rates.providers import make_rate_provider
from .services.swap_relay import SwapQuoteRelay


def create_app(
    settings_override: Optional[Settings] = None,
    *,
    rate_provider: Optional[RateProvider] = None,
    clock: Optional[Callable[[], datetime]] = None,
    swap_relay: Optional[SwapQuoteRelay] = None,
) -> FastAPI:
    """Application factory.

    settings_override: pass an already constructed Settings instance for tests
    to isolate environment (e.g., temp data dir). Falls back to cached get_settings().
    rate_provider / clock / swap_relay replace the collaborators built from settings.
    """
    settings = settings_override or get_settings()
    if settings.prices_path is None:
        settings.init_post_load()
    # Initialize logging early
    init_logging(debug=settings.debug)
    logger = logging.getLogger("price_proxy")

    rate_cache = RateCache(
        rate_provider or make_rate_provider(settings),
        symbol=settings.rate_symbol,
        seed_rate=settings.seed_rate,
        ttl_seconds=settings.rates_cache_ttl_seconds,
        clock=clock,
    )
    # Defaults are converted once, at the seed rate, and never recomputed
    default_document = build_default_document(
        load_default_fiat_spec(settings.default_prices_file),
        settings.seed_rate,
        settings.nova_price_usd,
    )
    price_store = PriceStore(settings.prices_path, default_document)  # type: ignore[arg-type]
    try:
        price_store.ensure_initialized()
    except errors.PersistenceFailure:
        # Reads fall back to defaults; writes will keep reporting the failure
        logger.exception("could not create price document on startup")

    app = FastAPI(
        title=settings.app_name, debug=settings.debug, version=settings.version
    )
    app.state.settings = settings
    app.state.rate_cache = rate_cache
    app.state.price_store = price_store
    app.state.admin_gate = AdminGate(settings.admin_secret)
    app.state.swap_relay = swap_relay or SwapQuoteRelay(
        settings.swap_rpc_url,
        settings.swap_quoter_address,
        default_fee=settings.swap_default_fee,
        timeout=settings.http_timeout_seconds,
    )
    app.state.started_at = time.monotonic()
    if not app.state.admin_gate.enabled:
        logger.warning("ADMIN_SECRET not set; price mutations are disabled")

    # Middleware (request id / structured logging)
    app.middleware("http")(request_context_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Error handlers
    app.add_exception_handler(errors.PriceProxyError, errors.price_proxy_error_handler)
    app.add_exception_handler(StarletteHTTPException, errors.not_found_handler)
    app.add_exception_handler(RequestValidationError, errors.validation_error_handler)
    app.add_exception_handler(Exception, errors.server_error_handler)

    # Routers
    app.include_router(health.router)
    app.include_router(prices.router)
    app.include_router(swap.router)

    @app.get("/")
    async def root():
        return {"message": settings.app_name, "version": settings.version}

    return app
