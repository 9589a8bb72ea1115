"""REST API module for the marketplace.

This module provides HTTP endpoints for:
- Signing up and looking up users
- Browsing, creating and managing listings
- Placing orders and moving them through fulfilment
- Seller profiles and seller dashboards
- Reviews, reports and verification requests
- Admin moderation and analytics
- System health monitoring

Every error response has the body `{"error": "<message>"}`.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from auth import IdentityProvider
from config import settings_conf
from store import RecordStore
from .dependencies import open_store

logger = logging.getLogger(__name__)

API_TITLE = "Local Marketplace API"
API_VERSION = "1.0.0"

def _validation_message(exc: RequestValidationError) -> str:
    """First validation problem as `field: message`."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = '.'.join(str(part) for part in first.get('loc', ()) if part != 'body')
    return f"{field}: {first.get('msg')}" if field else first.get('msg', "Invalid request")

def create_app(
    store: Optional[RecordStore] = None,
    identity_provider: Optional[IdentityProvider] = None
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        store: Record store to use; opened from settings on startup when omitted
        identity_provider: Identity provider client; built from settings when omitted

    Returns:
        The configured application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open what was not injected, and close only that on shutdown."""
        logger.info("Initializing API...")
        owned_store = None
        owned_provider = None

        if app.state.store is None:
            owned_store = app.state.store = await open_store(settings_conf)
        if app.state.identity_provider is None:
            owned_provider = app.state.identity_provider = IdentityProvider(
                settings_conf['auth_url'],
                settings_conf['auth_service_key'],
                settings_conf['auth_timeout']
            )

        yield

        logger.info("Shutting down API...")
        if owned_provider:
            owned_provider.close()
        if owned_store:
            await owned_store.close()

    app = FastAPI(
        title=API_TITLE,
        description="REST API for a local marketplace of buyers, sellers and admins",
        version=API_VERSION,
        lifespan=lifespan
    )
    app.state.store = store
    app.state.identity_provider = identity_provider

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, 'headers', None)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": _validation_message(exc)}
        )

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"}
        )

    @app.get("/")
    async def root():
        return {
            "name": API_TITLE,
            "version": API_VERSION,
            "status": "running"
        }

    # Import and include all routers
    from .admin import router as admin_router
    from .auth import router as auth_router
    from .listings import router as listings_router, categories_router, management_router
    from .orders import router as orders_router, buyer_router
    from .reports import router as reports_router
    from .reviews import router as reviews_router
    from .seller import router as seller_router
    from .system import router as system_router
    from .users import router as users_router
    from .verification import router as verification_router

    app.include_router(system_router)
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(categories_router)
    app.include_router(listings_router)
    app.include_router(management_router)
    app.include_router(seller_router)
    app.include_router(orders_router)
    app.include_router(buyer_router)
    app.include_router(reviews_router)
    app.include_router(reports_router)
    app.include_router(verification_router)
    app.include_router(admin_router)

    return app

app = create_app()
