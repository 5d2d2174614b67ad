from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError

from luckycoins.infra.config.settings import settings
from luckycoins.core.logger.logger import logger
from luckycoins.api.router import health
from luckycoins.api.controller.session import session_controller, admin_controller
from luckycoins.api.middleware.logging.request_logging import RequestLoggingMiddleware
from luckycoins.core.dependencies import PortalContainer, close_admin_store, create_admin_store
from luckycoins.core.exceptions.base import PortalError
from luckycoins.core.exceptions.handler import ServiceError, GlobalErrorHandler


def create_app(container: Optional[PortalContainer] = None) -> FastAPI:
    """Build the portal API. Tests pass a prebuilt container; otherwise the
    lifespan builds one from settings."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store = None
        portal = container
        if portal is None:
            store = await create_admin_store()
            portal = PortalContainer(store)
        app.state.container = portal
        await portal.start()
        logger.info("LuckyCoins portal ready", extra={"version": settings.APP_VERSION})
        try:
            yield
        finally:
            await portal.stop()
            if store is not None:
                await close_admin_store(store)

    app = FastAPI(
        title=settings.APP_NAME,
        description="""
LuckyCoins portal session API.

## Services
- **Session**: identity login, profile bootstrap state, first-time profile setup
- **Admin**: admin credential check and 8 hour admin sessions
- **Guards**: navigation intents for user and admin views
        """,
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=600,  # 10 minutes
    )

    # Request logging middleware
    app.add_middleware(RequestLoggingMiddleware)

    # Centralized error handlers
    app.add_exception_handler(ServiceError, GlobalErrorHandler.service_error_handler)
    app.add_exception_handler(PortalError, GlobalErrorHandler.portal_error_handler)
    app.add_exception_handler(HTTPException, GlobalErrorHandler.http_exception_handler)
    app.add_exception_handler(RequestValidationError, GlobalErrorHandler.validation_error_handler)
    app.add_exception_handler(Exception, GlobalErrorHandler.general_exception_handler)

    # Include routers
    app.include_router(health.router)
    app.include_router(session_controller.router)
    app.include_router(admin_controller.router)

    return app
