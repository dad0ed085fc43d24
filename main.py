# main.py
# Role: Application entry point for LocalFinTrack.
#       Builds the FastAPI app, owns the command router's lifetime (storage handle),
#       mounts static assets, and registers all route modules.

"""
Main FastAPI app for LocalFinTrack.

Here we only:
- configure logging
- create the command router (engine) at startup and release it at shutdown
- create DB tables and the bootstrap superadmin
- set up the session cookie and static files
- include route modules
"""

import os
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

from db import init_db
from app.log import configure_logging
from app.services.commands import CommandRouter
from app.settings import Settings, get_settings
from app.routes_api import router as api_router
from app.routes_admin import router as admin_router
from app.routes_auth import router as auth_router
from app.routes_categories import router as categories_router
from app.routes_dashboard import router as dashboard_router
from app.routes_reports import router as reports_router
from app.routes_settings import router as settings_router
from app.routes_transactions import router as transactions_router

logger = structlog.get_logger(__name__)

STATIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "app", "static")


def create_app(settings: Settings | None = None, command_router: CommandRouter | None = None) -> FastAPI:
    """
    Build the app.

    Pass `command_router` to run against an existing store (tests do);
    otherwise one is created from settings at startup.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_json)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = command_router is None
        router = command_router or CommandRouter(settings=settings)

        init_db(router.engine)
        app.state.command_router = router
        logger.info("app_started", database_url=settings.database_url)
        try:
            yield
        finally:
            if owned:
                router.close()
            logger.info("app_stopped")

    # FastAPI application instance
    app = FastAPI(title="LocalFinTrack", lifespan=lifespan)

    # Client-held session (user snapshot, expiry, theme) in a signed cookie
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        max_age=settings.session_days * 24 * 60 * 60,
        same_site="strict",
    )

    # Serve static files (CSS) from /static
    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    # -------------------------------------------------------------------
    # Include routers
    # -------------------------------------------------------------------

    # Login / logout / theme
    app.include_router(auth_router)

    # Root redirect + dashboard (stats, chart)
    app.include_router(dashboard_router)

    # Panels
    app.include_router(transactions_router)
    app.include_router(categories_router)
    app.include_router(reports_router)
    app.include_router(admin_router)
    app.include_router(settings_router)

    # JSON command dispatch
    app.include_router(api_router)

    return app


app = create_app()
