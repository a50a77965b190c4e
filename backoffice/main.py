"""HR Back-office — FastAPI Application Factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from backoffice.announcements.router import router as announcements_router
from backoffice.assets.router import router as assets_router
from backoffice.attendance.router import router as attendance_router
from backoffice.auth.router import router as auth_router
from backoffice.common.exceptions import register_exception_handlers
from backoffice.common.rate_limit import limiter
from backoffice.config import settings
from backoffice.csv_io.router import router as csv_router
from backoffice.database import engine
from backoffice.leave.router import router as leave_router
from backoffice.notifications.router import router as notifications_router
from backoffice.payroll.router import router as payroll_router
from backoffice.saas.router import router as saas_router
from backoffice.tenants.router import router as tenants_router
from backoffice.users.router import router as users_router
from backoffice.workflow.router import router as workflow_router

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(level=settings.LOG_LEVEL.upper(), format=LOG_FORMAT)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    logger.info("Back-office API starting (environment=%s)", settings.ENVIRONMENT)
    yield
    await engine.dispose()
    logger.info("Back-office API stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging()

    app = FastAPI(
        title="HR Back-office",
        description="Multi-tenant HR and back-office API: people, time, leave, assets, SaaS, approvals",
        version="1.0.0",
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    # Exception handlers (RFC 7807)
    register_exception_handlers(app)

    # Rate limiting (slowapi)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check (no auth)
    @app.get("/api/v1/health", tags=["system"])
    async def health_check():
        return {
            "status": "healthy",
            "version": "1.0.0",
            "environment": settings.ENVIRONMENT,
        }

    # Register routers
    app.include_router(auth_router, prefix="/api/v1/auth", tags=["auth"])
    app.include_router(tenants_router, prefix="/api/v1/tenants", tags=["tenants"])
    app.include_router(users_router, prefix="/api/v1/users", tags=["users"])
    app.include_router(attendance_router, prefix="/api/v1/attendance", tags=["attendance"])
    app.include_router(leave_router, prefix="/api/v1/leave", tags=["leave"])
    app.include_router(announcements_router, prefix="/api/v1/announcements", tags=["announcements"])
    app.include_router(assets_router, prefix="/api/v1/assets", tags=["assets"])
    app.include_router(saas_router, prefix="/api/v1/saas", tags=["saas"])
    app.include_router(workflow_router, prefix="/api/v1/workflow", tags=["workflow"])
    app.include_router(notifications_router, prefix="/api/v1/notifications", tags=["notifications"])
    app.include_router(payroll_router, prefix="/api/v1/payroll", tags=["payroll"])
    app.include_router(csv_router, prefix="/api/v1/csv", tags=["csv"])

    return app


app = create_app()
