"""FastAPI application factory.

Creates and configures the FastAPI application with all routers,
middleware, and exception handlers.

API Versioning:
    All API endpoints are versioned under /api/v1/ prefix.
    The health check endpoint remains unversioned at /health.
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import APIRouter, Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from keygate.infrastructure.persistence.sqlalchemy.models import Base
from keygate.presentation.api.dependencies import (
    ApiComponents,
    create_engine,
    create_session_maker,
    enforce_general_rate_limit,
)
from keygate.presentation.api.exception_handlers import setup_exception_handlers
from keygate.presentation.api.routers import admin_router, auth_router, hwid_router
from keygate.presentation.api.schemas import HealthResponse
from keygate_audit import SYSTEM_ACTOR, AuditAction, AuditLogger
from keygate_audit.infrastructure.persistence.sqlalchemy import (
    AuditEntryRepositorySQLAlchemy,
)
from keygate_config import Settings, get_settings


def _configure_logging(settings: Settings) -> None:
    """Configure application logging.

    Sets up logging for the keygate packages with:
    - Console output with timestamps and module names
    - Configurable log level for keygate modules (from the app's settings)
    - WARNING level for noisy third-party libraries
    """
    log_level_str = settings.log_level.upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    log_format = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt=date_format,
        stream=sys.stdout,
        force=True,  # Override any existing config
    )

    for package in ("keygate", "keygate_identity", "keygate_licensing", "keygate_audit"):
        logging.getLogger(package).setLevel(log_level)

    # Quiet down noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


logger = logging.getLogger(__name__)

# API version info
API_VERSION = "1.0.0"
API_V1_PREFIX = "/api/v1"

# OpenAPI tags metadata for documentation
OPENAPI_TAGS = [
    {
        "name": "Authentication",
        "description": """User authentication and session management.

**Registration & Login:**
- Register accounts with email/password
- Login to obtain a signed access token
- Validate and revoke tokens

**Security:**
- Passwords are hashed with bcrypt
- Account and client-address lockout after repeated failures
- Per-address rate limits on authentication routes
""",
    },
    {
        "name": "Hardware ID",
        "description": """Binding subscriptions to a single device.

- Derive a fingerprint from client hardware signals
- Bind a fingerprint to a subscription (locked after redemption)
- Verify that a request comes from the bound device
""",
    },
    {
        "name": "Admin",
        "description": """Administrative operations.

- Query the audit trail
- Change roles, deactivate and reactivate users
- Lift account lockouts and hardware bindings
""",
    },
    {
        "name": "Health",
        "description": "Service health check.",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Uses the engine that ``create_app`` built from the app's own settings.
    """
    logger.info("Starting Keygate API v%s...", API_VERSION)
    engine: AsyncEngine = app.state.engine
    await _init_database_schema(engine)
    await _record_system_event(app.state.session_maker, AuditAction.SYSTEM_STARTUP)
    yield

    logger.info("Shutting down Keygate API...")
    await _record_system_event(app.state.session_maker, AuditAction.SYSTEM_SHUTDOWN)
    await engine.dispose()
    logger.info("Database connections closed")


async def _init_database_schema(engine: AsyncEngine) -> None:
    """Initialize database schema (if not existent) and verify connectivity."""
    logger.info("Initializing database schema...")

    # Ensure data directory exists for SQLite
    database = engine.url.database
    if engine.url.get_backend_name() == "sqlite" and database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except ConnectionRefusedError:
        logger.critical("Could not connect to the database.")
        raise SystemExit(1) from None

    logger.info("Database schema initialized successfully")


async def _record_system_event(
    session_maker: async_sessionmaker[AsyncSession],
    action: AuditAction,
) -> None:
    async with session_maker() as session:
        audit = AuditLogger(AuditEntryRepositorySQLAlchemy(session))
        await audit.record(
            actor=SYSTEM_ACTOR,
            action=action,
            detail={"version": API_VERSION},
        )
        await session.commit()


def create_v1_router() -> APIRouter:
    """Create the v1 API router with all endpoints.

    Every router runs behind the general per-address rate limit.
    """
    v1_router = APIRouter(dependencies=[Depends(enforce_general_rate_limit)])

    v1_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])
    v1_router.include_router(hwid_router, prefix="/hwid", tags=["Hardware ID"])
    v1_router.include_router(admin_router, prefix="/admin", tags=["Admin"])

    return v1_router


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Parameters
    ----------
    settings
        Settings for this app: components, database engine and log level
        all come from them. Defaults to the environment's settings.

    Returns
    -------
    Configured FastAPI application instance.

    Raises
    ------
    ConfigError
        In production, when the configuration is unsafe
    """
    if settings is None:
        settings = get_settings()

    _configure_logging(settings)

    for warning in settings.validate_for_startup():
        logger.warning("Configuration warning: %s", warning)

    app = FastAPI(
        title=f"{settings.app_name} API",
        description=(
            "Authentication, authorization and **hardware-bound entitlements** "
            "for a license key platform."
        ),
        version=API_VERSION,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        openapi_tags=OPENAPI_TAGS,
    )
    app.state.components = ApiComponents.from_settings(settings)
    app.state.engine = create_engine(settings)
    app.state.session_maker = create_session_maker(app.state.engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api_cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register domain exception handlers for consistent error responses
    setup_exception_handlers(app)

    app.include_router(create_v1_router(), prefix=API_V1_PREFIX)

    # Health check endpoint (unversioned - always accessible)
    @app.get("/health", tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint.

        Unversioned for load balancer/monitoring compatibility.
        """
        return HealthResponse(
            status="healthy",
            version=API_VERSION,
            api_versions=["v1"],
        )

    @app.get("/", tags=["Health"])
    async def root() -> dict:
        """API root endpoint with version information."""
        return {
            "name": f"{settings.app_name} API",
            "version": API_VERSION,
            "docs": "/docs" if settings.debug else None,
            "api_base": API_V1_PREFIX,
            "endpoints": {
                "health": "/health",
                "auth": f"{API_V1_PREFIX}/auth",
                "hwid": f"{API_V1_PREFIX}/hwid",
                "admin": f"{API_V1_PREFIX}/admin",
            },
        }

    return app


# Application instance for uvicorn
app = create_app()
