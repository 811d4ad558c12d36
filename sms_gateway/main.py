from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from dotenv import load_dotenv
from typing import Optional
import logging

# Load environment variables as early as possible
load_dotenv()

from .config import Settings, settings as default_settings
from .dependencies import Container, build_container
from .middleware import RateLimitMiddleware, SecurityMiddleware, LoggingMiddleware, ErrorHandlingMiddleware, RequestSizeLimitMiddleware
from .exceptions import http_exception_handler, validation_exception_handler
from .routers import auth_router, sms_router
from .schemas import HealthResponse
from .utils import utc_now

# Configure logging
logging.basicConfig(
    level=getattr(logging, default_settings.LOG_LEVEL.upper(), logging.INFO),
    format=default_settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    container: Container = app.state.container
    logger.info("Starting SMS OTP gateway...")
    app.state.db_init_ok = True
    app.state.db_init_error = None
    try:
        await container.startup()
        logger.info("Database initialized successfully")
    except Exception as e:
        # Do not crash the app; report via health endpoint
        app.state.db_init_ok = False
        app.state.db_init_error = str(e)
        logger.exception("Database initialization failed")
    config = await container.config_manager.load_config()
    logger.info(f"SMS gateway ready (mode={config.mode}, provider={config.provider})")
    yield
    # Shutdown
    logger.info("Shutting down SMS OTP gateway...")
    await container.shutdown()


def create_app(settings: Optional[Settings] = None, container: Optional[Container] = None) -> FastAPI:
    settings = settings or (container.settings if container else default_settings)
    container = container or build_container(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
        docs_url=("/docs" if settings.DOCS_ENABLED else None),
        redoc_url=("/redoc" if settings.DOCS_ENABLED else None),
        openapi_url=("/openapi.json" if settings.DOCS_ENABLED else None)
    )
    app.state.container = container

    # Add custom exception handlers
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Add middleware (last added runs first)
    app.add_middleware(ErrorHandlingMiddleware, debug=settings.DEBUG)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(SecurityMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        limiter=container.ip_rate_limiter,
        max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_SEC,
    )
    app.add_middleware(RequestSizeLimitMiddleware, max_body_size=settings.MAX_BODY_SIZE)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_origin_regex=settings.ALLOWED_ORIGIN_REGEX or None,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(sms_router.router)
    app.include_router(auth_router.router)

    # Health check endpoint
    @app.get("/health", response_model=HealthResponse)
    def health_check():
        config = container.config_manager.snapshot
        return {
            "status": "healthy" if getattr(app.state, "db_init_ok", True) else "degraded",
            "service": settings.APP_NAME,
            "mode": config.mode,
            "provider": config.provider,
            "enabledSend": config.send_enabled,
            "enabledVerify": config.verify_enabled,
            "auditFailures": getattr(container.audit_logger, "failures", 0),
            "timestamp": utc_now().isoformat(),
        }

    return app


app = create_app()


# ------------------------
# Run with correct PORT in local/production
# ------------------------
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "sms_gateway.main:app",
        host=default_settings.HOST,
        port=default_settings.PORT,
        workers=1,  # rate-limit counters and config snapshot live in this process
        log_level=default_settings.LOG_LEVEL.lower()
    )
