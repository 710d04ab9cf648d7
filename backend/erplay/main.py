from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from starlette.exceptions import HTTPException as StarletteHTTPException

from erplay.core.config import settings
from erplay.core.database import get_session_local, init_db, close_db
from erplay.core.exceptions import ERPlayError, error_response
from erplay.core.logging_config import logger
from erplay.core.middleware import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    RequestSizeLimitMiddleware,
)
from erplay.core.rate_limiter import limiter, rate_limit_exceeded_handler
from erplay.api.v1.router import api_router
from slowapi.errors import RateLimitExceeded
import erplay.models  # noqa: F401  register models on the metadata


DEFAULT_JWT_SECRETS = {"change-me-access", "change-me-refresh", "change-me-reset"}

# Multipart boundaries and text fields around the image
FORM_OVERHEAD = 1024 * 1024


async def validate_critical_config():
    """Validate critical configuration at startup"""
    errors = []
    warnings = []

    if not settings.DATABASE_URL:
        errors.append("DATABASE_URL is not set")

    secrets = {settings.JWT_SECRET_KEY, settings.JWT_REFRESH_SECRET_KEY, settings.JWT_RESET_SECRET_KEY}
    if secrets & DEFAULT_JWT_SECRETS:
        if settings.ENVIRONMENT == "production":
            errors.append("JWT secrets are using default values")
        else:
            warnings.append("JWT secrets are using default values")

    if not (settings.SMTP_HOST and settings.SMTP_USER and settings.SMTP_PASSWORD):
        warnings.append("SMTP not configured - notification emails will not be sent")

    if errors:
        for err in errors:
            logger.critical(f"[Startup] CRITICAL: {err}")
        raise RuntimeError(f"Missing critical configuration: {', '.join(errors)}")

    for warn in warnings:
        logger.warning(f"[Startup] WARNING: {warn}")

    logger.info("[Startup] Critical configuration validated")
    return True


async def ensure_database_ready():
    """Create the tables when migrations have not been applied"""
    from sqlalchemy import text
    from sqlalchemy.exc import SQLAlchemyError

    try:
        session_factory = get_session_local()
        async with session_factory() as session:
            try:
                await session.execute(text("SELECT 1 FROM users LIMIT 1"))
                logger.info("[Startup] Database tables already exist")
                return True
            except SQLAlchemyError:
                logger.warning("[Startup] Database tables not found, creating...")

        await init_db()

        logger.info("[Startup] Database tables created successfully")
        return True

    except (SQLAlchemyError, OSError) as e:
        logger.error(f"[Startup] Failed to ensure database ready: {e}")
        return False


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown"""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.APP_NAME} API...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info("=" * 60)

    await validate_critical_config()

    if not settings.TESTING:
        db_ready = await ensure_database_ready()
        if not db_ready:
            logger.warning("[Startup] Database not ready - some features may fail")

    settings.DIAGRAMS_UPLOAD_PATH.mkdir(parents=True, exist_ok=True)

    yield

    logger.info(f"Shutting down {settings.APP_NAME} API...")
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    description="Entity-relationship diagram quizzes with supervised question review",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    redirect_slashes=False
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Order matters: last added runs first
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestSizeLimitMiddleware, max_size=settings.MAX_UPLOAD_SIZE + FORM_OVERHEAD)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Response-Time"],
)


# Exception handlers
@app.exception_handler(ERPlayError)
async def erplay_exception_handler(request: Request, exc: ERPlayError):
    if exc.status_code >= 500:
        logger.log_error_with_context(exc, context=request.url.path)
    return JSONResponse(status_code=exc.status_code, content=error_response(exc))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    messages = [str(err.get("msg", "")).removeprefix("Value error, ") for err in exc.errors()]
    return JSONResponse(
        status_code=400,
        content={"error": "; ".join(m for m in messages if m) or "Invalid request"},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/health", tags=["Health"])
async def health_check():
    return {"ok": True}


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint"""
    return {
        "message": f"{settings.APP_NAME} API",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health",
    }


settings.DIAGRAMS_UPLOAD_PATH.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_PATH), name="uploads")

app.include_router(api_router, prefix=settings.API_PREFIX)


def run():
    """Console entry point"""
    import uvicorn
    uvicorn.run(
        "erplay.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.DEBUG
    )


if __name__ == "__main__":
    run()
