"""
FastAPI Application Entry Point
Chart sharing and access governance service
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from chartshare.core.config import settings
from chartshare.core.logging import setup_logging, get_logger
from chartshare.core.exceptions import AppException, RateLimitException
from chartshare.api.v1 import router as api_v1_router
from chartshare.models.common import HealthResponse

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Open the store on startup and release it on shutdown"""
    from chartshare.db.session import init_db, close_db

    logger.info(f"Starting {settings.APP_NAME} {settings.APP_VERSION} ({settings.ENVIRONMENT})")
    logger.info(
        f"Bootstrap admins: {len(settings.admin_user_ids)}, "
        f"rate limiting: {'on' if settings.RATE_LIMIT_ENABLED else 'off'}"
    )
    if settings.ALLOW_ANONYMOUS:
        logger.warning("ALLOW_ANONYMOUS is enabled; every request runs as the development user")

    try:
        await init_db()
    except Exception as e:
        # Startup continues; /health reports the database as unhealthy
        logger.error(f"Failed to initialize database: {e}")

    yield

    logger.info("Shutting down...")
    try:
        await close_db()
    except Exception as e:
        logger.error(f"Error during shutdown: {e}")


app = FastAPI(
    title=settings.APP_NAME,
    description="Role resolution, sharing, access requests and share links for charts",
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["Retry-After"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)


def error_body(
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    timestamp: Optional[str] = None,
) -> Dict[str, Any]:
    """The {"error": {...}} envelope shared by every error response"""
    return {"error": {"code": code, "message": message, "details": details or {}, "timestamp": timestamp}}


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Render application exceptions; 429s carry Retry-After"""
    headers = None
    if isinstance(exc, RateLimitException) and exc.retry_after is not None:
        headers = {"Retry-After": str(exc.retry_after)}

    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.message, exc.details, exc.timestamp),
        headers=headers,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes and disallowed methods"""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail).lower().replace(" ", "_"), str(exc.detail)),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and query parameters are 400s"""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(
            "validation_error",
            "Invalid request parameters",
            {"errors": jsonable_errors(exc)},
        ),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unexpected is a 500 without internals in the body"""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("internal_error", "Internal server error"),
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors without the raw input or exception objects"""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/", tags=["Root"])
async def root():
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "docs_url": "/docs" if settings.DEBUG else None,
    }


@app.get("/health", tags=["Health"], response_model=HealthResponse)
async def health_check():
    """Liveness plus a trivial database query"""
    from chartshare.db.session import check_database

    database_ok = await check_database()
    return HealthResponse(
        status="healthy" if database_ok else "degraded",
        version=settings.APP_VERSION,
        timestamp=datetime.utcnow().isoformat(),
        services={"database": "healthy" if database_ok else "unhealthy"},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "chartshare.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info",
    )
