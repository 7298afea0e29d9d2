from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from agrocert.config import settings
from agrocert.api.v1.router import api_router
from agrocert.core.exceptions import (
    DuplicateAggregate,
    FichaError,
    NotFound,
    StoreError,
    ValidationFailed,
)
from agrocert.database import init_db, async_session_factory


logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
    - Create missing tables (production schema is managed by Alembic)
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    await init_db()

    yield

    logger.info("Shutting down...")


OPENAPI_TAGS = [
    {
        "name": "Fichas de Inspeccion",
        "description": "Create, replace, load and delete inspection records with all of their sections",
    },
    {
        "name": "Health",
        "description": "Service and database health",
    },
]


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Inspection record engine for organic certification of producers.",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=OPENAPI_TAGS,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)


# ==================== Domain error handlers ====================

def _error_response(request: Request, exc: FichaError, status_code: int) -> JSONResponse:
    content = {
        "error": exc.message,
        "type": type(exc).__name__,
        "path": str(request.url.path),
        "method": request.method,
        "details": exc.details,
    }
    if isinstance(exc, ValidationFailed):
        content["errors"] = exc.errors
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(ValidationFailed)
async def validation_failed_handler(request: Request, exc: ValidationFailed):
    return _error_response(request, exc, status.HTTP_422_UNPROCESSABLE_ENTITY)


@app.exception_handler(DuplicateAggregate)
async def duplicate_aggregate_handler(request: Request, exc: DuplicateAggregate):
    return _error_response(request, exc, status.HTTP_409_CONFLICT)


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return _error_response(request, exc, status.HTTP_404_NOT_FOUND)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    return _error_response(request, exc, status.HTTP_503_SERVICE_UNAVAILABLE)


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint with database validation."""
    health_status = {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "database": "unknown"
        }
    }

    # Check database connectivity
    try:
        async with async_session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
            health_status["checks"]["database"] = "connected"
    except SQLAlchemyError as e:
        logger.error(f"Health check database error: {e}")
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = f"error: {str(e)}"

    # Return 503 if unhealthy
    if health_status["status"] == "unhealthy":
        return JSONResponse(status_code=503, content=health_status)

    return health_status


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "redoc": "/redoc",
    }
