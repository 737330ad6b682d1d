"""
Learning Profile Engine - FastAPI Application
Main application entry point with middleware, error mapping and route configuration
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from profile_engine.api.v1 import api_router
from profile_engine.core.config import settings
from profile_engine.core.database import init_db
from profile_engine.core.exceptions import (
    AmbiguousSubjectError,
    PersistenceConflict,
    ProfileEngineError,
    ProfileNotFoundError,
    ScoringVersionMismatchError,
    ValidationError,
)
from profile_engine.engine.tables import SCORING_TABLES

logger = logging.getLogger(__name__)

# Most specific first
ERROR_STATUS = (
    (ProfileNotFoundError, 404),
    (ValidationError, 400),
    (AmbiguousSubjectError, 409),
    (ScoringVersionMismatchError, 409),
    (PersistenceConflict, 503),
)


def status_for(exc: ProfileEngineError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    await init_db()
    print("[Startup] Database tables initialized")
    print(f"[Startup] Scoring versions loaded: {', '.join(sorted(SCORING_TABLES))} "
          f"(default {settings.DEFAULT_SCORING_VERSION})")
    if settings.REMOTE_CONSOLIDATION_URL:
        print("[Startup] Remote consolidation enabled")
    else:
        print("[Startup] Remote consolidation disabled, using local consolidator")

    yield

    # Shutdown
    pass


async def profile_engine_error_handler(request: Request, exc: ProfileEngineError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.warning("%s on %s %s: %s", exc.kind, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    return JSONResponse(status_code=400, content=ValidationError(problems).to_dict())


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Consolidates parent and teacher assessments into learning profiles",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Error taxonomy -> HTTP
    app.add_exception_handler(ProfileEngineError, profile_engine_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)

    # Include API routes
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    # Health check endpoint
    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
        }

    @app.get(f"{settings.API_V1_PREFIX}/health", tags=["Health"])
    async def api_v1_health_check():
        """API V1 Health check."""
        return {
            "status": "healthy",
            "version": settings.APP_VERSION,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "profile_engine.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
