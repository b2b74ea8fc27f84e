"""
Main FastAPI application entry point.
"""
import logging
import os
import uuid
from contextlib import asynccontextmanager
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import text

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from compliance_platform.core.config import settings
from compliance_platform.core.database import engine, Base, SessionLocal
from compliance_platform.core.exceptions import ComplianceError
from compliance_platform.core.logging_config import setup_logging
from compliance_platform.api.v1.router import api_router
from compliance_platform.middleware.request_logging import RequestLoggingMiddleware
from compliance_platform.schemas.common import envelope, error_envelope

# Register every model with Base.metadata before create_all()
import compliance_platform.models  # noqa: F401

setup_logging()
logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


def run_migrations() -> None:
    """Apply Alembic migrations when an external database is configured."""
    if not os.getenv("DATABASE_URL"):
        logger.info("[MIGRATION] DATABASE_URL not set, skipping migrations (local dev mode)")
        return

    try:
        from alembic.config import Config
        from alembic import command

        logger.info("[MIGRATION] DATABASE_URL detected, running Alembic migrations...")
        command.upgrade(Config("alembic.ini"), "head")
        logger.info("[MIGRATION] Alembic migrations completed (or already up-to-date)")
    except Exception as e:
        trace_id = str(uuid.uuid4())
        logger.warning(
            f"[MIGRATION] [{trace_id}] Alembic migration failed: {e}. "
            "Falling back to create_all; check logs if you see database errors."
        )
        logger.debug(f"[MIGRATION] [{trace_id}] Migration error details:", exc_info=True)


def seed_catalog() -> None:
    if not settings.SEED_NIST_CSF:
        logger.info("NIST CSF seeding disabled")
        return
    try:
        from compliance_platform.services.nist_csf_seeder import ensure_nist_csf_seeded
        db = SessionLocal()
        try:
            ensure_nist_csf_seeded(db)
        finally:
            db.close()
    except Exception as e:
        logger.warning(f"Failed to seed NIST CSF catalog: {e}. Continuing without seed data.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    logger.info(f"Starting up {settings.APP_NAME} ({settings.APP_ENV})...")

    run_migrations()

    # Fallback for local dev without Alembic
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created/verified successfully")
    except Exception as e:
        logger.error(f"Failed to create database tables: {e}", exc_info=True)

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
            logger.info("Database connectivity verified")
        finally:
            db.close()
    except Exception as e:
        trace_id = str(uuid.uuid4())
        logger.error(f"[{trace_id}] Database connectivity test failed: {e}", exc_info=True)

    seed_catalog()

    yield
    logger.info(f"Shutting down {settings.APP_NAME}...")


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="NIST CSF assessments, STRIDE threat modeling and a scored risk register",
    version=APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    redirect_slashes=False,
)

app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Trace-ID", "Content-Disposition"],
)

app.include_router(api_router, prefix=settings.API_PREFIX)


def _trace_id(request: Request) -> str:
    return getattr(request.state, "trace_id", None) or str(uuid.uuid4())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTP errors in the response envelope."""
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(message),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Request validation failures are reported as 400 with the offending fields."""
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder(error_envelope("Validation failed", errors=errors)),
    )


@app.exception_handler(ComplianceError)
async def compliance_exception_handler(request: Request, exc: ComplianceError):
    return JSONResponse(status_code=exc.status_code, content=error_envelope(exc.message))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors with trace_id."""
    trace_id = _trace_id(request)
    logger.error(f"[{trace_id}] Unhandled exception: {type(exc).__name__}: {exc}", exc_info=True)

    if isinstance(exc, SQLAlchemyError):
        error_detail = "Database error: check DATABASE_URL / migrations"
    else:
        error_detail = str(exc)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_envelope(
            "An unexpected error occurred",
            error=error_detail if settings.DEBUG else None,
            trace_id=trace_id,
        ),
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return envelope({
        "name": settings.APP_NAME,
        "version": APP_VERSION,
        "docs": "/docs",
        "api": settings.API_PREFIX,
    })


@app.get("/health")
async def health_check():
    """
    Liveness check. Returns 200 without touching the database;
    use /health/db for readiness.
    """
    return {"status": "ok"}


@app.get("/health/db")
async def health_check_db():
    """Readiness check: 200 if the database answers, 503 if not."""
    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
            return {"status": "ok", "database": "connected"}
        finally:
            db.close()
    except Exception as e:
        trace_id = str(uuid.uuid4())
        logger.warning(f"[{trace_id}] Database health check failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": "disconnected", "trace_id": trace_id},
        )
