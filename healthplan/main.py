"""healthplan FastAPI Application."""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from healthplan.config import settings
from healthplan.core.errors import PlanningError
from healthplan.database import close_database, get_engine
from healthplan.logging_config import get_logger, setup_logging
from healthplan.middleware import CorrelationIdMiddleware
from healthplan.routers import adaptive_planning, daily_logs, health, plans, profiles
from healthplan.services.locks import AdvisoryLocks, KeyedLocks

setup_logging(
    log_format=settings.log_format,
    log_level=settings.log_level,
    service_name=settings.service_name,
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Migrations are applied by `alembic upgrade head` before uvicorn starts
    logger.info("healthplan API started", ai_provider=settings.ai_provider)

    yield

    logger.info("Shutting down healthplan API...")
    await close_database()
    logger.info("healthplan API shutdown complete")


app = FastAPI(
    title="healthplan API",
    description="Adaptive meal and training planning API",
    version="0.1.0",
    lifespan=lifespan,
)

# Lock registry for daily log writes and plan generation
app.state.locks = (
    AdvisoryLocks(get_engine) if settings.advisory_locks else KeyedLocks()
)

# Middleware (order matters: first added = last executed)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(health.router)
app.include_router(adaptive_planning.router)
app.include_router(daily_logs.router)
app.include_router(plans.router)
app.include_router(profiles.router)


@app.exception_handler(PlanningError)
async def planning_error_handler(request: Request, exc: PlanningError) -> JSONResponse:
    """Render domain errors with their own status and error code."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "Request failed with planning error",
        method=request.method,
        path=request.url.path,
        error_code=exc.error_code,
        status_code=exc.status_code,
        detail=exc.detail,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error_code": exc.error_code},
    )


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint."""
    return {
        "name": "healthplan API",
        "version": "0.1.0",
        "docs": "/docs",
    }
