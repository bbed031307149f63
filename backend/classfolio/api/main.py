"""
FastAPI application entry point.

Main API server for the Classfolio classroom trading simulator.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from classfolio.core.config import settings
from classfolio.core.exceptions import (
    AlreadyInvested,
    AlreadyMember,
    BudgetExceeded,
    ClassfolioError,
    ClassInactive,
    ConfigurationError,
    InvalidArgument,
    InvalidInviteCode,
    LeaveNotAllowed,
    NotFound,
    UpstreamUnavailable,
)
from classfolio.core.logging import setup_logging
from classfolio.core.database import close_db
from classfolio.core.metrics import metrics
from classfolio.core.redis import close_redis, get_async_redis

# Setup logging
setup_logging()

ERROR_STATUS = {
    InvalidArgument: 400,
    LeaveNotAllowed: 403,
    NotFound: 404,
    AlreadyInvested: 409,
    AlreadyMember: 409,
    BudgetExceeded: 422,
    ClassInactive: 422,
    InvalidInviteCode: 422,
    ConfigurationError: 500,
    UpstreamUnavailable: 503,
}


def status_for(error: ClassfolioError) -> int:
    for error_type, status_code in ERROR_STATUS.items():
        if isinstance(error, error_type):
            return status_code
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.REALTIME_EVENTS_ENABLED:
        metrics.set_redis(await get_async_redis())
    yield
    await metrics.flush()
    metrics.set_redis(None)
    await close_db()
    await close_redis()


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Classroom stock-trading simulator - TSX quotes, single-shot investments, leaderboards",
    debug=settings.DEBUG,
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


@app.exception_handler(ClassfolioError)
async def classfolio_error_handler(request: Request, exc: ClassfolioError) -> JSONResponse:
    return JSONResponse(
        status_code=status_for(exc),
        content={"detail": exc.message, "code": exc.code},
    )


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.APP_NAME} API",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }


from classfolio.api.prices import router as prices_router
from classfolio.api.portfolio import router as portfolio_router
from classfolio.api.leaderboard import router as leaderboard_router
from classfolio.api.classes import router as classes_router
from classfolio.api.metrics import router as metrics_router

app.include_router(prices_router, prefix="/api/v1/prices", tags=["prices"])
app.include_router(portfolio_router, prefix="/api/v1/portfolio", tags=["portfolio"])
app.include_router(leaderboard_router, prefix="/api/v1/leaderboard", tags=["leaderboard"])
app.include_router(classes_router, prefix="/api/v1/classes", tags=["classes"])
app.include_router(metrics_router, prefix="/api/v1/metrics", tags=["metrics"])
