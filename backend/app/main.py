"""
FastAPI application entry point.
Sets up the API with lifespan events, middleware and domain error mapping.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from app.config import settings
from app.database import init_db
from app.api.router import api_router
from app.auth.firebase import initialize_firebase
from app.middleware.metrics_middleware import MetricsMiddleware
from app.services.exceptions import (
    AutoCommentsAlreadyActive,
    ContentAccessDenied,
    ContentNotFound,
    CreditValidationError,
    DailyLimitReached,
    GenerationError,
    InsufficientCredits,
    InvalidTransition,
    PlanRequired,
    StoreUnavailable,
)
from app.utils.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup/shutdown events.
    - Startup: Initialize database and Firebase Admin SDK
    """
    # Configure structured JSON logging
    configure_logging('tipote-api', settings.log_level)

    await init_db()

    # Skip if Firebase config not provided (for local dev without Firebase)
    if settings.firebase_project_id:
        try:
            initialize_firebase()
        except Exception as e:
            if settings.environment == "production":
                raise
            logger.warning(f"Firebase initialization failed: {e}", extra={"event": "firebase_init_failed"})

    yield


# Create FastAPI app
app = FastAPI(
    title="Tipote API",
    description="Credit ledger and credit-gated AI features for Tipote",
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Metrics middleware (must be after CORS to track all requests)
app.add_middleware(MetricsMiddleware)

app.include_router(api_router, prefix="/api")


def _error(status_code: int, code: str, message: str, **fields) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"ok": False, "error": code, "message": message, **fields},
    )


@app.exception_handler(InsufficientCredits)
async def insufficient_credits_handler(request: Request, exc: InsufficientCredits):
    return _error(
        402,
        "INSUFFICIENT_CREDITS",
        str(exc),
        ledger=exc.ledger,
        credits_needed=float(exc.required),
        credits_remaining=float(exc.available),
        shortfall=float(exc.shortfall),
    )


@app.exception_handler(CreditValidationError)
async def validation_error_handler(request: Request, exc: CreditValidationError):
    return _error(400, "VALIDATION_ERROR", str(exc))


@app.exception_handler(PlanRequired)
async def plan_required_handler(request: Request, exc: PlanRequired):
    return _error(403, "PLAN_REQUIRED", str(exc), feature=exc.feature, plan=exc.plan)


@app.exception_handler(ContentAccessDenied)
async def access_denied_handler(request: Request, exc: ContentAccessDenied):
    return _error(403, "FORBIDDEN", str(exc))


@app.exception_handler(ContentNotFound)
async def not_found_handler(request: Request, exc: ContentNotFound):
    return _error(404, "NOT_FOUND", str(exc))


@app.exception_handler(AutoCommentsAlreadyActive)
async def already_active_handler(request: Request, exc: AutoCommentsAlreadyActive):
    return _error(409, "ALREADY_ACTIVE", str(exc))


@app.exception_handler(InvalidTransition)
async def invalid_transition_handler(request: Request, exc: InvalidTransition):
    return _error(409, "INVALID_TRANSITION", str(exc))


@app.exception_handler(DailyLimitReached)
async def daily_limit_handler(request: Request, exc: DailyLimitReached):
    return _error(
        429, "DAILY_LIMIT_REACHED", str(exc),
        platform=exc.platform, count=exc.count, limit=exc.limit,
    )


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    # Driver details stay in the logs
    return _error(503, "STORE_UNAVAILABLE", "Credit store temporarily unavailable")


@app.exception_handler(GenerationError)
async def generation_error_handler(request: Request, exc: GenerationError):
    return _error(502, "GENERATION_FAILED", str(exc))


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Tipote API",
        "version": "0.1.0",
        "environment": settings.environment
    }


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )
