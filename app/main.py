"""Main FastAPI application."""
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import inspect

from app.core.config import settings
from app.core.logging import setup_logging, get_logger
from app.core.database import engine
from app.core.gateway import GatewayError
from app.api.v1 import router as v1_router
from app.models import Tenant, Plan, PaymentRecord  # noqa: F401  Register models with Base
from app.services.tenant_store import DuplicatePayment, TenantNotFound, TenantUpdateConflict
from app.subscription.errors import SubscriptionError


# Setup logging
setup_logging(settings.DEBUG)
logger = get_logger(__name__)

REQUIRED_TABLES = ("tenants", "plans", "payment_records")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(f"Starting {settings.APP_NAME}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    async with engine.connect() as conn:
        existing = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
    missing = [t for t in REQUIRED_TABLES if t not in existing]
    if missing:
        logger.error(f"Missing tables: {missing}. Run 'alembic upgrade head' before serving traffic.")
    else:
        logger.info("Database schema check passed.")

    yield
    logger.info(f"Shutting down {settings.APP_NAME}")
    await engine.dispose()


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="Subscription lifecycle and service-credit accounting for lubricentro workshops",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(v1_router, prefix="/api")


@app.exception_handler(SubscriptionError)
async def subscription_error_handler(request: Request, exc: SubscriptionError):
    logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code, "limit": exc.limit},
    )


@app.exception_handler(TenantNotFound)
async def tenant_not_found_handler(request: Request, exc: TenantNotFound):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": str(exc), "code": "tenant_not_found"},
    )


@app.exception_handler(TenantUpdateConflict)
async def tenant_conflict_handler(request: Request, exc: TenantUpdateConflict):
    logger.warning(str(exc), extra={"tenant_id": exc.tenant_id})
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": "Update failed, please retry", "code": "update_conflict"},
    )


@app.exception_handler(DuplicatePayment)
async def duplicate_payment_handler(request: Request, exc: DuplicatePayment):
    logger.warning(str(exc), extra={"payment_id": exc.reference})
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": str(exc), "code": "duplicate_payment"},
    )


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    logger.error(f"Payment gateway error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": str(exc), "code": "gateway_error"},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log validation errors for debugging 422s."""
    logger.error(f"Validation error on {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
        for e in exc.errors()
    ]


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": settings.APP_NAME}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": settings.APP_NAME,
        "version": "1.0.0",
        "docs": "/api/docs",
    }
