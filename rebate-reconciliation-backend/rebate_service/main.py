"""
FastAPI application main module.
Rebate reconciliation dashboard backend with request logging, error mapping and health checks.
"""
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from sqlalchemy import text
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
import time
import uuid
import os
from contextlib import asynccontextmanager
from rebate_service.api.deps import get_db
from rebate_service.api.v1 import api_router
from rebate_service.config import INTEGRATIONS_MODE
from rebate_service.database import Base, SessionLocal, engine
from rebate_service.exceptions import (
    ConfirmationRequiredError,
    RebateValidationError,
    RemoteError,
    TaskNotFoundError,
)
from rebate_service.integrations import create_integrations
from rebate_service.models.db import UserPreference  # noqa: F401  registers the table
from rebate_service.services.controller import ControllerRegistry
from rebate_service.services.preferences import PreferenceStore
from rebate_service.utils import setup_logging, get_logger

# Setup logging before creating the app
setup_logging(
    log_level=os.getenv("LOG_LEVEL", "INFO"),
    log_file=os.getenv("LOG_FILE", "logs/app.log"),
    enable_console=True
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Creates tables and the upstream clients on startup, closes clients on shutdown.
    """
    logger.info("Application startup initiated")
    integrations = None
    try:
        logger.info("Creating database tables")
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")

        integrations = create_integrations()
        app.state.integrations = integrations
        app.state.controllers = ControllerRegistry(integrations, PreferenceStore(SessionLocal))
        logger.info("Rebate controllers ready", integrations_mode=INTEGRATIONS_MODE)
        logger.info("Application startup completed successfully")
        yield
    except Exception as e:  # pragma: no cover
        logger.error("Application startup failed", error=str(e), exc_info=True)
        raise
    finally:
        logger.info("Application shutdown initiated")
        if integrations is not None:
            await integrations.close()
            logger.info("Upstream clients closed")
        logger.info("Application shutdown completed")

app = FastAPI(
    title="Rebate Reconciliation Service",
    description="""
    Rebate recovery tracking for influencer collaborations.

    ## Features
    * **Task list** - Wild-talent published collaborations that owe a rebate
    * **Reconciliation** - Matched / discrepancy classification within a 0.01 tolerance
    * **Batch recovery** - Bulk full recovery of selected pending tasks
    * **Evidence** - Proof-of-payment screenshots per task

    ## Sessions
    Send an `X-Client-ID` header to keep filters, paging and the batch
    selection per operator. Requests without it share the `anonymous` session.
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/api/v1/openapi.json",
    lifespan=lifespan,
)

# CORS middleware - configure appropriately for production
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Compression middleware for better performance
app.add_middleware(GZipMiddleware, minimum_size=1000)

# Request ID and comprehensive logging middleware
@app.middleware("http")
async def add_request_context_and_logging(request: Request, call_next):
    """
    Add request ID, timing, and request/response logging.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    request.state.start_time = time.time()

    logger.info(
        "Request started",
        method=request.method,
        url=str(request.url),
        client_id=request.headers.get("X-Client-ID"),
        remote_addr=request.client.host if request.client else "unknown",
        request_id=request_id
    )

    response = await call_next(request)

    process_time = time.time() - request.state.start_time
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = str(round(process_time * 1000, 2))
    response.headers["X-Content-Type-Options"] = "nosniff"

    logger.info(
        "Request completed",
        method=request.method,
        url=str(request.url),
        status_code=response.status_code,
        process_time_ms=round(process_time * 1000, 2),
        request_id=request_id
    )

    return response

# Domain exception handlers
@app.exception_handler(RebateValidationError)
async def rebate_validation_handler(request: Request, exc: RebateValidationError):
    """Rejected before any upstream write."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.warning(
        "Rebate validation failed",
        code=exc.code.value,
        detail=exc.message,
        request_id=request_id,
        url=str(request.url)
    )
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "code": exc.code.value,
            "message": exc.message,
            "request_id": request_id
        }
    )

@app.exception_handler(TaskNotFoundError)
async def task_not_found_handler(request: Request, exc: TaskNotFoundError):
    request_id = getattr(request.state, "request_id", "unknown")
    logger.warning("Rebate task not found", task_id=exc.task_id, request_id=request_id)
    return JSONResponse(
        status_code=404,
        content={"success": False, "message": str(exc), "request_id": request_id}
    )

@app.exception_handler(ConfirmationRequiredError)
async def confirmation_required_handler(request: Request, exc: ConfirmationRequiredError):
    request_id = getattr(request.state, "request_id", "unknown")
    logger.info("Action awaiting confirmation", action=exc.action, request_id=request_id)
    return JSONResponse(
        status_code=409,
        content={
            "success": False,
            "code": "CONFIRMATION_REQUIRED",
            "message": str(exc),
            "request_id": request_id
        }
    )

@app.exception_handler(RemoteError)
async def remote_error_handler(request: Request, exc: RemoteError):
    request_id = getattr(request.state, "request_id", "unknown")
    logger.error(
        "Upstream call failed",
        operation=exc.operation,
        upstream_status=exc.status_code,
        error=str(exc),
        request_id=request_id
    )
    return JSONResponse(
        status_code=502,
        content={
            "success": False,
            "message": f"Upstream service error: {exc}",
            "request_id": request_id
        }
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors."""
    request_id = getattr(request.state, "request_id", "unknown")

    logger.warning(
        "Request validation failed",
        errors=exc.errors(),
        request_id=request_id,
        url=str(request.url),
        method=request.method
    )

    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "code": "INVALID_INPUT",
            "message": "Request validation failed",
            "details": jsonable_encoder(exc.errors()),
            "request_id": request_id
        }
    )

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    request_id = getattr(request.state, "request_id", "unknown")

    logger.warning(
        "HTTP exception",
        status_code=exc.status_code,
        detail=exc.detail,
        request_id=request_id,
        url=str(request.url),
        method=request.method
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "message": exc.detail,
            "request_id": request_id
        }
    )

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    request_id = getattr(request.state, "request_id", "unknown")

    logger.error(
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        request_id=request_id,
        url=str(request.url),
        method=request.method,
        exc_info=True
    )

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "message": "Internal server error",
            "request_id": request_id
        }
    )

# Health check endpoints
@app.get("/health", tags=["health"], summary="Basic health check")
async def health_check():
    """Basic health check endpoint for load balancers."""
    registry = getattr(app.state, "controllers", None)
    return {
        "status": "healthy",
        "service": "rebate-reconciliation-service",
        "version": "1.0.0",
        "timestamp": time.time(),
        "integrations_mode": INTEGRATIONS_MODE,
        "active_sessions": len(registry) if registry is not None else 0,
    }

@app.get("/health/detailed", tags=["health"], summary="Detailed health check")
async def detailed_health_check(db: Session = Depends(get_db)):
    """Health check including the preference database."""
    health_status = {
        "status": "healthy",
        "service": "rebate-reconciliation-service",
        "version": "1.0.0",
        "timestamp": time.time(),
        "checks": {}
    }
    try:
        db.execute(text("SELECT 1"))
        health_status["checks"]["database"] = "healthy"
    except Exception as e:
        health_status["checks"]["database"] = f"unhealthy: {str(e)}"
        health_status["status"] = "degraded"
    return health_status

# API Documentation root
@app.get("/", tags=["root"])
async def root():
    """API root endpoint with basic information."""
    return {
        "message": "Rebate Reconciliation Service API",
        "version": "1.0.0",
        "documentation": "/docs",
        "health_check": "/health",
        "api_base": "/api/v1/rebates"
    }

# Include API router with version prefix
app.include_router(api_router, prefix="/api/v1")

# Development server configuration
if __name__ == "__main__":
    import uvicorn

    logger.info("Starting development server")

    uvicorn.run(
        "rebate_service.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        reload_dirs=["rebate_service"],
        log_level="info",
        access_log=True
    )
