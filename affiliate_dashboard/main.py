"""
FastAPI application main module.

Wires the dashboard router behind request-id/timing middleware, the shared
error envelope, and health checks. Reports are read-only; the only startup
work is making sure the tracking tables exist.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
import time
import os
from contextlib import asynccontextmanager
from affiliate_dashboard.api.v1 import api_router
from affiliate_dashboard.utils import setup_logging, get_logger
from affiliate_dashboard.utils.observability import ensure_request_id, REQUEST_ID_HEADER, PROCESS_TIME_HEADER
from affiliate_dashboard.database import engine, Base, SessionLocal
from affiliate_dashboard.models import db as _models  # noqa: F401  registers tables on Base.metadata

SERVICE_NAME = "affiliate-dashboard-engine"
SERVICE_VERSION = "1.0.0"
API_PREFIX = "/api/v1"

setup_logging(
    log_level=os.getenv("LOG_LEVEL", "INFO"),
    log_file=os.getenv("LOG_FILE", "logs/app.log"),
    enable_console=True
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tracking tables on startup."""
    logger.info("Application startup initiated", service=SERVICE_NAME, version=SERVICE_VERSION)
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables ready", tables=sorted(Base.metadata.tables))
    except SQLAlchemyError as e:
        logger.error("Application startup failed", error=str(e), exc_info=True)
        raise
    yield
    engine.dispose()
    logger.info("Application shutdown completed")

app = FastAPI(
    title="Affiliate Dashboard Engine",
    description="""
    Read-only reporting over affiliate click and conversion tracking data.

    ## Reports
    * **Publisher dashboard** - totals, month-over-month cards, charts and
      commission-adjusted conversions for one publisher
    * **Platform dashboard** - the same report across every publisher

    ## Publisher identity
    Requests are authenticated upstream. Pass the publisher as the
    `publisher_id` query parameter or the `X-Publisher-ID` header.
    """,
    version=SERVICE_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url=f"{API_PREFIX}/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

# Dashboard payloads carry several 30-point series
app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Attach a request id, time the request, and log both ends."""
    request_id = ensure_request_id(request.headers)
    request.state.request_id = request_id
    started = time.time()
    log = logger.bind(request_id=request_id, method=request.method, path=request.url.path)
    log.info(
        "Request started",
        query=str(request.url.query) or None,
        remote_addr=request.client.host if request.client else "unknown",
    )

    response = await call_next(request)

    elapsed_ms = round((time.time() - started) * 1000, 2)
    response.headers[REQUEST_ID_HEADER] = request_id
    response.headers[PROCESS_TIME_HEADER] = str(elapsed_ms)
    response.headers["X-Content-Type-Options"] = "nosniff"
    log.info("Request completed", status_code=response.status_code, process_time_ms=elapsed_ms)
    return response


def _error_envelope(request: Request, status_code: int, message, **extra) -> JSONResponse:
    content = {
        "success": False,
        "message": message,
        "request_id": getattr(request.state, "request_id", "unknown"),
    }
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("Request validation failed", errors=exc.errors(), path=request.url.path)
    return _error_envelope(request, 422, "Request validation failed", details=jsonable_encoder(exc.errors()))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning("HTTP exception", status_code=exc.status_code, detail=exc.detail, path=request.url.path)
    return _error_envelope(request, exc.status_code, exc.detail)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        exc_info=True
    )
    return _error_envelope(request, 500, "Internal server error")


def _service_info() -> dict:
    return {"service": SERVICE_NAME, "version": SERVICE_VERSION, "timestamp": time.time()}


@app.get("/health", tags=["health"], summary="Basic health check")
async def health_check():
    """Liveness probe for load balancers; does not touch the database."""
    return {"status": "healthy", **_service_info()}


@app.get("/health/detailed", tags=["health"], summary="Detailed health check")
async def detailed_health_check():
    """Readiness probe: the tracking store must answer `SELECT 1`."""
    checks = {}
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except SQLAlchemyError as e:
        logger.warning("Database health probe failed", error=str(e))
        checks["database"] = f"unhealthy: {e}"
    status = "healthy" if all(v == "healthy" for v in checks.values()) else "degraded"
    return {"status": status, **_service_info(), "checks": checks}


@app.get("/", tags=["root"])
async def root():
    return {
        "message": "Affiliate Dashboard Engine API",
        "version": SERVICE_VERSION,
        "documentation": "/docs",
        "health_check": "/health",
        "api_base": API_PREFIX,
    }

app.include_router(api_router, prefix=API_PREFIX)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "affiliate_dashboard.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
        reload_dirs=["affiliate_dashboard"],
        log_level="info",
        access_log=True
    )
