"""
LoteTrace - FastAPI Backend
Main application entry point
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
import logging
import traceback

from lotetrace.api.v1.endpoints import production, sensors, traceability, public
from lotetrace.core.config import settings
from lotetrace.core.database import warmup_pool
from lotetrace.services.sensors.mqtt_pool import (
    BrokerConnectionPool,
    BrokerSupervisor,
    get_supervisor,
    set_supervisor,
)

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    # Startup: Pre-warm database connection pool
    warmup_pool()

    if settings.MQTT_ENABLED:
        supervisor = BrokerSupervisor(BrokerConnectionPool())
        set_supervisor(supervisor)
        supervisor.start()
    else:
        logger.info("MQTT ingestion disabled (MQTT_ENABLED=false)")

    yield

    # Shutdown: stop broker clients, then close database connections
    supervisor = get_supervisor()
    if supervisor is not None:
        supervisor.shutdown()
        set_supervisor(None)

    try:
        from lotetrace.core.database import engine, wait_for_warmup_complete
        # Attendi che il warmup finisca se è ancora in corso (al massimo 1 secondo)
        wait_for_warmup_complete(timeout=1.0)
        logger.info("Closing database connection pool...")
        engine.dispose(close=True)
        logger.info("Database connection pool closed successfully")
    except Exception as e:
        logger.error(f"Error closing database connections: {e}")


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Backend API for LoteTrace - livestock lote traceability from breeding to distribution",
    version=settings.APP_VERSION,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify allowed origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# GZip compression middleware - comprime risposte > 1000 bytes
app.add_middleware(GZipMiddleware, minimum_size=1000)


# Global exception handler for database connection errors
@app.exception_handler(OperationalError)
async def database_error_handler(request: Request, exc: OperationalError):
    """Handle database connection errors with user-friendly messages"""
    error_msg = str(exc.orig) if hasattr(exc, 'orig') else str(exc)

    if "could not translate host name" in error_msg or "nodename nor servname provided" in error_msg:
        logger.error(f"Database DNS resolution error: {error_msg}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "detail": "Database connection error: the database hostname cannot be resolved. "
                         "Check DATABASE_URL.",
                "error_type": "database_connection_error",
            }
        )

    logger.error(f"Database operational error: {error_msg}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "detail": "Database connection error. The service may be temporarily unavailable.",
            "error_type": "database_error",
        }
    )


# Global exception handler per errori 500 - logga traceback completo per debug
@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Logga eccezioni non gestite e restituisce 500 con messaggio generico"""
    tb = traceback.format_exception(type(exc), exc, exc.__traceback__)
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}\n{''.join(tb)}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error. Contact support if the problem persists.",
        }
    )


# Include routers
app.include_router(production.router, prefix="/api/v1")
app.include_router(sensors.router, prefix="/api/v1")
app.include_router(traceability.router, prefix="/api/v1")
app.include_router(public.router, prefix="/api/v1")


@app.get("/")
async def root():
    """Health check endpoint"""
    return {
        "message": f"{settings.APP_NAME} API",
        "version": settings.APP_VERSION,
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint - fast version, no database round trip"""
    return {
        "status": "healthy",
        "service": "lotetrace-api",
        "version": settings.APP_VERSION
    }


@app.get("/health/detailed")
async def health_check_detailed():
    """Detailed health check with database connectivity test and broker pool status"""
    from lotetrace.core.database import engine
    from sqlalchemy import text

    supervisor = get_supervisor()
    mqtt_status = supervisor.pool.status() if supervisor is not None else {"enabled": False}

    try:
        # Test database connection
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))

        return {
            "status": "healthy",
            "service": "lotetrace-api",
            "database": "connected",
            "mqtt": mqtt_status,
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "service": "lotetrace-api",
                "database": "disconnected",
                "error": str(e)
            }
        )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
