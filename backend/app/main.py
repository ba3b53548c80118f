"""
FastAPI main application entry point.
"""
import logging

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.router import api_router
from app.core.config import settings
from app.core.database import engine, ping_database
from app.core.exception_handlers import register_exception_handlers

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Workload Console API for declaring workloads and deploying them as containers",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/api/openapi.json",
)

register_exception_handlers(app)

# When allow_credentials=True, origins must be specific (not ["*"])
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "X-API-Key",
        "Accept",
        "Origin",
        "X-Requested-With",
    ],
    max_age=600,
)


@app.on_event("startup")
async def startup_event():
    """
    Startup event handler.
    """
    if await ping_database():
        logger.info("Database connection successful")
    else:
        logger.error("Database connection failed; requests will error until it recovers")
    logger.info(
        f"{settings.APP_NAME} {settings.APP_VERSION} started "
        f"(environment={settings.ENVIRONMENT}, docker={settings.DOCKER_BINARY})"
    )


@app.on_event("shutdown")
async def shutdown_event():
    """
    Shutdown event handler.
    """
    await engine.dispose()
    logger.info("Application shutdown complete")


@app.get("/api/health", status_code=status.HTTP_200_OK)
async def health_check():
    """
    Health check endpoint.

    Returns:
        Health status and database reachability
    """
    db_healthy = await ping_database()
    overall_status = "healthy" if db_healthy else "unhealthy"

    return JSONResponse(
        status_code=status.HTTP_200_OK if db_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": overall_status,
            "components": {
                "database": overall_status,
            },
            "version": settings.APP_VERSION,
        },
    )


@app.get("/api/v1/info", status_code=status.HTTP_200_OK)
async def info():
    """
    API information endpoint.
    """
    return {
        "app_name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "api_version": "v1",
    }


app.include_router(api_router, prefix="/api/v1")


@app.get("/", status_code=status.HTTP_200_OK)
async def root():
    """Root endpoint with a pointer to the API docs."""
    return {
        "message": "Workload Console API",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/api/health",
    }
