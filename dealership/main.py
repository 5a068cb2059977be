"""
Car Dealership API - main application.
Admin listing management and AI-assisted car search over FastAPI.
"""
import logging
import sqlite3
import sys
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import config
from .database import db_init
from .routes import cars_router, search_router, stats_router, users_router
from .services import Services, build_services, get_services

# Configure logging
handlers = [logging.StreamHandler(sys.stdout)]
if config.LOG_FILE:
    handlers.append(logging.FileHandler(config.LOG_FILE))

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=handlers
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    # Startup
    logger.info("Starting Car Dealership API...")
    services = None
    try:
        # Validate configuration
        config.validate()
        db_init(config.DB_PATH)
        logger.info(f"Database path: {config.DB_PATH}")

        services = build_services(config)
        app.state.services = services
        logger.info("API startup complete")
        yield
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise
    finally:
        # Shutdown
        logger.info("Shutting down Car Dealership API...")
        if services is not None:
            services.close()


# Create FastAPI application
app = FastAPI(
    title=config.API_TITLE,
    version=config.API_VERSION,
    description=config.API_DESCRIPTION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=config.CORS_ALLOW_CREDENTIALS,
    allow_methods=config.CORS_ALLOW_METHODS,
    allow_headers=config.CORS_ALLOW_HEADERS,
)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request, exc: Exception):
    """Global exception handler for unhandled errors."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


# Health check endpoint
@app.get("/health")
async def health_check(services: Services = Depends(get_services)):
    """Health check endpoint."""
    try:
        # Test database connection
        with services.connect() as conn:
            conn.execute("SELECT 1").fetchone()

        return {
            "status": "healthy",
            "version": config.API_VERSION,
            "database": "connected",
            "storage": "configured" if services.storage is not None else "disabled",
            "vision": "configured" if services.vision is not None else "disabled",
        }
    except sqlite3.Error as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=503, detail="Service unavailable")


# Include routers
app.include_router(cars_router)
app.include_router(search_router)
app.include_router(stats_router)
app.include_router(users_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "dealership.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=config.LOG_LEVEL.lower()
    )
