import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi_pagination import add_pagination
from loguru import logger

from expert_interviews.api.routes import api_router
from expert_interviews.core.config import settings
from expert_interviews.core.logging import setup_logging
from expert_interviews.core.middleware import RequestLoggingMiddleware, register_exception_handlers
from expert_interviews.db.init_db import close_db, init_db


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.
    Handles startup and shutdown events.
    """
    setup_logging()

    # Initialize database
    await init_db()

    logger.info(f"Application startup complete in {settings.ENVIRONMENT} environment")
    yield

    await close_db()

    logger.info("Application shutdown")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="API for expert interviews comparing candidate answers",
    version=settings.VERSION,
    lifespan=lifespan,
)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Type", "Content-Length", "Content-Disposition", "X-Process-Time", "X-Request-ID"],
    max_age=600,
)

# Add request logging middleware
app.add_middleware(RequestLoggingMiddleware)

# Add pagination to the API
add_pagination(app)

# Include API routes
app.include_router(api_router, prefix=settings.API_V1_STR)

register_exception_handlers(app)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
        "timestamp": time.time()
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("expert_interviews.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
