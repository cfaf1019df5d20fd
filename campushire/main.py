import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from campushire.api.api import api_router
from campushire.core.config import settings
from campushire.core.database import close_database, create_default_data, init_database
from campushire.core.logging import get_logger, setup_logging
from campushire.middleware.error_handler import (
    ErrorHandlingMiddleware,
    http_exception_handler,
    validation_exception_handler,
)
from campushire.middleware.rate_limiting import RateLimitingMiddleware
from campushire.utils.file_upload import UPLOAD_SUBDIRS

setup_logging()
app_logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    app_logger.info(f"Starting up {settings.PROJECT_NAME}...")
    try:
        await init_database()
        app_logger.info("MongoDB database initialized successfully")

        await create_default_data()
    except Exception as e:
        app_logger.error(f"Failed to initialize application: {e}")
        raise

    app_logger.info(f"{settings.PROJECT_NAME} started successfully")
    yield

    app_logger.info(f"Shutting down {settings.PROJECT_NAME}...")
    await close_database()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Campus recruitment platform connecting students, alumni and recruiters",
    version=settings.VERSION,
    lifespan=lifespan,
)

# Added innermost first
app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(RateLimitingMiddleware, enable_rate_limiting=settings.RATE_LIMIT_ENABLED)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for subdir in UPLOAD_SUBDIRS:
    os.makedirs(os.path.join(settings.UPLOAD_DIR, subdir), exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

app.include_router(api_router, prefix="/api")

app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": f"Welcome to {settings.PROJECT_NAME}",
        "version": settings.VERSION,
        "docs": "/docs",
        "health": "/api/health",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "campushire.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
    )
