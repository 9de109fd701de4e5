"""
Annotation Controls - Main Application Entry Point

FastAPI service deriving the interactive state of annotation cards:
vote tallies, vote toggling and the actions a viewer may take.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from annotation_controls.core.database import create_tables, get_db
from annotation_controls.api.annotations import router as annotations_router
from annotation_controls.core.config import settings
from annotation_controls.utils.logger import setup_logging, get_logger
from annotation_controls.middleware.logging_middleware import LoggingMiddleware


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    setup_logging()
    logger = get_logger('main')
    logger.info("Logging system initialized")

    create_tables()
    logger.info(f"Database tables created (vote scheme: {settings.VOTE_SCHEME})")

    yield

    logger.info("Shutting down Annotation Controls")


# Initialize FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="Interaction state for annotation cards",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    lifespan=lifespan
)

app.add_middleware(
    LoggingMiddleware,
    config={
        "exclude_paths": {"/health"},
        "slow_request_threshold": 1000,
    }
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(annotations_router, prefix="/api/annotations", tags=["Annotations"])


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "message": "Annotation Controls API",
        "version": "1.0.0",
        "vote_scheme": settings.VOTE_SCHEME,
        "endpoints": {
            "api_docs": "/api/docs",
            "health": "/health",
            "annotations": "/api/annotations",
        },
    }


@app.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """Health check endpoint."""
    health_status = {
        "status": "healthy",
        "version": "1.0.0",
        "timestamp": datetime.utcnow().isoformat(),
        "components": {}
    }

    try:
        db.execute(text("SELECT 1"))
        health_status["components"]["database"] = {
            "status": "healthy",
            "message": "Database connection successful"
        }
    except SQLAlchemyError as e:
        health_status["status"] = "unhealthy"
        health_status["components"]["database"] = {
            "status": "unhealthy",
            "error": str(e)
        }

    return health_status


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "annotation_controls.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
