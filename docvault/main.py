"""
DocVault: Application Entry Point

FastAPI application for workspace document ingestion and retrieval.

Start locally:
    uvicorn docvault.main:app --host 0.0.0.0 --port 8000 --reload
"""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from docvault.api.v1.files import router as files_router
from docvault.api.v1.retrieval import router as retrieval_router
from docvault.api.v1.storage import router as storage_router
from docvault.core.config import settings
from docvault.core.database import check_connection, dispose_engine
from docvault.core.errors import DocVaultError
from docvault.core.logging import setup_logging
from docvault.services.embeddings import LocalEmbeddingProvider

# Initialize logging before any log statements
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
        1. Validate database connectivity.
        2. Pre-load the local embedding model (optional, avoids a
           cold start on the first local-provider request).

    Shutdown:
        1. Release the local embedding model.
        2. Dispose the database engine.
    """
    logger.info("Starting %s...", settings.PROJECT_NAME)

    try:
        await check_connection()
    except DocVaultError:
        logger.exception("Database connection failed")
        raise

    if settings.PRELOAD_LOCAL_MODEL:
        logger.info("Pre-loading local embedding model...")
        await asyncio.to_thread(LocalEmbeddingProvider._get_model)
        logger.info("Local embedding model ready")

    yield

    LocalEmbeddingProvider.reset()
    await dispose_engine()
    logger.info("%s shutdown complete", settings.PROJECT_NAME)


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Workspace document ingestion, chunking, embedding and retrieval.",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(DocVaultError)
async def docvault_error_handler(request: Request, exc: DocVaultError) -> JSONResponse:
    """Render service errors as ``{"message": ...}`` with the error's status."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


app.include_router(retrieval_router, prefix="/api/retrieval", tags=["Retrieval"])
app.include_router(files_router, prefix="/api/v1", tags=["Files"])
app.include_router(storage_router, prefix="/api/v1", tags=["Storage"])


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check for load balancers and orchestrators."""
    return {
        "status": "ok",
        "service": "docvault",
        "environment": os.getenv("ENVIRONMENT", "local"),
    }
