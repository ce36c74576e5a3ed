"""
Retrieval API Router

Endpoints used by the chat client.

Endpoints:
    POST /retrieve      - Rank chunks of the selected files against a query.
    POST /process       - Index an already uploaded file (multipart form).
    POST /process/docx  - Index text extracted client-side from a DOCX.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Form
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.api.deps import get_current_user, get_ingestion_service, get_retrieval_service
from docvault.core.database import get_db
from docvault.models.enums import EmbeddingsProvider
from docvault.schemas.api import (
    ProcessResponse,
    ProcessTextRequest,
    RetrieveRequest,
    RetrieveResponse,
)
from docvault.services.ingestion import FileIngestionService
from docvault.services.retrieval import RetrievalService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/retrieve",
    response_model=RetrieveResponse,
    summary="Retrieve the chunks most similar to a query",
)
async def retrieve(
    request: RetrieveRequest,
    user_id: UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: RetrievalService = Depends(get_retrieval_service),
) -> RetrieveResponse:
    """
    Embed ``userInput`` with the selected provider and return up to
    ``sourceCount`` chunks of ``fileIds``, highest similarity first.
    """
    logger.info(
        "Retrieve request: %d files, provider=%s, k=%d",
        len(request.file_ids),
        request.embeddings_provider.value,
        request.source_count,
    )
    results = await service.retrieve(
        db,
        user_id,
        request.user_input,
        request.file_ids,
        request.embeddings_provider,
        request.source_count,
    )
    return RetrieveResponse(results=results)


@router.post(
    "/process",
    response_model=ProcessResponse,
    summary="Index an uploaded file",
)
async def process_file(
    file_id: UUID = Form(...),
    embeddings_provider: EmbeddingsProvider = Form(..., alias="embeddingsProvider"),
    user_id: UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: FileIngestionService = Depends(get_ingestion_service),
) -> ProcessResponse:
    """
    Load, chunk and embed a stored file. On failure the file is deleted
    and the error message is returned.
    """
    result = await service.process_file(db, user_id, file_id, embeddings_provider)
    return ProcessResponse(**result._asdict())


@router.post(
    "/process/docx",
    response_model=ProcessResponse,
    summary="Index text extracted from a DOCX file",
)
async def process_docx(
    request: ProcessTextRequest,
    user_id: UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: FileIngestionService = Depends(get_ingestion_service),
) -> ProcessResponse:
    result = await service.process_text(
        db,
        user_id,
        request.file_id,
        request.text,
        request.embeddings_provider,
        request.file_extension,
    )
    return ProcessResponse(**result._asdict())
