"""
Files API Router

Upload, inspection and removal of workspace documents.

Endpoints:
    POST   /files                                 - Upload (and index) a file.
    GET    /files/{file_id}                       - File metadata.
    DELETE /files/{file_id}                       - Delete object, row and chunks.
    GET    /files/{file_id}/url                   - Signed download URL.
    DELETE /files/{file_id}/workspaces/{ws_id}    - Detach from one workspace.
    GET    /workspaces/{ws_id}/files              - Files of a workspace.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Form, HTTPException, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.api.deps import get_current_user, get_ingestion_service
from docvault.core.config import settings
from docvault.core.database import get_db
from docvault.models.enums import EmbeddingsProvider
from docvault.models.schemas import FileCreate
from docvault.schemas.api import FileResponse, SignedUrlResponse
from docvault.services.ingestion import FileIngestionService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/files",
    response_model=FileResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a file into a workspace",
)
async def upload_file(
    file: UploadFile,
    workspace_id: UUID = Form(...),
    embeddings_provider: EmbeddingsProvider = Form(EmbeddingsProvider.OPENAI),
    name: str | None = Form(None),
    description: str = Form(""),
    process: bool = Form(True),
    user_id: UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: FileIngestionService = Depends(get_ingestion_service),
) -> FileResponse:
    """
    Store the file under ``{workspace_id}/{sanitized name}`` and, unless
    ``process`` is false, chunk and embed it before responding.
    """
    raw = await file.read()
    original_filename = file.filename or "unknown"
    file_in = FileCreate(
        name=name or original_filename,
        description=description,
        type=file.content_type or "application/octet-stream",
        size=len(raw),
    )

    try:
        record = await service.create_file(
            db,
            user_id,
            workspace_id=workspace_id,
            file_in=file_in,
            data=raw,
            original_filename=original_filename,
            provider=embeddings_provider,
            process=process,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return FileResponse.model_validate(record)


@router.get("/files/{file_id}", response_model=FileResponse, summary="Get a file")
async def get_file(
    file_id: UUID,
    user_id: UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: FileIngestionService = Depends(get_ingestion_service),
) -> FileResponse:
    record = await service.get_file(db, user_id, file_id)
    return FileResponse.model_validate(record)


@router.delete(
    "/files/{file_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a file",
)
async def delete_file(
    file_id: UUID,
    user_id: UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: FileIngestionService = Depends(get_ingestion_service),
) -> Response:
    await service.delete_file(db, user_id, file_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/files/{file_id}/url",
    response_model=SignedUrlResponse,
    summary="Signed download URL",
)
async def get_file_url(
    file_id: UUID,
    user_id: UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: FileIngestionService = Depends(get_ingestion_service),
) -> SignedUrlResponse:
    ttl = settings.SIGNED_URL_TTL_SECONDS
    url = await service.get_signed_url(db, user_id, file_id, ttl)
    return SignedUrlResponse(url=url, expires_in=ttl)


@router.delete(
    "/files/{file_id}/workspaces/{workspace_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a file from a workspace",
)
async def delete_file_workspace(
    file_id: UUID,
    workspace_id: UUID,
    user_id: UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: FileIngestionService = Depends(get_ingestion_service),
) -> Response:
    await service.delete_file_workspace(db, user_id, file_id, workspace_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/workspaces/{workspace_id}/files",
    response_model=list[FileResponse],
    summary="List the files of a workspace",
)
async def list_workspace_files(
    workspace_id: UUID,
    user_id: UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: FileIngestionService = Depends(get_ingestion_service),
) -> list[FileResponse]:
    records = await service.list_workspace_files(db, user_id, workspace_id)
    return [FileResponse.model_validate(r) for r in records]
