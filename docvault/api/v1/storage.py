"""
Storage API Router

Serves objects behind the signed URLs issued by ``LocalObjectStorage``.
The signature is the authorization: no identity header is required.
"""

from __future__ import annotations

import mimetypes

from fastapi import APIRouter, Depends, Query, Response

from docvault.api.deps import get_object_storage
from docvault.core.errors import AuthorizationError
from docvault.services.storage import LocalObjectStorage

router = APIRouter()


@router.get("/storage/{path:path}", summary="Download a signed object")
async def download_object(
    path: str,
    expires: int = Query(...),
    signature: str = Query(..., min_length=1),
    storage: LocalObjectStorage = Depends(get_object_storage),
) -> Response:
    if not storage.verify_signature(path, expires, signature):
        raise AuthorizationError("Invalid or expired signature")

    data = await storage.get(path)
    media_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    return Response(content=data, media_type=media_type)
