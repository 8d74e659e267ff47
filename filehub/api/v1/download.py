# filehub/api/v1/download.py
import os
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse

from ... import deps
from ...core.config import Settings
from ...core.errors import AuthorizationError, NotFoundError
from ...domain import storage
from ...domain.db_models import UserModel
from ...domain.downloads import DownloadResolver, LoginRequired

router = APIRouter()


def client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


@router.get("/download/models/{model_version_id}")
def download_model(
    request: Request,
    model_version_id: str,
    # validated after the blacklist check
    type: Optional[str] = Query(default=None),
    format: Optional[str] = Query(default=None),
    user: UserModel | None = Depends(deps.optional_user),
    session=Depends(deps.get_session),
    blobs: storage.BlobStore = Depends(deps.get_blob_store),
    settings: Settings = Depends(deps.get_config),
):
    resolver = DownloadResolver(session, allow_anonymous=settings.UNAUTHENTICATED_DOWNLOAD)
    try:
        resolved = resolver.resolve(
            model_version_id,
            type=type,
            format=format,
            user=user,
            ip=client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    except LoginRequired as e:
        if (request.headers.get("content-type") or "").startswith("application/json"):
            return JSONResponse(status_code=401, content={"error": "Unauthorized"})
        return RedirectResponse(f"/login?returnUrl=/models/{e.model_id}", status_code=307)

    url = blobs.get_url(resolved.file.url, file_name=resolved.file_name)
    return RedirectResponse(url, status_code=307)


@router.get("/blobs/{key:path}")
def get_blob(
    key: str,
    expires: int = Query(),
    filename: str = Query(),
    signature: str = Query(),
    blobs: storage.BlobStore = Depends(deps.get_blob_store),
):
    if not isinstance(blobs, storage.LocalBlobStore):
        raise NotFoundError("Not found")
    if not blobs.verify(key, expires, filename, signature):
        raise AuthorizationError("Invalid or expired signature")
    try:
        path = blobs.get_path(key)
    except ValueError:
        raise AuthorizationError("Forbidden")
    if not os.path.isfile(path):
        raise NotFoundError("File not found")
    return FileResponse(path, filename=filename)
