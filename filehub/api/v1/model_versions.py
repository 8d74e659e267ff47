# filehub/api/v1/model_versions.py
from fastapi import APIRouter, Depends, Request

from ... import deps
from ...core.config import Settings
from ...core.errors import NotFoundError
from ...domain import repos, schemas
from ...domain.model_versions import build_version_details

router = APIRouter()


def public_base_url(request: Request, settings: Settings) -> str:
    if settings.is_production:
        return f"https://{request.headers.get('host', '')}"
    return settings.BASE_URL


@router.get("/{id}", response_model=schemas.ModelVersionApiResponse)
def get_model_version(
    id: int,
    request: Request,
    repo: repos.ModelRepo = Depends(deps.get_repo),
    settings: Settings = Depends(deps.get_config),
):
    version = repo.get_version_detail(id)
    if version is None:
        raise NotFoundError("Model not found")
    return build_version_details(version, public_base_url(request, settings), settings.IMAGE_LOCATION)
