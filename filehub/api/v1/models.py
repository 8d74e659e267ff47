# filehub/api/v1/models.py
from fastapi import APIRouter, Depends

from ... import deps
from ...core.errors import NotFoundError
from ...domain import catalog, repos, schemas
from ...domain.db_models import UserModel

router = APIRouter()

@router.post("", response_model=schemas.ModelDetail, status_code=201)
def create_model(body: schemas.ModelCreate,
                 repo: repos.ModelRepo = Depends(deps.get_repo),
                 user: UserModel = Depends(deps.require_contributor)):
    model = catalog.create_model(repo, body, owner=user)
    return catalog.to_detail(repo.get_model_detail(model.id))

@router.get("/{id}", response_model=schemas.ModelDetail)
def get_model(id: int, repo: repos.ModelRepo = Depends(deps.get_repo)):
    model = repo.get_model_detail(id)
    if model is None:
        raise NotFoundError("Model not found")
    return catalog.to_detail(model)

@router.delete("/{id}")
def delete_model(id: int, repo: repos.ModelRepo = Depends(deps.get_repo),
                 user: UserModel = Depends(deps.require_contributor)):
    catalog.delete_model(repo, id, user)
    return {"ok": True}
