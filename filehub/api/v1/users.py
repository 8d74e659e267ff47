# filehub/api/v1/users.py
from fastapi import APIRouter, Depends
from loguru import logger

from ... import deps
from ...core.database import transaction
from ...domain import repos, schemas
from ...domain.db_models import UserModel

router = APIRouter()


def to_profile(user: UserModel) -> schemas.UserProfile:
    return schemas.UserProfile(
        id=user.id,
        username=user.username,
        email=user.email,
        role=user.role,
        show_nsfw=user.show_nsfw,
        preferred_model_format=user.preferred_model_format,
        preferred_pruned_model=user.preferred_pruned_model,
    )


@router.get("/me", response_model=schemas.UserProfile)
def get_me(user: UserModel = Depends(deps.require_user)):
    return to_profile(user)


@router.put("/me", response_model=schemas.UserProfile)
def update_me(body: schemas.UserUpdate,
              user: UserModel = Depends(deps.require_user),
              users: repos.UserRepo = Depends(deps.get_user_repo)):
    # only the format preference may be cleared back to null
    changes = {
        k: v for k, v in body.model_dump(exclude_unset=True).items()
        if v is not None or k == "preferred_model_format"
    }
    with transaction(users.session):
        for field, value in changes.items():
            setattr(user, field, value)
    logger.info("User {} updated preferences: {}", user.username, sorted(changes))
    return to_profile(user)
