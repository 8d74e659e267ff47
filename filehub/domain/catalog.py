# filehub/domain/catalog.py
from loguru import logger
from sqlalchemy.exc import IntegrityError

from ..core.database import transaction
from ..core.errors import AuthorizationError, ConflictError, DatabaseError, NotFoundError
from ..core.security import Role
from .db_models import ImageModel, ModelFileModel, ModelModel, ModelVersionModel, UserModel
from .enums import ScanResultCode
from .repos import ModelRepo
from .schemas import ModelCreate, ModelDetail, ModelFileSummary, ModelVersionSummary


def _check_unique_files(body: ModelCreate) -> None:
    for version in body.versions:
        seen = set()
        for f in version.files:
            key = (f.type, f.format)
            if key in seen:
                raise ConflictError(
                    f"Version '{version.name}' already has a {f.type.value} file in {f.format.value} format"
                )
            seen.add(key)


def create_model(repo: ModelRepo, body: ModelCreate, owner: UserModel) -> ModelModel:
    """Create a model with its versions, files and images. New files wait for a scan."""
    _check_unique_files(body)
    model = ModelModel(
        name=body.name,
        description=body.description,
        type=body.type,
        status=body.status,
        nsfw=body.nsfw,
        poi=body.poi,
        user_id=owner.id,
    )
    for v in body.versions:
        version = ModelVersionModel(
            name=v.name,
            description=v.description,
            trained_words=list(v.trained_words),
            base_model=v.base_model,
            early_access_time_frame=v.early_access_time_frame,
            status=v.status,
        )
        for f in v.files:
            version.files.append(ModelFileModel(
                name=f.name,
                url=f.url,
                size_kb=f.size_kb,
                type=f.type,
                format=f.format,
                virus_scan_result=ScanResultCode.Pending,
                pickle_scan_result=ScanResultCode.Pending,
            ))
        for index, img in enumerate(v.images):
            version.images.append(ImageModel(
                index=index,
                url=img.url,
                name=img.name,
                width=img.width,
                height=img.height,
                hash=img.hash,
                nsfw=img.nsfw,
                meta=img.meta,
            ))
        model.versions.append(version)

    try:
        with transaction(repo.session):
            repo.add_model(model)
    except IntegrityError as e:
        raise ConflictError("Duplicate model file type/format within a version") from e
    logger.info("User {} created model {} with {} version(s)", owner.username, model.id, len(model.versions))
    return model


def delete_model(repo: ModelRepo, model_id: int, user: UserModel) -> None:
    model = repo.get_model(model_id)
    if model is None:
        raise NotFoundError("Model not found")
    if model.user_id != user.id and user.role != Role.admin.value:
        raise AuthorizationError("You can only delete your own models")
    try:
        with transaction(repo.session):
            repo.delete_model(model)
    except IntegrityError as e:
        raise DatabaseError(cause=e) from e
    logger.info("User {} deleted model {}", user.username, model_id)


def to_detail(model: ModelModel) -> ModelDetail:
    return ModelDetail(
        id=model.id,
        name=model.name,
        type=model.type,
        status=model.status,
        nsfw=model.nsfw,
        poi=model.poi,
        versions=[
            ModelVersionSummary(
                id=v.id,
                name=v.name,
                status=v.status,
                files=[
                    ModelFileSummary(
                        id=f.id,
                        name=f.name,
                        url=f.url,
                        type=f.type,
                        format=f.format,
                        size_kb=f.size_kb,
                        exists=f.exists,
                        virus_scan_result=f.virus_scan_result,
                        pickle_scan_result=f.pickle_scan_result,
                    )
                    for f in v.files
                ],
            )
            for v in model.versions
        ],
    )
