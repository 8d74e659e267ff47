# filehub/domain/model_versions.py
from ..core.errors import NotFoundError
from .db_models import ModelVersionModel
from .files import create_model_file_download_url, get_download_filename, get_edge_url, get_primary_file
from .schemas import (
    ModelVersionApiFile,
    ModelVersionApiImage,
    ModelVersionApiModel,
    ModelVersionApiResponse,
)

MAX_IMAGES = 20
IMAGE_WIDTH = 450


def hashes_as_object(hashes) -> dict:
    return {getattr(h.type, "value", h.type): h.hash for h in hashes}


def build_version_details(version: ModelVersionModel, base_url: str, image_location: str) -> ModelVersionApiResponse:
    model = version.model
    files = list(version.files)
    primary = get_primary_file(files)
    if primary is None:
        raise NotFoundError("Missing model file")

    origin = base_url.rstrip("/")
    api_files = []
    for f in files:
        is_primary = f.id == primary.id
        api_files.append(ModelVersionApiFile(
            id=f.id,
            name=get_download_filename(
                model_name=model.name,
                model_type=model.type,
                version_name=version.name,
                trained_words=version.trained_words,
                file_name=f.name,
                file_type=f.type,
            ),
            size_kb=f.size_kb,
            type=f.type,
            format=f.format,
            pickle_scan_result=f.pickle_scan_result,
            pickle_scan_message=f.pickle_scan_message,
            virus_scan_result=f.virus_scan_result,
            scanned_at=f.scanned_at,
            hashes=hashes_as_object(f.hashes),
            primary=is_primary,
            download_url=origin + create_model_file_download_url(
                version.id, type=f.type.value, format=f.format.value, primary=is_primary
            ),
        ))

    images = [
        ModelVersionApiImage(
            url=get_edge_url(img.url, image_location, width=IMAGE_WIDTH),
            name=img.name,
            width=img.width,
            height=img.height,
            hash=img.hash,
            nsfw=img.nsfw,
            meta=img.meta,
        )
        for img in sorted(version.images, key=lambda i: i.index)[:MAX_IMAGES]
    ]

    return ModelVersionApiResponse(
        id=version.id,
        model_id=version.model_id,
        name=version.name,
        created_at=version.created_at,
        updated_at=version.updated_at,
        trained_words=list(version.trained_words or []),
        base_model=version.base_model,
        early_access_time_frame=version.early_access_time_frame,
        model=ModelVersionApiModel(name=model.name, type=model.type, nsfw=model.nsfw, poi=model.poi),
        files=api_files,
        images=images,
        download_url=origin + create_model_file_download_url(version.id, primary=True),
    )
