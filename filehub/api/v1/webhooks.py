# filehub/api/v1/webhooks.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ... import deps
from ...core.config import Settings
from ...domain import repos, schemas
from ...domain.enums import DEFAULT_SCANNER_TASKS, ModelFileFormat, ModelFileType, ScannerTask
from ...domain.scanning import ScanIntake

router = APIRouter()

@router.post("/scan-result", response_model=schemas.WebhookAck, dependencies=[Depends(deps.require_webhook_token)])
def scan_result(
    body: schemas.ScanResult,
    model_version_id: int = Query(alias="modelVersionId"),
    type: ModelFileType = Query(),
    format: ModelFileFormat = Query(),
    tasks: Optional[List[ScannerTask]] = Query(default=None),
    repo: repos.ModelRepo = Depends(deps.get_repo),
    settings: Settings = Depends(deps.get_config),
):
    intake = ScanIntake(
        repo,
        upload_bucket=settings.S3_UPLOAD_BUCKET,
        special_imports=settings.SPECIAL_PICKLE_IMPORTS,
    )
    intake.apply(model_version_id, type, format, tasks or DEFAULT_SCANNER_TASKS, body)
    return schemas.WebhookAck(ok=True)
