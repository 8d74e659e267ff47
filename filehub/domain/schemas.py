# filehub/domain/schemas.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import (
    ModelFileFormat,
    ModelFileType,
    ModelHashType,
    ModelStatus,
    ModelType,
    ScanExitCode,
    ScanResultCode,
)


class CamelModel(BaseModel):
    """Accepts either the camelCase wire name or the python field name."""

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())


# ---------------- Scanner webhook ----------------
class ScanResult(CamelModel):
    url: str = ""
    file_exists: Optional[int] = Field(default=None, alias="fileExists")
    picklescan_exit_code: ScanExitCode = Field(default=ScanExitCode.Pending, alias="picklescanExitCode")
    picklescan_output: Optional[str] = Field(default=None, alias="picklescanOutput")
    picklescan_global_imports: Optional[List[str]] = Field(default=None, alias="picklescanGlobalImports")
    picklescan_dangerous_imports: Optional[List[str]] = Field(default=None, alias="picklescanDangerousImports")
    clamscan_exit_code: ScanExitCode = Field(default=ScanExitCode.Pending, alias="clamscanExitCode")
    clamscan_output: Optional[str] = Field(default=None, alias="clamscanOutput")
    hashes: Optional[Dict[ModelHashType, str]] = None


class WebhookAck(BaseModel):
    ok: bool = True


# ---------------- Authoring ----------------
class ModelFileCreate(CamelModel):
    name: str
    url: str
    size_kb: int = Field(default=0, alias="sizeKB", ge=0)
    type: ModelFileType = ModelFileType.Model
    format: ModelFileFormat = ModelFileFormat.Other


class ImageCreate(CamelModel):
    url: str
    name: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    hash: Optional[str] = None
    nsfw: bool = False
    meta: Optional[Dict[str, Any]] = None


class ModelVersionCreate(CamelModel):
    name: str
    description: Optional[str] = None
    trained_words: List[str] = Field(default_factory=list, alias="trainedWords")
    base_model: Optional[str] = Field(default=None, alias="baseModel")
    early_access_time_frame: int = Field(default=0, alias="earlyAccessTimeFrame", ge=0)
    status: ModelStatus = ModelStatus.Draft
    files: List[ModelFileCreate] = Field(default_factory=list)
    images: List[ImageCreate] = Field(default_factory=list)


class ModelCreate(CamelModel):
    name: str
    description: Optional[str] = None
    type: ModelType
    status: ModelStatus = ModelStatus.Draft
    nsfw: bool = False
    poi: bool = False
    versions: List[ModelVersionCreate] = Field(min_length=1)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name must not be blank")
        return v.strip()


class ModelFileSummary(CamelModel):
    id: int
    name: str
    url: str
    type: ModelFileType
    format: ModelFileFormat
    size_kb: int = Field(alias="sizeKB")
    exists: Optional[bool] = None
    virus_scan_result: ScanResultCode = Field(alias="virusScanResult")
    pickle_scan_result: ScanResultCode = Field(alias="pickleScanResult")


class ModelVersionSummary(CamelModel):
    id: int
    name: str
    status: ModelStatus
    files: List[ModelFileSummary]


class ModelDetail(CamelModel):
    id: int
    name: str
    type: ModelType
    status: ModelStatus
    nsfw: bool
    poi: bool
    versions: List[ModelVersionSummary]


# ---------------- Users / auth ----------------
class LoginRequest(BaseModel):
    username: str
    password: str


class LoginResult(BaseModel):
    token: str


class UserCreate(BaseModel):
    username: str
    password: str = Field(min_length=8)
    role: str = "viewer"
    email: Optional[str] = None


class UserProfile(CamelModel):
    id: int
    username: str
    email: Optional[str] = None
    role: str
    show_nsfw: bool = Field(alias="showNsfw")
    preferred_model_format: Optional[ModelFileFormat] = Field(default=None, alias="preferredModelFormat")
    preferred_pruned_model: bool = Field(alias="preferredPrunedModel")


class UserUpdate(CamelModel):
    email: Optional[str] = None
    show_nsfw: Optional[bool] = Field(default=None, alias="showNsfw")
    preferred_model_format: Optional[ModelFileFormat] = Field(default=None, alias="preferredModelFormat")
    preferred_pruned_model: Optional[bool] = Field(default=None, alias="preferredPrunedModel")


class IpBlacklist(BaseModel):
    ips: List[str]


# ---------------- Model-version detail API ----------------
class ModelVersionApiModel(BaseModel):
    name: str
    type: ModelType
    nsfw: bool
    poi: bool


class ModelVersionApiFile(CamelModel):
    id: int
    name: str
    size_kb: int = Field(alias="sizeKB")
    type: ModelFileType
    format: ModelFileFormat
    pickle_scan_result: ScanResultCode = Field(alias="pickleScanResult")
    pickle_scan_message: Optional[str] = Field(default=None, alias="pickleScanMessage")
    virus_scan_result: ScanResultCode = Field(alias="virusScanResult")
    scanned_at: Optional[datetime] = Field(default=None, alias="scannedAt")
    hashes: Dict[str, str]
    primary: bool
    download_url: str = Field(alias="downloadUrl")


class ModelVersionApiImage(BaseModel):
    url: str
    name: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    hash: Optional[str] = None
    nsfw: bool = False
    meta: Optional[Dict[str, Any]] = None


class ModelVersionApiResponse(CamelModel):
    id: int
    model_id: int = Field(alias="modelId")
    name: str
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")
    trained_words: List[str] = Field(alias="trainedWords")
    base_model: Optional[str] = Field(default=None, alias="baseModel")
    early_access_time_frame: int = Field(alias="earlyAccessTimeFrame")
    model: ModelVersionApiModel
    files: List[ModelVersionApiFile]
    images: List[ModelVersionApiImage]
    download_url: str = Field(alias="downloadUrl")
