# filehub/domain/repos.py
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from .db_models import (
    KeyValueModel,
    ModelFileModel,
    ModelHashModel,
    ModelModel,
    ModelVersionModel,
    UserActivityModel,
    UserModel,
)
from .enums import ModelFileFormat, ModelFileType, ModelHashType, ModelStatus, UserActivityType

IP_BLACKLIST_KEY = "ip-blacklist"


class ModelRepo:
    """Queries and writes for models, versions, files and hashes."""

    def __init__(self, session: Session):
        self.session = session

    # ---- models ----
    def add_model(self, model: ModelModel) -> ModelModel:
        self.session.add(model)
        self.session.flush()
        return model

    def get_model(self, model_id: int, for_update: bool = False) -> Optional[ModelModel]:
        stmt = select(ModelModel).where(ModelModel.id == model_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.scalars(stmt).first()

    def get_model_detail(self, model_id: int) -> Optional[ModelModel]:
        stmt = (
            select(ModelModel)
            .where(ModelModel.id == model_id)
            .options(selectinload(ModelModel.versions).selectinload(ModelVersionModel.files))
        )
        return self.session.scalars(stmt).first()

    def delete_model(self, model: ModelModel) -> None:
        self.session.delete(model)
        self.session.flush()

    def set_model_status(self, model: ModelModel, status: ModelStatus) -> None:
        model.status = status
        self.session.flush()

    # ---- versions ----
    def get_version(self, version_id: int) -> Optional[ModelVersionModel]:
        return self.session.get(ModelVersionModel, version_id)

    def get_version_with_files(
        self,
        version_id: int,
        type: ModelFileType | None = None,
        format: ModelFileFormat | None = None,
    ) -> tuple[Optional[ModelVersionModel], List[ModelFileModel]]:
        """Version plus its files, optionally narrowed to a type and/or format."""
        version = self.session.scalars(
            select(ModelVersionModel)
            .where(ModelVersionModel.id == version_id)
            .options(selectinload(ModelVersionModel.model))
        ).first()
        if version is None:
            return None, []
        stmt = select(ModelFileModel).where(ModelFileModel.model_version_id == version_id)
        if type is not None:
            stmt = stmt.where(ModelFileModel.type == type)
        if format is not None:
            stmt = stmt.where(ModelFileModel.format == format)
        return version, list(self.session.scalars(stmt.order_by(ModelFileModel.id)))

    def get_version_detail(self, version_id: int) -> Optional[ModelVersionModel]:
        stmt = (
            select(ModelVersionModel)
            .where(ModelVersionModel.id == version_id)
            .options(
                selectinload(ModelVersionModel.model),
                selectinload(ModelVersionModel.files).selectinload(ModelFileModel.hashes),
                selectinload(ModelVersionModel.images),
            )
        )
        return self.session.scalars(stmt).first()

    def set_version_status(self, version: ModelVersionModel, status: ModelStatus) -> None:
        version.status = status
        self.session.flush()

    def count_versions_with_status(self, model_id: int, status: ModelStatus) -> int:
        stmt = (
            select(func.count(ModelVersionModel.id))
            .where(ModelVersionModel.model_id == model_id)
            .where(ModelVersionModel.status == status)
        )
        return int(self.session.scalar(stmt) or 0)

    # ---- files ----
    def find_file(
        self, version_id: int, type: ModelFileType, format: ModelFileFormat
    ) -> Optional[ModelFileModel]:
        stmt = select(ModelFileModel).where(
            ModelFileModel.model_version_id == version_id,
            ModelFileModel.type == type,
            ModelFileModel.format == format,
        )
        return self.session.scalars(stmt).first()

    # ---- hashes ----
    def get_hashes(self, file_id: int) -> Dict[str, str]:
        rows = self.session.scalars(select(ModelHashModel).where(ModelHashModel.file_id == file_id))
        return {ModelHashType(r.type).value: r.hash for r in rows}

    def replace_hashes(self, file_id: int, hashes: Dict[ModelHashType, str]) -> None:
        """Make the stored hash set for a file exactly equal to `hashes`."""
        wanted = {ModelHashType(k): v for k, v in hashes.items()}
        existing = {
            ModelHashType(r.type): r
            for r in self.session.scalars(select(ModelHashModel).where(ModelHashModel.file_id == file_id))
        }
        for hash_type, row in existing.items():
            if hash_type not in wanted:
                self.session.delete(row)
        for hash_type, value in wanted.items():
            row = existing.get(hash_type)
            if row is None:
                self.session.add(ModelHashModel(file_id=file_id, type=hash_type, hash=value))
            elif row.hash != value:
                row.hash = value
        self.session.flush()


class UserRepo:
    def __init__(self, session: Session):
        self.session = session

    def get(self, user_id: int) -> Optional[UserModel]:
        return self.session.get(UserModel, user_id)

    def get_by_username(self, username: str) -> Optional[UserModel]:
        return self.session.scalars(select(UserModel).where(UserModel.username == username)).first()

    def create(self, username: str, hashed: str, role: str, email: str | None = None) -> UserModel:
        user = UserModel(username=username, hashed=hashed, role=role, email=email)
        self.session.add(user)
        self.session.flush()
        return user

    def count(self) -> int:
        return int(self.session.scalar(select(func.count(UserModel.id))) or 0)


class ActivityRepo:
    def __init__(self, session: Session):
        self.session = session

    def record(self, user_id: int | None, activity: UserActivityType, details: Dict[str, Any]) -> UserActivityModel:
        row = UserActivityModel(user_id=user_id, activity=activity, details=details)
        self.session.add(row)
        self.session.flush()
        return row

    def list_activities(self, activity: UserActivityType | None = None) -> List[UserActivityModel]:
        stmt = select(UserActivityModel).order_by(UserActivityModel.id)
        if activity is not None:
            stmt = stmt.where(UserActivityModel.activity == activity)
        return list(self.session.scalars(stmt))


class KeyValueRepo:
    def __init__(self, session: Session):
        self.session = session

    def get(self, key: str, default: Any = None) -> Any:
        row = self.session.get(KeyValueModel, key)
        return default if row is None else row.value

    def set(self, key: str, value: Any) -> None:
        row = self.session.get(KeyValueModel, key)
        if row is None:
            self.session.add(KeyValueModel(key=key, value=value))
        else:
            row.value = value
        self.session.flush()

    def ip_blacklist(self) -> List[str]:
        raw = self.get(IP_BLACKLIST_KEY) or ""
        if isinstance(raw, list):
            raw = ",".join(raw)
        return [ip.strip() for ip in str(raw).split(",") if ip.strip()]

    def set_ip_blacklist(self, ips: List[str]) -> None:
        self.set(IP_BLACKLIST_KEY, ",".join(ip.strip() for ip in ips if ip.strip()))
