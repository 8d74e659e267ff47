# filehub/domain/db_models.py
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

from .enums import (
    ModelFileFormat,
    ModelFileType,
    ModelHashType,
    ModelStatus,
    ModelType,
    ScanResultCode,
    UserActivityType,
)

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum(cls):
    # persist the human-readable values ("Pruned Model"), not member names
    return Enum(cls, values_callable=lambda e: [m.value for m in e], native_enum=False, length=32)


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String, nullable=False, unique=True)
    email = Column(String, nullable=True)
    hashed = Column(String, nullable=False)
    role = Column(String, nullable=False, default="viewer")
    show_nsfw = Column(Boolean, nullable=False, default=False)
    preferred_model_format = Column(_enum(ModelFileFormat), nullable=True)
    preferred_pruned_model = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    models = relationship("ModelModel", back_populates="user")


class ModelModel(Base):
    __tablename__ = "models"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(_enum(ModelType), nullable=False)
    status = Column(_enum(ModelStatus), nullable=False, default=ModelStatus.Draft)
    nsfw = Column(Boolean, nullable=False, default=False)
    poi = Column(Boolean, nullable=False, default=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    user = relationship("UserModel", back_populates="models")
    versions = relationship(
        "ModelVersionModel",
        back_populates="model",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ModelVersionModel.id",
    )


class ModelVersionModel(Base):
    __tablename__ = "model_versions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    model_id = Column(Integer, ForeignKey("models.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    trained_words = Column(JSON, nullable=False, default=list)
    base_model = Column(String, nullable=True)
    early_access_time_frame = Column(Integer, nullable=False, default=0)
    status = Column(_enum(ModelStatus), nullable=False, default=ModelStatus.Draft)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    model = relationship("ModelModel", back_populates="versions")
    files = relationship(
        "ModelFileModel",
        back_populates="version",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ModelFileModel.id",
    )
    images = relationship(
        "ImageModel",
        back_populates="version",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ImageModel.index",
    )


class ModelFileModel(Base):
    __tablename__ = "model_files"
    __table_args__ = (
        UniqueConstraint("model_version_id", "type", "format", name="uq_model_file_version_type_format"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    model_version_id = Column(
        Integer, ForeignKey("model_versions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String, nullable=False)
    url = Column(String, nullable=False)
    size_kb = Column(Integer, nullable=False, default=0)
    type = Column(_enum(ModelFileType), nullable=False, default=ModelFileType.Model)
    format = Column(_enum(ModelFileFormat), nullable=False, default=ModelFileFormat.Other)
    exists = Column(Boolean, nullable=True)
    virus_scan_result = Column(_enum(ScanResultCode), nullable=False, default=ScanResultCode.Pending)
    virus_scan_message = Column(Text, nullable=True)
    pickle_scan_result = Column(_enum(ScanResultCode), nullable=False, default=ScanResultCode.Pending)
    pickle_scan_message = Column(Text, nullable=True)
    scanned_at = Column(DateTime(timezone=True), nullable=True)
    raw_scan_result = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    version = relationship("ModelVersionModel", back_populates="files")
    hashes = relationship(
        "ModelHashModel",
        back_populates="file",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ModelHashModel.type",
    )


class ModelHashModel(Base):
    __tablename__ = "model_hashes"

    file_id = Column(Integer, ForeignKey("model_files.id", ondelete="CASCADE"), primary_key=True)
    type = Column(_enum(ModelHashType), primary_key=True)
    hash = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    file = relationship("ModelFileModel", back_populates="hashes")


class ImageModel(Base):
    __tablename__ = "images"

    id = Column(Integer, primary_key=True, autoincrement=True)
    model_version_id = Column(
        Integer, ForeignKey("model_versions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    index = Column(Integer, nullable=False, default=0)
    name = Column(String, nullable=True)
    url = Column(String, nullable=False)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    hash = Column(String, nullable=True)
    nsfw = Column(Boolean, nullable=False, default=False)
    meta = Column(JSON, nullable=True)

    version = relationship("ModelVersionModel", back_populates="images")


class UserActivityModel(Base):
    __tablename__ = "user_activities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    activity = Column(_enum(UserActivityType), nullable=False)
    details = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class KeyValueModel(Base):
    __tablename__ = "key_values"

    key = Column(String, primary_key=True)
    value = Column(JSON, nullable=True)
