# filehub/domain/downloads.py
from __future__ import annotations

from dataclasses import dataclass

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from ..core.database import transaction
from ..core.errors import AuthorizationError, DatabaseError, NotFoundError, ValidationError
from .db_models import ModelFileModel, ModelVersionModel, UserModel
from .enums import ModelFileFormat, ModelFileType, UserActivityType
from .files import FilePreferences, get_download_filename, get_primary_file
from .repos import ActivityRepo, KeyValueRepo, ModelRepo


@dataclass
class ResolvedDownload:
    version: ModelVersionModel
    file: ModelFileModel
    file_name: str


def parse_download_request(
    version_id: str,
    type: str | None,
    format: str | None,
) -> tuple[int, ModelFileType | None, ModelFileFormat | None]:
    """Validate the raw path and query values of a download request."""
    fields: dict[str, list[str]] = {}
    try:
        parsed_id = int(version_id)
    except (TypeError, ValueError):
        parsed_id = 0
        fields["modelVersionId"] = ["must be an integer"]

    def _enum(name, enum_cls, raw):
        if raw is None:
            return None
        try:
            return enum_cls(raw)
        except ValueError:
            fields[name] = [f"must be one of: {', '.join(e.value for e in enum_cls)}"]
            return None

    parsed_type = _enum("type", ModelFileType, type)
    parsed_format = _enum("format", ModelFileFormat, format)
    if fields:
        summary = "; ".join(f"{k}: {', '.join(v)}" for k, v in fields.items())
        raise ValidationError(f"Invalid request: {summary}", fields)
    return parsed_id, parsed_type, parsed_format


class LoginRequired(Exception):
    """Raised when anonymous downloads are off; carries the model to return to."""

    def __init__(self, model_id: int):
        super().__init__("Unauthorized")
        self.model_id = model_id


class DownloadResolver:
    def __init__(self, session, allow_anonymous: bool):
        self.session = session
        self.models = ModelRepo(session)
        self.activity = ActivityRepo(session)
        self.key_values = KeyValueRepo(session)
        self.allow_anonymous = allow_anonymous

    def check_ip(self, ip: str | None) -> None:
        if ip and ip in self.key_values.ip_blacklist():
            logger.warning("Blocked download from blacklisted address {}", ip)
            raise AuthorizationError("Forbidden")

    def select_file(
        self,
        version_id: int,
        type: ModelFileType | None,
        format: ModelFileFormat | None,
        user: UserModel | None,
    ) -> tuple[ModelVersionModel, ModelFileModel]:
        version, files = self.models.get_version_with_files(version_id, type=type, format=format)
        if version is None:
            raise NotFoundError("Model not found")
        if type is not None or format is not None:
            file = files[0] if files else None
        else:
            file = get_primary_file(files, FilePreferences.for_user(user))
        if file is None:
            raise NotFoundError("Model file not found")
        return version, file

    def resolve(
        self,
        version_id: int | str,
        type: ModelFileType | str | None = None,
        format: ModelFileFormat | str | None = None,
        user: UserModel | None = None,
        ip: str | None = None,
        user_agent: str | None = None,
    ) -> ResolvedDownload:
        """
        Pick the file to serve and record the download.

        The caller's address is checked against the blacklist before the
        request values are validated. Anonymous callers have their address and
        user agent stored with the activity; signed-in users do not.
        """
        self.check_ip(ip)
        version_id, type, format = parse_download_request(version_id, type, format)
        version, file = self.select_file(version_id, type, format, user)
        model = version.model

        if user is None and not self.allow_anonymous:
            raise LoginRequired(model.id)

        details = {"modelId": model.id, "modelVersionId": version.id}
        if user is None:
            details.update({"ip": ip, "userAgent": user_agent})
        try:
            with transaction(self.session):
                self.activity.record(user.id if user else None, UserActivityType.ModelDownload, details)
        except SQLAlchemyError as e:
            raise DatabaseError("Invalid database operation", cause=e) from e

        file_name = get_download_filename(
            model_name=model.name,
            model_type=model.type,
            version_name=version.name,
            trained_words=version.trained_words,
            file_name=file.name,
            file_type=file.type,
        )
        logger.info("Download of file {} (version {}) as {}", file.id, version.id, file_name)
        return ResolvedDownload(version=version, file=file, file_name=file_name)
