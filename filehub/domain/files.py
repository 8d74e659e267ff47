# filehub/domain/files.py
"""
Pure helpers for model files: which file is primary, what a download is
called, and where it is downloaded from. Nothing in here touches the database.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, TypeVar
from urllib.parse import urlencode

from ..core.strings import filenamize
from .enums import (
    DEFAULT_FORMAT_ORDER,
    WEIGHT_FILE_TYPES,
    ModelFileFormat,
    ModelFileType,
    ModelType,
)


class FileLike(Protocol):
    type: str
    format: str


F = TypeVar("F", bound=FileLike)


@dataclass(frozen=True)
class FilePreferences:
    type: Optional[ModelFileType] = None
    format: Optional[ModelFileFormat] = None

    @classmethod
    def for_user(cls, user) -> "FilePreferences":
        """Preferences stored on a user row; an anonymous caller gets the defaults."""
        if user is None:
            return cls()
        return cls(
            type=ModelFileType.PrunedModel if user.preferred_pruned_model else None,
            format=user.preferred_model_format,
        )


DEFAULT_PREFERENCES = FilePreferences(type=ModelFileType.Model, format=ModelFileFormat.SafeTensor)


def _format_rank(fmt) -> int:
    try:
        return DEFAULT_FORMAT_ORDER.index(ModelFileFormat(fmt))
    except ValueError:
        return len(DEFAULT_FORMAT_ORDER)


def get_primary_file(files: Sequence[F], preferences: FilePreferences | None = None) -> Optional[F]:
    """
    Pick the single file served when no explicit type/format is requested.

    Files are ranked by: matches the preferred type, is a weights file, matches the
    preferred format, then the default format order. Ties keep input order.
    """
    if not files:
        return None
    preferences = preferences or FilePreferences()
    preferred_type = preferences.type or DEFAULT_PREFERENCES.type
    preferred_format = preferences.format or DEFAULT_PREFERENCES.format

    def rank(indexed):
        index, f = indexed
        return (
            f.type != preferred_type,
            f.type not in WEIGHT_FILE_TYPES,
            f.format != preferred_format,
            _format_rank(f.format),
            index,
        )

    return min(enumerate(files), key=rank)[1]


def get_download_filename(
    model_name: str,
    model_type: str,
    version_name: str,
    trained_words: Sequence[str] | None,
    file_name: str,
    file_type: str,
) -> str:
    """Human-friendly name for a downloaded file."""
    model_part = filenamize(model_name)
    version_part = filenamize(version_name)
    if model_part:
        version_part = version_part.replace(model_part, "", 1)
    ext = file_name.rsplit(".", 1)[-1]

    try:
        kind = ModelFileType(file_type)
    except ValueError:
        return file_name

    if kind == ModelFileType.TrainingData:
        return f"{model_part}_{version_part}_trainingData.zip"

    if model_type == ModelType.TextualInversion:
        trained_word = trained_words[0] if trained_words else None
        suffix = "-neg" if kind == ModelFileType.Negative else ""
        return f"{trained_word}{suffix}.{ext}" if trained_word else file_name

    if kind == ModelFileType.VAE:
        return file_name

    suffix = ""
    if "-inpainting" in file_name:
        suffix = "-inpainting"
    elif kind == ModelFileType.TextEncoder:
        suffix = "_txt"
    return f"{model_part}_{version_part}{suffix}.{ext}"


def create_model_file_download_url(
    version_id: int,
    type: str | None = None,
    format: str | None = None,
    primary: bool = False,
) -> str:
    params = {}
    if not primary:
        if type:
            params["type"] = type
        if format:
            params["format"] = format
    query = f"?{urlencode(params)}" if params else ""
    return f"/api/download/models/{version_id}{query}"


def get_edge_url(src: str | None, image_location: str, width: int | None = None) -> str | None:
    """Route an image through the resizing CDN; absolute and blob urls pass through."""
    if not src or src.startswith(("http", "blob")):
        return src
    params = f"width={width}" if width else ""
    return "/".join(part for part in (image_location.rstrip("/"), src, params) if part)
