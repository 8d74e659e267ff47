# filehub/domain/scanning.py
"""
Reconciles scanner callbacks with model file records.

The external scanning worker imports an uploaded file into permanent storage,
runs a virus scan and a pickle scan over it, hashes it, and then calls the
scan-result webhook. `ScanIntake.apply` turns one such callback into updates of
the file row, its hashes and, when the file has disappeared, the publication
status of its version and model.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional
from urllib.parse import unquote

from loguru import logger

from ..core.database import transaction
from ..core.errors import NotFoundError, ValidationError
from .db_models import ModelFileModel, ModelVersionModel
from .enums import (
    RESULT_CODE_MAP,
    ModelFileFormat,
    ModelFileType,
    ModelStatus,
    ScanExitCode,
    ScannerTask,
    ScanResultCode,
)
from .repos import ModelRepo
from .schemas import ScanResult

NO_PICKLE_IMPORTS = "No Pickle imports"


def process_import(import_str: str) -> str:
    """Normalize a picklescan import ("'torch', 'FloatStorage'") to a dotted name."""
    decoded = unquote(import_str)
    return ".".join(part.replace("'", "").strip() for part in decoded.split(","))


@dataclass
class PickleScanSummary:
    message: Optional[str]
    has_danger: bool


def examine_pickle_scan(result: ScanResult, special_imports: Iterable[str]) -> PickleScanSummary:
    """
    Build the human-readable pickle scan message.

    Global imports listed in `special_imports` are treated as dangerous even
    though the scanner only reported them as globals.
    """
    if result.picklescan_exit_code == ScanExitCode.Pending:
        return PickleScanSummary(message=None, has_danger=False)

    dangerous: List[str] = list(result.picklescan_dangerous_imports or [])
    global_imports: List[str] = list(result.picklescan_global_imports or [])
    import_count = len(dangerous) + len(global_imports)
    if import_count == 0:
        return PickleScanSummary(message=NO_PICKLE_IMPORTS, has_danger=False)

    special = set(special_imports)
    flagged = [imp for imp in global_imports if process_import(imp) in special]
    if flagged:
        dangerous.extend(flagged)
        global_imports = [imp for imp in global_imports if process_import(imp) not in special]

    has_danger = len(dangerous) > 0
    lines = [f"**Detected Pickle imports ({import_count})**"]
    if has_danger:
        lines.append("*Dangerous import detected*")
    lines.append("```")
    lines.extend(f"*{process_import(imp)}*" for imp in dangerous)
    lines.extend(process_import(imp) for imp in global_imports)
    lines.append("```")
    return PickleScanSummary(message="\n".join(lines), has_danger=has_danger)


class ScanIntake:
    def __init__(self, repo: ModelRepo, upload_bucket: str, special_imports: Iterable[str]):
        self.repo = repo
        self.upload_bucket = upload_bucket
        self.special_imports = frozenset(special_imports)

    def apply(
        self,
        version_id: int,
        type: ModelFileType,
        format: ModelFileFormat,
        tasks: Iterable[ScannerTask],
        result: ScanResult,
    ) -> ModelFileModel:
        """Apply one scanner callback. Every task's writes commit or roll back together."""
        tasks = set(tasks)
        with transaction(self.repo.session):
            file = self.repo.find_file(version_id, type, format)
            if file is None:
                logger.warning("Scan result for unknown file {}/{}/{}", version_id, type.value, format.value)
                raise NotFoundError("File not found")
            if ScannerTask.Import in tasks and result.file_exists is None:
                raise ValidationError("fileExists is required for the Import task")

            if ScannerTask.Scan in tasks:
                self._apply_scan(file, result)
            if ScannerTask.Import in tasks:
                self._apply_import(file, result)
            if ScannerTask.Convert in tasks:
                # no conversion contract exists yet; acknowledged and ignored
                logger.info("Convert task requested for file {}; nothing to do", file.id)
            if ScannerTask.Hash in tasks and result.hashes is not None:
                self.repo.replace_hashes(file.id, result.hashes)

            self.repo.session.flush()
            logger.info(
                "Applied scan result to file {} (tasks={})",
                file.id,
                ",".join(sorted(t.value for t in tasks)),
            )
        return file

    def _apply_scan(self, file: ModelFileModel, result: ScanResult) -> None:
        file.scanned_at = datetime.now(timezone.utc)
        file.raw_scan_result = result.model_dump(mode="json", by_alias=True, exclude_unset=True)
        file.virus_scan_result = RESULT_CODE_MAP[result.clamscan_exit_code]
        file.virus_scan_message = (
            result.clamscan_output if result.clamscan_exit_code != ScanExitCode.Success else None
        )

        summary = examine_pickle_scan(result, self.special_imports)
        verdict = RESULT_CODE_MAP[result.picklescan_exit_code]
        if summary.has_danger:
            verdict = ScanResultCode.Danger
        file.pickle_scan_result = verdict
        if summary.message is not None:
            file.pickle_scan_message = summary.message
        if verdict == ScanResultCode.Danger or file.virus_scan_result == ScanResultCode.Danger:
            logger.warning(
                "File {} flagged: virus={} pickle={}", file.id, file.virus_scan_result.value, verdict.value
            )

    def _apply_import(self, file: ModelFileModel, result: ScanResult) -> None:
        file.exists = result.file_exists == 1
        bucket = self.upload_bucket
        scanner_imported = bool(bucket) and bucket not in file.url and bucket in (result.url or "")
        if file.exists and scanner_imported:
            logger.info("File {} moved to {}", file.id, result.url)
            file.url = result.url
        if not file.exists:
            version = self.repo.get_version(file.model_version_id)
            if version is not None:
                self.unpublish(version)

    def unpublish(self, version: ModelVersionModel) -> None:
        """
        Take a version out of publication and unpublish its model when it no
        longer has any published version. The model row is locked first so two
        cascades for the same model see each other's version changes.
        """
        model = self.repo.get_model(version.model_id, for_update=True)
        self.repo.set_version_status(version, ModelStatus.Draft)
        logger.info("Version {} set to Draft: file missing", version.id)
        if model is None:
            return
        remaining = self.repo.count_versions_with_status(model.id, ModelStatus.Published)
        if remaining == 0 and model.status != ModelStatus.Unpublished:
            self.repo.set_model_status(model, ModelStatus.Unpublished)
            logger.info("Model {} unpublished: no published versions left", model.id)
