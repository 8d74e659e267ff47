"""Tests for pickle scan examination and the scan intake workflow."""

import pytest

from filehub.core.errors import NotFoundError, ValidationError
from filehub.domain.enums import (
    ModelFileFormat,
    ModelFileType,
    ModelStatus,
    ScanExitCode,
    ScannerTask,
    ScanResultCode,
)
from filehub.domain.repos import ModelRepo
from filehub.domain.scanning import (
    NO_PICKLE_IMPORTS,
    ScanIntake,
    examine_pickle_scan,
    process_import,
)
from filehub.domain.schemas import ScanResult

SPECIAL = {"pytorch_lightning.callbacks.model_checkpoint.ModelCheckpoint"}
CHECKPOINT_IMPORT = "'pytorch_lightning.callbacks.model_checkpoint', 'ModelCheckpoint'"


def scan(**kwargs) -> ScanResult:
    return ScanResult(**kwargs)


class TestProcessImport:
    """Tests for import string normalization."""

    def test_joins_quoted_parts_with_dots(self):
        assert process_import("'torch._utils', '_rebuild_tensor_v2'") == "torch._utils._rebuild_tensor_v2"

    def test_decodes_percent_escapes(self):
        assert process_import("%27collections%27%2C%20%27OrderedDict%27") == "collections.OrderedDict"

    def test_single_part_unchanged(self):
        assert process_import("builtins") == "builtins"


class TestExaminePickleScan:
    """Tests for the pickle scan message builder."""

    def test_pending_scan_has_no_message(self):
        summary = examine_pickle_scan(scan(picklescan_exit_code=ScanExitCode.Pending), SPECIAL)

        assert summary.message is None
        assert summary.has_danger is False

    def test_no_imports_message(self):
        summary = examine_pickle_scan(
            scan(
                picklescan_exit_code=ScanExitCode.Success,
                picklescan_global_imports=[],
                picklescan_dangerous_imports=[],
            ),
            SPECIAL,
        )

        assert summary.message == NO_PICKLE_IMPORTS == "No Pickle imports"
        assert summary.has_danger is False

    def test_missing_import_lists_treated_as_empty(self):
        summary = examine_pickle_scan(scan(picklescan_exit_code=ScanExitCode.Success), SPECIAL)

        assert summary.message == "No Pickle imports"
        assert summary.has_danger is False

    def test_global_imports_listed_without_danger(self):
        summary = examine_pickle_scan(
            scan(
                picklescan_exit_code=ScanExitCode.Success,
                picklescan_global_imports=["'torch', 'FloatStorage'", "'collections', 'OrderedDict'"],
            ),
            SPECIAL,
        )

        assert summary.has_danger is False
        assert summary.message == "\n".join([
            "**Detected Pickle imports (2)**",
            "```",
            "torch.FloatStorage",
            "collections.OrderedDict",
            "```",
        ])

    def test_dangerous_imports_marked_first(self):
        summary = examine_pickle_scan(
            scan(
                picklescan_exit_code=ScanExitCode.Danger,
                picklescan_global_imports=["'torch', 'FloatStorage'"],
                picklescan_dangerous_imports=["'os', 'system'"],
            ),
            SPECIAL,
        )

        assert summary.has_danger is True
        assert summary.message.splitlines() == [
            "**Detected Pickle imports (2)**",
            "*Dangerous import detected*",
            "```",
            "*os.system*",
            "torch.FloatStorage",
            "```",
        ]

    def test_special_global_import_reclassified_as_dangerous(self):
        summary = examine_pickle_scan(
            scan(
                picklescan_exit_code=ScanExitCode.Success,
                picklescan_global_imports=["'torch', 'FloatStorage'", CHECKPOINT_IMPORT],
            ),
            SPECIAL,
        )

        assert summary.has_danger is True
        lines = summary.message.splitlines()
        assert lines[0] == "**Detected Pickle imports (2)**"
        assert "*pytorch_lightning.callbacks.model_checkpoint.ModelCheckpoint*" in lines
        assert "pytorch_lightning.callbacks.model_checkpoint.ModelCheckpoint" not in lines
        assert "torch.FloatStorage" in lines

    def test_allowlist_is_injected(self):
        result = scan(
            picklescan_exit_code=ScanExitCode.Success,
            picklescan_global_imports=[CHECKPOINT_IMPORT],
        )

        assert examine_pickle_scan(result, set()).has_danger is False
        assert examine_pickle_scan(result, SPECIAL).has_danger is True


@pytest.fixture
def intake(db):
    return ScanIntake(ModelRepo(db), upload_bucket="model-files", special_imports=SPECIAL)


def only_file(model):
    return model.versions[0].files[0]


class TestScanIntake:
    """Tests for applying scanner callbacks to file records."""

    def test_unknown_file_raises_not_found_without_writes(self, intake, make_model, fresh):
        model = make_model()
        version_id = model.versions[0].id

        with pytest.raises(NotFoundError):
            intake.apply(
                version_id,
                ModelFileType.VAE,
                ModelFileFormat.Other,
                [ScannerTask.Scan, ScannerTask.Import],
                scan(file_exists=0, clamscan_exit_code=ScanExitCode.Success),
            )

        session = fresh()
        repo = ModelRepo(session)
        assert repo.get_version(version_id).status == ModelStatus.Published
        assert repo.get_model(model.id).status == ModelStatus.Published

    def test_scan_task_records_verdicts(self, intake, make_model, fresh):
        model = make_model()
        file = only_file(model)

        intake.apply(
            model.versions[0].id,
            ModelFileType.Model,
            ModelFileFormat.SafeTensor,
            [ScannerTask.Scan],
            scan(
                clamscan_exit_code=ScanExitCode.Error,
                clamscan_output="clamd unreachable",
                picklescan_exit_code=ScanExitCode.Success,
            ),
        )

        stored = fresh().get(type(file), file.id)
        assert stored.virus_scan_result == ScanResultCode.Error
        assert stored.virus_scan_message == "clamd unreachable"
        assert stored.pickle_scan_result == ScanResultCode.Success
        assert stored.pickle_scan_message == "No Pickle imports"
        assert stored.scanned_at is not None
        assert stored.raw_scan_result["clamscanExitCode"] == 2

    def test_successful_virus_scan_clears_message(self, intake, make_model, fresh):
        model = make_model()
        file = only_file(model)

        intake.apply(
            model.versions[0].id,
            ModelFileType.Model,
            ModelFileFormat.SafeTensor,
            [ScannerTask.Scan],
            scan(clamscan_exit_code=ScanExitCode.Success, clamscan_output="OK"),
        )

        assert fresh().get(type(file), file.id).virus_scan_message is None

    def test_special_import_forces_danger(self, intake, make_model, fresh):
        model = make_model()
        file = only_file(model)

        intake.apply(
            model.versions[0].id,
            ModelFileType.Model,
            ModelFileFormat.SafeTensor,
            [ScannerTask.Scan],
            scan(
                clamscan_exit_code=ScanExitCode.Success,
                picklescan_exit_code=ScanExitCode.Success,
                picklescan_global_imports=[CHECKPOINT_IMPORT],
            ),
        )

        assert fresh().get(type(file), file.id).pickle_scan_result == ScanResultCode.Danger

    def test_import_adopts_permanent_url(self, intake, make_model, fresh):
        model = make_model()
        file = only_file(model)
        moved = "https://s3.example.com/model-files/123/model.safetensors"

        intake.apply(
            model.versions[0].id,
            ModelFileType.Model,
            ModelFileFormat.SafeTensor,
            [ScannerTask.Import],
            scan(file_exists=1, url=moved),
        )

        stored = fresh().get(type(file), file.id)
        assert stored.exists is True
        assert stored.url == moved

    def test_import_never_moves_back_out_of_bucket(self, intake, make_model, fresh):
        permanent = "https://s3.example.com/model-files/123/model.safetensors"
        model = make_model(versions=[{"files": [{
            "type": ModelFileType.Model, "format": ModelFileFormat.SafeTensor, "url": permanent,
        }]}])
        file = only_file(model)

        intake.apply(
            model.versions[0].id,
            ModelFileType.Model,
            ModelFileFormat.SafeTensor,
            [ScannerTask.Import],
            scan(file_exists=1, url="https://s3.example.com/model-files/other.safetensors"),
        )

        assert fresh().get(type(file), file.id).url == permanent

    def test_import_requires_file_exists(self, intake, make_model):
        model = make_model()

        with pytest.raises(ValidationError):
            intake.apply(
                model.versions[0].id,
                ModelFileType.Model,
                ModelFileFormat.SafeTensor,
                [ScannerTask.Import],
                scan(),
            )

    def test_missing_file_of_only_published_version_unpublishes_model(self, intake, make_model, fresh):
        model = make_model()

        intake.apply(
            model.versions[0].id,
            ModelFileType.Model,
            ModelFileFormat.SafeTensor,
            [ScannerTask.Import],
            scan(file_exists=0),
        )

        repo = ModelRepo(fresh())
        assert repo.get_version(model.versions[0].id).status == ModelStatus.Draft
        assert repo.get_model(model.id).status == ModelStatus.Unpublished

    def test_missing_file_unpublishes_gather_interest_model(self, intake, make_model, fresh):
        model = make_model(status=ModelStatus.GatherInterest)

        intake.apply(
            model.versions[0].id,
            ModelFileType.Model,
            ModelFileFormat.SafeTensor,
            [ScannerTask.Import],
            scan(file_exists=0),
        )

        repo = ModelRepo(fresh())
        assert repo.get_version(model.versions[0].id).status == ModelStatus.Draft
        assert repo.get_model(model.id).status == ModelStatus.Unpublished

    def test_unknown_file_is_not_found_before_file_exists_check(self, intake, make_model):
        model = make_model()

        with pytest.raises(NotFoundError):
            intake.apply(
                model.versions[0].id,
                ModelFileType.VAE,
                ModelFileFormat.Other,
                [ScannerTask.Import],
                scan(),
            )

    def test_missing_file_keeps_model_with_other_published_version(self, intake, make_model, fresh):
        model = make_model(versions=[{"name": "v1"}, {"name": "v2"}])
        first, second = model.versions[0].id, model.versions[1].id

        intake.apply(
            first,
            ModelFileType.Model,
            ModelFileFormat.SafeTensor,
            [ScannerTask.Import],
            scan(file_exists=0),
        )

        repo = ModelRepo(fresh())
        assert repo.get_version(first).status == ModelStatus.Draft
        assert repo.get_version(second).status == ModelStatus.Published
        assert repo.get_model(model.id).status == ModelStatus.Published

    def test_hash_task_replaces_hash_set(self, intake, make_model, fresh):
        model = make_model(versions=[{"files": [{
            "type": ModelFileType.Model,
            "format": ModelFileFormat.SafeTensor,
            "hashes": {"SHA256": "old-sha", "CRC32": "old-crc"},
        }]}])
        file = only_file(model)

        intake.apply(
            model.versions[0].id,
            ModelFileType.Model,
            ModelFileFormat.SafeTensor,
            [ScannerTask.Hash],
            scan(hashes={"SHA256": "new-sha", "AutoV1": "new-v1"}),
        )

        assert ModelRepo(fresh()).get_hashes(file.id) == {"SHA256": "new-sha", "AutoV1": "new-v1"}

    def test_convert_task_is_a_no_op(self, intake, make_model, fresh):
        model = make_model()
        file = only_file(model)

        intake.apply(
            model.versions[0].id,
            ModelFileType.Model,
            ModelFileFormat.SafeTensor,
            [ScannerTask.Convert],
            scan(file_exists=0, clamscan_exit_code=ScanExitCode.Danger),
        )

        stored = fresh().get(type(file), file.id)
        assert stored.exists is None
        assert stored.virus_scan_result == ScanResultCode.Pending
