# filehub/domain/enums.py
from enum import Enum, IntEnum


class ModelType(str, Enum):
    Checkpoint = "Checkpoint"
    TextualInversion = "TextualInversion"
    Hypernetwork = "Hypernetwork"
    AestheticGradient = "AestheticGradient"
    LORA = "LORA"


class ModelStatus(str, Enum):
    Draft = "Draft"
    Published = "Published"
    Unpublished = "Unpublished"
    GatherInterest = "GatherInterest"


class ModelFileType(str, Enum):
    Model = "Model"
    PrunedModel = "Pruned Model"
    Negative = "Negative"
    TrainingData = "Training Data"
    VAE = "VAE"
    Config = "Config"
    TextEncoder = "Text Encoder"


# file types that carry model weights and may stand in for the primary download
WEIGHT_FILE_TYPES = (ModelFileType.Model, ModelFileType.PrunedModel)


class ModelFileFormat(str, Enum):
    PickleTensor = "PickleTensor"
    SafeTensor = "SafeTensor"
    Other = "Other"


DEFAULT_FORMAT_ORDER = (ModelFileFormat.SafeTensor, ModelFileFormat.PickleTensor, ModelFileFormat.Other)


class ModelHashType(str, Enum):
    SHA256 = "SHA256"
    AutoV1 = "AutoV1"
    AutoV2 = "AutoV2"
    Blake3 = "Blake3"
    CRC32 = "CRC32"


class ScanResultCode(str, Enum):
    Pending = "Pending"
    Success = "Success"
    Danger = "Danger"
    Error = "Error"


class ScanExitCode(IntEnum):
    """Exit codes reported by the external scanning worker."""

    Pending = -1
    Success = 0
    Danger = 1
    Error = 2


RESULT_CODE_MAP = {
    ScanExitCode.Pending: ScanResultCode.Pending,
    ScanExitCode.Success: ScanResultCode.Success,
    ScanExitCode.Danger: ScanResultCode.Danger,
    ScanExitCode.Error: ScanResultCode.Error,
}


class ScannerTask(str, Enum):
    Import = "Import"
    Scan = "Scan"
    Hash = "Hash"
    Convert = "Convert"


DEFAULT_SCANNER_TASKS = (ScannerTask.Import, ScannerTask.Scan, ScannerTask.Hash)


class UserActivityType(str, Enum):
    ModelDownload = "ModelDownload"
