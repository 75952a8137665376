"""gmaextract - Garry's Mod GMA addon archive extractor."""

from gmaextract.cancellation import CancellationToken
from gmaextract.engine import (
    ArchiveInfo,
    ExtractOutcome,
    ExtractResult,
    ExtractState,
    GmaExtractor,
    inspect_archive,
)
from gmaextract.errors import (
    EmptyTableError,
    ExtractCancelledError,
    GmaError,
    InvalidFormatError,
    TruncatedError,
)
from gmaextract.extractor import ExtractProgress, ProgressCallback
from gmaextract.parser import ArchiveMetadata, FileEntry

__version__ = "0.1.0"

__all__ = [
    "ArchiveInfo",
    "ArchiveMetadata",
    "CancellationToken",
    "EmptyTableError",
    "ExtractCancelledError",
    "ExtractOutcome",
    "ExtractProgress",
    "ExtractResult",
    "ExtractState",
    "FileEntry",
    "GmaError",
    "GmaExtractor",
    "InvalidFormatError",
    "ProgressCallback",
    "TruncatedError",
    "inspect_archive",
]
