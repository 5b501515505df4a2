"""Schema definitions for Hashnode Distiller."""

from .assets import (
    AssetContext,
    AssetError,
    AssetOutcome,
    AssetProcessingResult,
    DownloadOutcome,
)
from .document import OutputDocument, sanitize_slug
from .events import (
    AssetDownloaded,
    ConversionCompleted,
    ConversionErrorEvent,
    ConversionStarting,
)
from .export import HashnodeExport, HashnodePost, PostMetadata
from .options import (
    ConversionOptions,
    ConverterConfig,
    DownloadOptions,
    LoggerConfig,
    OutputStructure,
)
from .results import ConversionErrorRecord, ConversionResult, ConvertedPost

__all__ = [
    "AssetContext",
    "AssetDownloaded",
    "AssetError",
    "AssetOutcome",
    "AssetProcessingResult",
    "ConversionCompleted",
    "ConversionErrorEvent",
    "ConversionErrorRecord",
    "ConversionOptions",
    "ConversionResult",
    "ConversionStarting",
    "ConvertedPost",
    "ConverterConfig",
    "DownloadOptions",
    "DownloadOutcome",
    "HashnodeExport",
    "HashnodePost",
    "LoggerConfig",
    "OutputDocument",
    "OutputStructure",
    "PostMetadata",
    "sanitize_slug",
]
