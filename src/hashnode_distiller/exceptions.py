"""Exceptions raised by the conversion pipeline.

Each pipeline stage raises a subclass of DistillerError whose ``kind``
names the stage that failed. The Converter reports that kind on error
events instead of inspecting error messages.
"""

from pathlib import Path


class DistillerError(Exception):
    """Base exception for all conversion errors."""

    kind = "fatal"

    def __init__(self, message: str, *args, **kwargs):
        self.message = message
        super().__init__(message, *args, **kwargs)


class ExportError(DistillerError):
    """Raised when the export file cannot be loaded. Aborts the whole run."""

    kind = "fatal"


class PostParseError(DistillerError):
    """Raised when a post is missing a required field or has a malformed one."""

    kind = "parse"


class TransformError(DistillerError):
    """Raised when a post body cannot be cleaned up."""

    kind = "transform"


class FileWriteError(DistillerError):
    """Raised when a document cannot be written.

    Attributes:
        path: Path involved in the failed operation
        operation: One of "validate_path", "create_dir", "write_file", "rename_file"
    """

    kind = "write"

    def __init__(
        self,
        message: str,
        path: Path | str,
        operation: str,
        *args,
        **kwargs,
    ):
        self.path = str(path)
        self.operation = operation
        super().__init__(message, *args, **kwargs)


class AssetDirectoryError(DistillerError):
    """Raised when assets are localized into a directory that does not exist."""

    kind = "write"


class LayoutError(DistillerError):
    """Raised when an output directory is unusable for the selected layout."""

    kind = "write"
