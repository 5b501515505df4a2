"""Configuration schemas for the converter."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel

DEFAULT_IMAGE_FOLDER = "_images"
DEFAULT_IMAGE_PREFIX = "/images"


class DownloadOptions(BaseModel):
    """Settings for fetching remote assets.

    All durations are in seconds.

    Attributes:
        max_retries: Additional attempts after the first for transient failures
        retry_delay: Delay between attempts
        timeout: Per-attempt timeout
        download_delay: Delay after every fetch, to stay under CDN rate limits
        max_redirects: Maximum redirects followed per fetch
    """

    max_retries: int = 3
    retry_delay: float = 1.0
    timeout: float = 30.0
    download_delay: float = 0.2
    max_redirects: int = 5

    def to_client_config(self) -> dict:
        """Build an AssetDownloader config dict from these options."""
        return self.model_dump()


class OutputStructure(BaseModel):
    """Output layout selection.

    Attributes:
        mode: "nested" writes {out}/{slug}/index.md with images beside it;
            "flat" writes {out}/{slug}.md with images in a shared folder
        image_folder_name: Shared image folder, a sibling of the output
            directory (flat mode only)
        image_path_prefix: Prefix for rewritten image references (flat mode only)
    """

    mode: Literal["nested", "flat"] = "nested"
    image_folder_name: str = DEFAULT_IMAGE_FOLDER
    image_path_prefix: str = DEFAULT_IMAGE_PREFIX


class LoggerConfig(BaseModel):
    """ConversionLogger settings.

    Attributes:
        file_path: Optional log file, appended to on each run
        verbosity: "quiet" disables the log file; "verbose" logs debug lines
    """

    file_path: Path | None = None
    verbosity: Literal["quiet", "normal", "verbose"] = "normal"


class ConverterConfig(BaseModel):
    """Settings fixed for the lifetime of a Converter."""

    output_structure: OutputStructure = OutputStructure()


class ConversionOptions(BaseModel):
    """Per-run settings for Converter.convert_all_posts.

    Attributes:
        skip_existing: Skip posts whose output already exists
        download_options: Overrides for asset downloads during this run
        logger_config: Settings for a run logger when the Converter has none
    """

    skip_existing: bool = True
    download_options: DownloadOptions | None = None
    logger_config: LoggerConfig | None = None
