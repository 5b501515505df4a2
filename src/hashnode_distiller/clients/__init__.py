"""Network clients for remote assets."""

from .asset_downloader import AssetDownloader, extract_filename
from .client import Client
from .exceptions import (
    APIError,
    ClientError,
    ConnectionError,
    ForbiddenError,
    NotFoundError,
    RateLimitError,
    RetriesExhaustedError,
)

__all__ = [
    "Client",
    "AssetDownloader",
    "extract_filename",
    "ClientError",
    "ConnectionError",
    "APIError",
    "ForbiddenError",
    "NotFoundError",
    "RateLimitError",
    "RetriesExhaustedError",
]
