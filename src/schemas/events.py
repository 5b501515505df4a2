"""Conversion event payloads.

Events are plain dataclasses dispatched synchronously by the Converter's
EventEmitter. All events for post i are emitted before any event for
post i+1.
"""

from dataclasses import dataclass
from typing import Literal

from .results import ConvertedPost

ErrorType = Literal["parse", "transform", "write", "fatal"]


@dataclass(frozen=True)
class ConversionStarting:
    """Emitted before any pipeline stage runs for a post."""

    post: dict
    index: int
    total: int

    @property
    def title(self) -> str:
        return str(self.post.get("title") or "")


@dataclass(frozen=True)
class ConversionCompleted:
    """Emitted exactly once per post, after it converted, failed, or was skipped."""

    result: ConvertedPost
    index: int
    total: int
    duration_ms: int


@dataclass(frozen=True)
class AssetDownloaded:
    """Emitted once per asset that was fetched, attempted, or found cached."""

    filename: str
    post_slug: str
    success: bool
    error: str | None = None
    is_permanent: bool = False


@dataclass(frozen=True)
class ConversionErrorEvent:
    """Emitted for a failed post or a run-level fatal error (slug is None)."""

    type: ErrorType
    message: str
    slug: str | None = None
