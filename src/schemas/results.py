"""Conversion result schemas."""

from pydantic import BaseModel


class ConvertedPost(BaseModel):
    """Outcome of converting a single post.

    Attributes:
        slug: Post slug (or a fallback identifier for unparseable posts)
        title: Post title, empty if it could not be read
        output_path: Path of the written (or already existing) document
        success: Whether the post is available at output_path
        error: Error message for failed conversions
    """

    slug: str
    title: str = ""
    output_path: str = ""
    success: bool
    error: str | None = None


class ConversionErrorRecord(BaseModel):
    """A post that failed to convert."""

    slug: str
    error: str


class ConversionResult(BaseModel):
    """Aggregate result of a conversion run.

    Attributes:
        converted: Number of posts written during this run
        skipped: Number of posts skipped because output already existed
        errors: Posts that failed, with their error messages
        duration: Human-readable wall-clock duration ("3s", "1m 5s")
        elapsed_seconds: Wall-clock duration in seconds
    """

    converted: int = 0
    skipped: int = 0
    errors: list[ConversionErrorRecord] = []
    duration: str = "0s"
    elapsed_seconds: float = 0.0

    @property
    def failed(self) -> int:
        return len(self.errors)


def format_duration(seconds: float) -> str:
    """Format elapsed seconds as a short human-readable duration.

    Examples:
        >>> format_duration(3.4)
        '3s'
        >>> format_duration(65)
        '1m 5s'
    """
    total = int(seconds)
    minutes, secs = divmod(total, 60)
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"
