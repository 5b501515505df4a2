"""Extract and validate post metadata from raw export records."""

import logging
import re
from datetime import datetime

from pydantic import ValidationError

from schemas.export import HashnodePost, PostMetadata

from ..exceptions import PostParseError

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d{3})?Z$")

REQUIRED_FIELDS = ("title", "slug", "dateAdded", "contentMarkdown")


class PostParser:
    """Turns a raw Hashnode post record into PostMetadata."""

    def parse(self, raw_post: dict) -> PostMetadata:
        """Parse a raw post record.

        Args:
            raw_post: A single entry of the export's "posts" array

        Returns:
            Validated PostMetadata

        Raises:
            PostParseError: If a required field is missing or empty, or
                dateAdded is not an ISO 8601 UTC timestamp
        """
        if not isinstance(raw_post, dict):
            raise PostParseError(f"Post must be an object, got {type(raw_post).__name__}")

        try:
            post = HashnodePost.model_validate(raw_post)
        except ValidationError as e:
            field = ".".join(str(part) for part in e.errors()[0]["loc"])
            raise PostParseError(f"Invalid field: {field}") from e

        values: dict[str, str] = {}
        for name in REQUIRED_FIELDS:
            value = getattr(post, name)
            if value is None or not value.strip():
                raise PostParseError(f"Missing required field: {name}")
            values[name] = value.strip()

        date_added = values["dateAdded"]
        if not self._is_valid_date(date_added):
            raise PostParseError(
                f"Invalid field: dateAdded must be an ISO 8601 UTC timestamp, got {date_added!r}"
            )

        tags = [tag.strip() for tag in post.tags or [] if tag.strip()]

        return PostMetadata(
            title=values["title"],
            slug=values["slug"],
            date_added=date_added,
            brief=(post.brief or "").strip(),
            content_markdown=values["contentMarkdown"],
            cover_image=(post.coverImage or "").strip() or None,
            tags=tags or None,
        )

    def _is_valid_date(self, value: str) -> bool:
        if not DATE_PATTERN.match(value):
            return False
        try:
            datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return False
        return True
