"""Hashnode export schemas.

A Hashnode export is a single JSON document with a top-level ``posts``
array. Only the fields the converter reads are declared here; everything
else in a post record is preserved as extra data.

Example export:
    {
        "posts": [
            {
                "slug": "hello-world",
                "title": "Hello World",
                "dateAdded": "2023-01-01T12:00:00.000Z",
                "brief": "A first post",
                "contentMarkdown": "# Hello",
                "coverImage": "https://cdn.hashnode.com/res/hashnode/image/upload/...",
                "tags": ["intro"]
            }
        ]
    }
"""

from datetime import datetime

from pydantic import BaseModel


class HashnodePost(BaseModel):
    """A raw post record from a Hashnode export.

    Field names follow the export's camelCase keys. Nothing is required at
    this layer; PostParser decides what a usable post looks like.
    """

    model_config = {"extra": "allow"}

    slug: str | None = None
    title: str | None = None
    dateAdded: str | None = None
    brief: str | None = None
    contentMarkdown: str | None = None
    coverImage: str | None = None
    tags: list[str] | None = None


class HashnodeExport(BaseModel):
    """Top-level export document."""

    model_config = {"extra": "allow"}

    posts: list


class PostMetadata(BaseModel):
    """Validated metadata for a single post.

    Attributes:
        title: Post title, trimmed
        slug: URL slug, trimmed
        date_added: ISO 8601 UTC timestamp string (YYYY-MM-DDTHH:MM:SS(.mmm)Z)
        brief: Short description, empty string when absent
        content_markdown: Raw markdown body
        cover_image: Cover image URL, if any
        tags: Tag names, if any
    """

    title: str
    slug: str
    date_added: str
    brief: str = ""
    content_markdown: str
    cover_image: str | None = None
    tags: list[str] | None = None

    @property
    def published_at(self) -> datetime:
        """Publication timestamp as a timezone-aware datetime."""
        return datetime.fromisoformat(self.date_added.replace("Z", "+00:00"))
