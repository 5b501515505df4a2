"""Output document domain object."""

import re
from dataclasses import dataclass
from pathlib import Path

UNSAFE_SLUG_CHARS = re.compile(r'[/\\:*?"<>|]')


def sanitize_slug(slug: str) -> str:
    """Make a post slug safe to use as a file or directory name.

    Args:
        slug: Raw slug from the export

    Returns:
        The trimmed slug with filesystem-unsafe characters replaced by "-"

    Raises:
        ValueError: If the slug is absolute, contains "..", or is empty

    Examples:
        >>> sanitize_slug("  my-post ")
        'my-post'
        >>> sanitize_slug("a:b*c")
        'a-b-c'
    """
    trimmed = slug.strip()
    if trimmed.startswith("/") or trimmed.startswith("\\"):
        raise ValueError(f"Invalid slug (absolute path): {slug}")
    if ".." in trimmed:
        raise ValueError(f"Invalid slug (path traversal): {slug}")

    sanitized = UNSAFE_SLUG_CHARS.sub("-", trimmed)
    if not sanitized:
        raise ValueError("Invalid slug (empty)")
    return sanitized


@dataclass
class OutputDocument:
    """A rendered markdown document ready to be written.

    Attributes:
        slug: Post slug
        frontmatter: YAML frontmatter block, including the "---" fences
        content: Markdown body
    """

    slug: str
    frontmatter: str
    content: str

    def render(self) -> str:
        return f"{self.frontmatter}\n{self.content}"

    def path_for(self, output_dir: Path, nested: bool = True) -> Path:
        """Output path for this document under output_dir."""
        safe_slug = sanitize_slug(self.slug)
        if nested:
            return output_dir / safe_slug / "index.md"
        return output_dir / f"{safe_slug}.md"
