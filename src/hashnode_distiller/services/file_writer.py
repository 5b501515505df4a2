"""Write converted posts to disk."""

import logging
from pathlib import Path
from typing import Literal

from schemas.document import OutputDocument, sanitize_slug

from ..exceptions import FileWriteError

logger = logging.getLogger(__name__)

TEMP_SUFFIX = ".tmp"


class FileWriter:
    """Writes markdown documents for posts.

    In "nested" mode a post is written to {output_dir}/{slug}/index.md;
    in "flat" mode to {output_dir}/{slug}.md. With atomic writes enabled
    the document is written to a ".tmp" file and renamed into place, so an
    interrupted write never leaves a partial document at the final path.

    Attributes:
        overwrite: Replace existing documents instead of failing
        encoding: Text encoding for written files
        atomic_writes: Write via a temporary file and rename
        output_mode: "nested" or "flat"
    """

    def __init__(
        self,
        overwrite: bool = False,
        encoding: str = "utf-8",
        atomic_writes: bool = True,
        output_mode: Literal["nested", "flat"] = "nested",
    ):
        self.overwrite = overwrite
        self.encoding = encoding
        self.atomic_writes = atomic_writes
        self.output_mode = output_mode

    @property
    def nested(self) -> bool:
        return self.output_mode == "nested"

    def write_post(
        self,
        output_dir: Path,
        slug: str,
        frontmatter: str,
        content: str,
    ) -> Path:
        """Write a post document.

        Args:
            output_dir: Root output directory
            slug: Post slug, sanitized before use
            frontmatter: YAML frontmatter block including "---" markers
            content: Markdown body

        Returns:
            Absolute path of the written document

        Raises:
            FileWriteError: If the slug is unsafe, the document exists and
                overwrite is disabled, or any filesystem operation fails
        """
        safe_slug = self._sanitize(slug)
        document = OutputDocument(slug=safe_slug, frontmatter=frontmatter, content=content)
        path = document.path_for(Path(output_dir).resolve(), nested=self.nested)

        if path.exists() and not self.overwrite:
            raise FileWriteError(
                f"File already exists: {path}", path=path, operation="write_file"
            )

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileWriteError(
                f"Failed to create directory {path.parent}: {e}",
                path=path.parent,
                operation="create_dir",
            ) from e

        if self.atomic_writes:
            self._write_atomic(path, document.render())
        else:
            self._write_direct(path, document.render())

        logger.debug(f"Wrote {path}")
        return path

    def post_exists(self, output_dir: Path, slug: str) -> bool:
        """Check whether a post has already been written.

        Nested mode checks for the post directory, flat mode for the
        document file. Unsafe slugs never exist.
        """
        try:
            safe_slug = sanitize_slug(slug)
        except ValueError:
            return False

        output_dir = Path(output_dir)
        if self.nested:
            return (output_dir / safe_slug).is_dir()
        return (output_dir / f"{safe_slug}.md").is_file()

    def _sanitize(self, slug: str) -> str:
        try:
            return sanitize_slug(slug)
        except ValueError as e:
            raise FileWriteError(str(e), path=slug, operation="validate_path") from e

    def _write_direct(self, path: Path, text: str) -> None:
        try:
            path.write_text(text, encoding=self.encoding)
        except OSError as e:
            raise FileWriteError(
                f"Failed to write {path}: {e}", path=path, operation="write_file"
            ) from e

    def _write_atomic(self, path: Path, text: str) -> None:
        temp_path = path.with_name(path.name + TEMP_SUFFIX)

        try:
            temp_path.write_text(text, encoding=self.encoding)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise FileWriteError(
                f"Failed to write {temp_path}: {e}", path=temp_path, operation="write_file"
            ) from e

        try:
            temp_path.replace(path)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise FileWriteError(
                f"Failed to rename {temp_path} to {path}: {e}",
                path=path,
                operation="rename_file",
            ) from e
