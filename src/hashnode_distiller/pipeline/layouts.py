"""Output layouts: where a post's document and images are written.

A layout bundles the three decisions that differ between output modes:
the document path, the "already converted" check, and the asset context
used for image localization. The rest of the pipeline is shared.

Nested:
    out/
    └── {slug}/
        ├── index.md
        ├── {uuid}.png
        └── .downloaded-markers/

Flat:
    out/
    ├── {slug}.md
    └── ...
    _images/
    ├── {uuid}.png
    └── .downloaded-markers/
"""

from abc import ABC, abstractmethod
from pathlib import Path

from schemas.assets import AssetContext
from schemas.document import sanitize_slug
from schemas.options import DEFAULT_IMAGE_FOLDER, DEFAULT_IMAGE_PREFIX, OutputStructure

from ..exceptions import FileWriteError, LayoutError
from ..services.file_writer import FileWriter


def _safe_slug(slug: str) -> str:
    try:
        return sanitize_slug(slug)
    except ValueError as e:
        raise FileWriteError(str(e), path=slug, operation="validate_path") from e


def _ensure_dir(path: Path) -> Path:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FileWriteError(
            f"Failed to create directory {path}: {e}", path=path, operation="create_dir"
        ) from e
    return path


class OutputLayout(ABC):
    """Strategy for mapping a post to output locations."""

    mode: str

    @abstractmethod
    def output_path(self, output_dir: Path, slug: str) -> Path:
        """Path of the document for slug."""

    def exists(self, output_dir: Path, slug: str) -> bool:
        """Whether the post has already been converted."""
        return FileWriter(output_mode=self.mode).post_exists(output_dir, slug)

    @abstractmethod
    def prepare_assets(self, output_dir: Path, slug: str) -> AssetContext:
        """Create the image directory for slug and describe how to reference it."""

    def validate(self, output_dir: Path) -> None:
        """Check that output_dir is usable with this layout."""
        return None


class NestedLayout(OutputLayout):
    """{out}/{slug}/index.md with images beside the document.

    The post directory is created by prepare_assets(), before images are
    localized and the document is written. It is not removed if a later
    stage fails, and since existence is checked on the directory, a run
    with skip_existing will then skip that post. Delete the directory (or
    run without skip_existing) to convert it again.
    """

    mode = "nested"

    def output_path(self, output_dir: Path, slug: str) -> Path:
        return Path(output_dir).resolve() / _safe_slug(slug) / "index.md"

    def prepare_assets(self, output_dir: Path, slug: str) -> AssetContext:
        post_dir = _ensure_dir(Path(output_dir).resolve() / _safe_slug(slug))
        return AssetContext(asset_dir=post_dir, path_prefix=".")


class FlatLayout(OutputLayout):
    """{out}/{slug}.md with images in a shared folder beside the output directory.

    Attributes:
        image_folder_name: Name of the shared image folder
        image_path_prefix: Prefix for rewritten image references
    """

    mode = "flat"

    def __init__(
        self,
        image_folder_name: str = DEFAULT_IMAGE_FOLDER,
        image_path_prefix: str = DEFAULT_IMAGE_PREFIX,
    ):
        self.image_folder_name = image_folder_name
        self.image_path_prefix = image_path_prefix

    def output_path(self, output_dir: Path, slug: str) -> Path:
        return Path(output_dir).resolve() / f"{_safe_slug(slug)}.md"

    def image_dir(self, output_dir: Path) -> Path:
        return Path(output_dir).resolve().parent / self.image_folder_name

    def validate(self, output_dir: Path) -> None:
        """Reject output directories directly under the filesystem root.

        The shared image folder is a sibling of the output directory, so
        the output directory needs a parent that is not the root.

        Raises:
            LayoutError: If output_dir has no usable parent
        """
        resolved = Path(output_dir).resolve()
        if resolved.parent == resolved or resolved.parent == Path(resolved.anchor):
            raise LayoutError(
                f"Invalid outputDir for flat mode: {output_dir}. Flat mode requires a "
                f"nested directory structure (e.g. ./blog/_posts) so that "
                f"{self.image_folder_name} can be created beside it."
            )

    def prepare_assets(self, output_dir: Path, slug: str) -> AssetContext:
        self.validate(output_dir)
        image_dir = _ensure_dir(self.image_dir(output_dir))
        return AssetContext(
            asset_dir=image_dir,
            path_prefix=self.image_path_prefix,
            marker_dir=image_dir,
        )


def create_layout(structure: OutputStructure | None = None) -> OutputLayout:
    """Build the layout for an OutputStructure."""
    structure = structure or OutputStructure()
    if structure.mode == "flat":
        return FlatLayout(structure.image_folder_name, structure.image_path_prefix)
    return NestedLayout()
