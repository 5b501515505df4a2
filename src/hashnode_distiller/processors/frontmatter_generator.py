"""YAML frontmatter generation for converted posts."""

from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from schemas.export import PostMetadata

from .filters import FILTERS

TEMPLATES_DIR = Path(__file__).parent / "templates"


class FrontmatterGenerator:
    """Render PostMetadata as a YAML frontmatter block.

    Output looks like:

        ---
        title: "My Post"
        date: 2023-01-01T12:00:00.000Z
        description: "A brief description"
        slug: "my-post"
        coverImage: "https://..."
        tags:
          - "tag"
        ---

    coverImage and tags are omitted when the post has none.

    Attributes:
        template_name: Name of the Jinja2 template file
    """

    def __init__(
        self,
        template_name: str = "frontmatter.md.j2",
        templates_dir: Path | None = None,
    ):
        """Initialize the generator.

        Args:
            template_name: Name of the Jinja2 template file
            templates_dir: Directory containing templates (default: bundled templates)
        """
        self.template_name = template_name
        self.templates_dir = templates_dir or TEMPLATES_DIR

        self._env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        for name, func in FILTERS.items():
            self._env.filters[name] = func

    def generate(self, metadata: PostMetadata) -> str:
        """Render frontmatter for a post.

        Args:
            metadata: Parsed post metadata

        Returns:
            Frontmatter text, including the opening and closing "---" lines
        """
        template = self._env.get_template(self.template_name)
        return template.render(post=metadata)
