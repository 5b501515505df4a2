"""Processors that turn raw export records into markdown documents."""

from .frontmatter_generator import FrontmatterGenerator
from .markdown_transformer import MarkdownTransformer
from .post_parser import PostParser

__all__ = ["FrontmatterGenerator", "MarkdownTransformer", "PostParser"]
