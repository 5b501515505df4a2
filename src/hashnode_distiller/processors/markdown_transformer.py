"""Clean up Hashnode markdown bodies before they are written."""

import re

from ..exceptions import TransformError

ALIGN_ATTRIBUTE_PATTERN = re.compile(r' align="[^"]*"')

CALLOUT_PATTERN = re.compile(
    r'<div data-node-type="callout">\s*'
    r'(?:<div data-node-type="callout-emoji">(?P<emoji>.*?)</div>\s*)?'
    r'<div data-node-type="callout-text">(?P<text>.*?)</div>\s*'
    r"</div>",
    re.DOTALL,
)

HARD_BREAK = "  "


class MarkdownTransformer:
    """Applies text cleanups to a markdown body.

    The transformation is pure and never touches image reference syntax.

    Attributes:
        remove_align_attributes: Strip Hashnode's ``align="..."`` attributes
        trim_trailing_whitespace: Strip trailing whitespace from lines,
            keeping exact two-space hard line breaks
        convert_callouts_to_blockquotes: Render Hashnode callout blocks as
            markdown blockquotes
    """

    def __init__(
        self,
        remove_align_attributes: bool = True,
        trim_trailing_whitespace: bool = False,
        convert_callouts_to_blockquotes: bool = False,
    ):
        self.remove_align_attributes = remove_align_attributes
        self.trim_trailing_whitespace = trim_trailing_whitespace
        self.convert_callouts_to_blockquotes = convert_callouts_to_blockquotes

    def transform(self, markdown: str) -> str:
        """Apply the enabled cleanups.

        Args:
            markdown: Raw markdown body

        Returns:
            The cleaned body

        Raises:
            TransformError: If markdown is not a string
        """
        if not isinstance(markdown, str):
            raise TransformError(
                f"Markdown content must be a string, got {type(markdown).__name__}"
            )

        result = markdown
        if self.remove_align_attributes:
            result = ALIGN_ATTRIBUTE_PATTERN.sub("", result)
        if self.convert_callouts_to_blockquotes:
            result = CALLOUT_PATTERN.sub(_callout_to_blockquote, result)
        if self.trim_trailing_whitespace:
            result = "\n".join(_trim_line(line) for line in result.split("\n"))
        return result


def _trim_line(line: str) -> str:
    stripped = line.rstrip(" \t")
    if line[len(stripped):] == HARD_BREAK and stripped:
        return line
    return stripped


def _callout_to_blockquote(match: re.Match) -> str:
    emoji = (match.group("emoji") or "").strip()
    lines = match.group("text").strip().splitlines() or [""]
    if emoji:
        lines[0] = f"{emoji} {lines[0]}".rstrip()
    return "\n".join(f"> {line}".rstrip() for line in lines)
