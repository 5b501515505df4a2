"""Jinja2 filters for frontmatter rendering.

These filters are used in frontmatter.md.j2 to emit YAML scalars.
"""

from datetime import datetime, timezone


def yaml_string(value: str | None) -> str:
    """Render a value as a double-quoted YAML string on a single line.

    Args:
        value: String to quote

    Returns:
        The quoted string with backslashes and quotes escaped and line
        breaks collapsed to spaces

    Examples:
        >>> yaml_string('Post with "Quotes"')
        '"Post with \\\\"Quotes\\\\""'
        >>> yaml_string("two\\nlines")
        '"two lines"'
    """
    text = one_line(value)
    text = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


def one_line(value: str | None) -> str:
    """Collapse line breaks into single spaces.

    Examples:
        >>> one_line("a\\r\\nb\\nc")
        'a b c'
    """
    if not value:
        return ""
    return " ".join(value.replace("\r\n", "\n").split("\n"))


def format_date(date_string: str) -> str:
    """Normalize an ISO 8601 timestamp to UTC with millisecond precision.

    Args:
        date_string: Timestamp such as "2023-01-01T12:00:00Z"

    Returns:
        Timestamp like "2023-01-01T12:00:00.000Z", or the input unchanged
        if it cannot be parsed

    Examples:
        >>> format_date("2023-01-01T12:00:00Z")
        '2023-01-01T12:00:00.000Z'
        >>> format_date("not a date")
        'not a date'
    """
    if not date_string:
        return ""
    try:
        dt = datetime.fromisoformat(date_string.replace("Z", "+00:00"))
    except ValueError:
        return date_string
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


# Registry of all filters for easy registration with Jinja2
FILTERS = {
    "yaml_string": yaml_string,
    "one_line": one_line,
    "format_date": format_date,
}
