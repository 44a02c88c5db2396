"""Plain-text sanitizing for user-supplied titles and summaries."""

import re

_TAG_RE = re.compile(r"<[^>]*>")


def sanitize_content(content: str | None) -> str:
    """Strip HTML tags and surrounding whitespace. None becomes ''."""
    if not content:
        return ""
    return _TAG_RE.sub("", content).strip()
