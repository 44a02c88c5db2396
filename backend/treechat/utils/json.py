"""JSON parsing helpers for columns stored as JSON text."""

import json
from typing import Any


def parse_json_list(raw: str | list | None) -> list[Any]:
    """Parse a JSON array column, returning [] on failure or empty.

    Accepts lists as-is without re-parsing. Returns [] for: None, empty
    string, invalid JSON, non-list JSON.
    """
    if raw is None:
        return []
    if isinstance(raw, list):
        return raw
    if isinstance(raw, str):
        if not raw:
            return []
        try:
            parsed = json.loads(raw)
        except (ValueError, TypeError):
            return []
        if isinstance(parsed, list):
            return parsed
    return []
