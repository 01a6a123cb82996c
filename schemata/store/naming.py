"""Input formatting for user-entered names (context names, schema files)."""

from __future__ import annotations

import re

_WHITESPACE_RE = re.compile(r"\s+")


def context_slug(name: str) -> str:
    """Lowercase a context name and replace whitespace runs with ``_``."""
    return _WHITESPACE_RE.sub("_", name.strip().lower())


def schema_filename(name: str) -> str:
    """Normalize a schema file name and make sure it ends in ``.json``."""
    filename = _WHITESPACE_RE.sub("_", name.strip().lower())
    return filename if filename.endswith(".json") else f"{filename}.json"
