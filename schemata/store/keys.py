"""Composite cache keys and document paths.

Loaded schema documents live in one flat mapping keyed by
``"{context}@{version}/{file}"``.  The archive layout and the document store
layout are the same triple spelled as a path: ``{path}/v{version}/{file}``.
"""

from __future__ import annotations

import re
from typing import Optional

REGISTRY_FILE = "context-registry.json"
MANIFEST_FILE = "manifest.json"

# Inverse of cache_key(); must stay in step with it.
_CACHE_KEY_RE = re.compile(r"^([^@]+)@([^/]+)/(.+)$")


def cache_key(context_name: str, version: str, schema_file: str) -> str:
    return f"{context_name}@{version}/{schema_file}"


def parse_cache_key(key: str) -> Optional[tuple[str, str, str]]:
    """Split a cache key into ``(context, version, file)`` or return None."""
    match = _CACHE_KEY_RE.match(key)
    if match is None:
        return None
    return match.group(1), match.group(2), match.group(3)


def manifest_path(context_path: str) -> str:
    return f"{context_path}/{MANIFEST_FILE}"


def version_folder(context_path: str, version: str) -> str:
    return f"{context_path}/v{version}"


def schema_path(context_path: str, version: str, schema_file: str) -> str:
    return f"{version_folder(context_path, version)}/{schema_file}"
