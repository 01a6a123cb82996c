"""JSON bundles: non-ZIP export/import of the repository.

``export_all`` produces::

    {
      "context-registry.json": {...},
      "contexts": {
        "<context>": {
          "manifest.json": {...},
          "versions": {"<version>": {"<file>": {...schema...}}}
        }
      }
    }

``parse_bundle`` accepts that document back.  The ``contexts`` key may be
absent; the registry key may not.
"""

from __future__ import annotations

import json
import logging
from typing import Optional

from schemata.archive.codec import RepositoryData, dump_json
from schemata.models.context import (
    ContextManifest,
    ContextRegistry,
    context_entry_to_dict,
    manifest_from_dict,
    manifest_to_dict,
    registry_from_dict,
    registry_to_dict,
)
from schemata.models.schema import SchemaDocument, schema_from_dict, schema_to_dict
from schemata.store.keys import MANIFEST_FILE, REGISTRY_FILE, cache_key, parse_cache_key

logger = logging.getLogger(__name__)


def export_context(
    context_name: str,
    version: str,
    registry: Optional[ContextRegistry],
    manifests: dict[str, ContextManifest],
    schemas: dict[str, SchemaDocument],
) -> str:
    """Bundle one context: its registry entry, manifest and one version's schemas."""
    entry = registry.entry(context_name) if registry else None
    manifest = manifests.get(context_name)

    bundled: dict[str, dict] = {}
    for key, schema in schemas.items():
        parts = parse_cache_key(key)
        if parts is None:
            continue
        ctx, ver, schema_file = parts
        if ctx == context_name and ver == version:
            bundled[schema_file] = schema_to_dict(schema)

    return dump_json(
        {
            "registry": context_entry_to_dict(entry) if entry else None,
            "manifest": manifest_to_dict(manifest) if manifest else None,
            "version": version,
            "schemas": bundled,
        }
    )


def export_all(
    registry: Optional[ContextRegistry],
    manifests: dict[str, ContextManifest],
    schemas: dict[str, SchemaDocument],
) -> str:
    """Bundle the whole repository, grouping cached schemas by version."""
    contexts: dict[str, dict] = {}
    for context_name, manifest in manifests.items():
        versions: dict[str, dict] = {}
        for key, schema in schemas.items():
            parts = parse_cache_key(key)
            if parts is None or parts[0] != context_name:
                continue
            _, version, schema_file = parts
            versions.setdefault(version, {})[schema_file] = schema_to_dict(schema)
        contexts[context_name] = {
            MANIFEST_FILE: manifest_to_dict(manifest),
            "versions": versions,
        }

    return dump_json(
        {
            REGISTRY_FILE: registry_to_dict(registry) if registry else None,
            "contexts": contexts,
        }
    )


def parse_bundle(text: str) -> Optional[RepositoryData]:
    """Parse an ``export_all`` document.

    Returns None for invalid JSON or when the registry key is missing or
    empty.  The returned data holds only what the bundle contains; callers
    decide whether to merge or replace.
    """
    try:
        data = json.loads(text)
        if not isinstance(data, dict) or not data.get(REGISTRY_FILE):
            logger.error("Invalid import format: missing %s", REGISTRY_FILE)
            return None

        registry = registry_from_dict(data[REGISTRY_FILE])
        manifests: dict[str, ContextManifest] = {}
        schemas: dict[str, SchemaDocument] = {}

        for context_name, context_data in (data.get("contexts") or {}).items():
            if context_data.get(MANIFEST_FILE):
                manifests[context_name] = manifest_from_dict(context_data[MANIFEST_FILE])
            for version, files in (context_data.get("versions") or {}).items():
                for schema_file, schema in files.items():
                    schemas[cache_key(context_name, version, schema_file)] = schema_from_dict(schema)
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        logger.error("Import failed: %s", exc)
        return None

    return RepositoryData(registry=registry, manifests=manifests, schemas=schemas)
