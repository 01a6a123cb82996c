"""ZIP archive codec -- the repository as a flat, path-addressed bundle.

Layout (identical to the document store layout)::

    context-registry.json
    {context.path}/manifest.json
    {context.path}/v{version}/{schema_file}

Both directions are pure functions of the store's data shapes.  Export is
deterministic: entries carry a fixed timestamp and are written in manifest
order, so exporting unchanged data twice yields identical bytes.
"""

from __future__ import annotations

import io
import json
import logging
import zipfile
import zlib
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from schemata.models.context import (
    ContextManifest,
    ContextRegistry,
    manifest_from_dict,
    manifest_to_dict,
    registry_from_dict,
    registry_to_dict,
)
from schemata.models.schema import SchemaDocument, schema_from_dict, schema_to_dict
from schemata.store.keys import (
    REGISTRY_FILE,
    cache_key,
    manifest_path,
    schema_path,
)

logger = logging.getLogger(__name__)

# Earliest timestamp a ZIP entry can carry; fixed so output is reproducible.
_ENTRY_TIMESTAMP = (1980, 1, 1, 0, 0, 0)


@dataclass
class RepositoryData:
    """Snapshot of everything an archive holds."""

    registry: ContextRegistry
    manifests: dict[str, ContextManifest] = field(default_factory=dict)
    schemas: dict[str, SchemaDocument] = field(default_factory=dict)


def dump_json(data: Any) -> str:
    """Pretty-print JSON the way the schemata files are stored."""
    return json.dumps(data, indent=2, ensure_ascii=False)


def export_filename(day: Optional[date] = None) -> str:
    day = day or date.today()
    return f"schemata-export-{day.isoformat()}.zip"


def archive_entries(
    registry: ContextRegistry,
    manifests: dict[str, ContextManifest],
    schemas: dict[str, SchemaDocument],
) -> list[tuple[str, str]]:
    """List ``(path, json_text)`` pairs in archive order.

    Only documents named by a manifest are included; cached documents that
    no manifest lists are left out.
    """
    entries = [(REGISTRY_FILE, dump_json(registry_to_dict(registry)))]
    for context_name, manifest in manifests.items():
        folder = registry.path_for(context_name)
        entries.append((manifest_path(folder), dump_json(manifest_to_dict(manifest))))
        for version, version_entry in manifest.versions.items():
            for schema_file in version_entry.schemas:
                schema = schemas.get(cache_key(context_name, version, schema_file))
                if schema is None:
                    continue
                entries.append(
                    (schema_path(folder, version, schema_file), dump_json(schema_to_dict(schema)))
                )
    return entries


def build_archive(
    registry: ContextRegistry,
    manifests: dict[str, ContextManifest],
    schemas: dict[str, SchemaDocument],
) -> bytes:
    """Serialize the repository into ZIP bytes."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for path, text in archive_entries(registry, manifests, schemas):
            info = zipfile.ZipInfo(path, date_time=_ENTRY_TIMESTAMP)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = 0o644 << 16
            zf.writestr(info, text.encode("utf-8"))
    return buffer.getvalue()


def write_documents(data: RepositoryData, target: Any) -> int:
    """Write the archive layout into a writable document store.

    *target* needs a ``write(path, bytes)`` method.  Returns the number of
    files written.
    """
    entries = archive_entries(data.registry, data.manifests, data.schemas)
    for path, text in entries:
        target.write(path, text.encode("utf-8"))
    return len(entries)


def _read_json(zf: zipfile.ZipFile, path: str) -> Any:
    return json.loads(zf.read(path).decode("utf-8"))


def read_archive(data: bytes) -> Optional[RepositoryData]:
    """Parse ZIP bytes back into repository data.

    Returns None when the archive has no root ``context-registry.json`` or
    cannot be parsed at all.  Contexts, manifests and schema files that are
    referenced but missing from the archive are skipped.
    """
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            names = set(zf.namelist())
            if REGISTRY_FILE not in names:
                logger.error("No %s found in archive", REGISTRY_FILE)
                return None

            registry = registry_from_dict(_read_json(zf, REGISTRY_FILE))
            manifests: dict[str, ContextManifest] = {}
            schemas: dict[str, SchemaDocument] = {}

            for context_name in registry.contexts:
                folder = registry.path_for(context_name)
                if manifest_path(folder) not in names:
                    logger.debug("No manifest for context %s in archive", context_name)
                    continue
                manifest = manifest_from_dict(_read_json(zf, manifest_path(folder)))
                manifests[context_name] = manifest

                for version, version_entry in manifest.versions.items():
                    for schema_file in version_entry.schemas:
                        path = schema_path(folder, version, schema_file)
                        if path not in names:
                            continue
                        schemas[cache_key(context_name, version, schema_file)] = schema_from_dict(
                            _read_json(zf, path)
                        )
    except (
        zipfile.BadZipFile,
        zlib.error,
        EOFError,
        RuntimeError,  # encrypted entry
        NotImplementedError,  # unsupported compression method
        UnicodeDecodeError,
        ValueError,
        KeyError,
        TypeError,
        AttributeError,
    ) as exc:
        logger.error("Archive import failed: %s", exc)
        return None

    return RepositoryData(registry=registry, manifests=manifests, schemas=schemas)
