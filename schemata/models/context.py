"""Context registry and manifest models.

The registry (``context-registry.json``) indexes every context.  Each
context has its own manifest (``{path}/manifest.json``) listing versions,
and per version the schema files that exist in it plus a changelog.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from schemata.models.base import compact, extras, key_order_field, string_list
from schemata.models.localized import LocalizedValue

DEFAULT_CONTEXT = "default"
INITIAL_VERSION = "1.0.0"
CORE_SCHEMA_FILE = "core.json"
CONTENT_TYPE_FIELD_ID = "ccm:oeh_flex_lrt"
DEFAULT_CONTENT_TYPE_ICON = "article"


class ChangeType(str, Enum):
    added = "added"
    changed = "changed"
    removed = "removed"
    fixed = "fixed"


@dataclass
class ChangelogEntry:
    """A single changelog line for a version (most recent first)."""

    date: str
    type: str
    description: str
    field_id: Optional[str] = None
    author: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)
    key_order: tuple[str, ...] = key_order_field()


@dataclass
class VersionEntry:
    """One version of a context.

    ``schemas`` is the authoritative list of schema files in this version.
    """

    release_date: str
    schemas: list[str] = field(default_factory=list)
    is_default: Optional[bool] = None
    changelog: Optional[list[ChangelogEntry]] = None
    extra: dict[str, Any] = field(default_factory=dict)
    key_order: tuple[str, ...] = key_order_field()


@dataclass
class ContextManifest:
    """Per-context index of versions."""

    context_name: str
    name: str
    versions: dict[str, VersionEntry] = field(default_factory=dict)
    based_on: Optional[str] = None  # e.g. "default@1.8.0"
    extra: dict[str, Any] = field(default_factory=dict)
    key_order: tuple[str, ...] = key_order_field()

    def flagged_default(self) -> Optional[str]:
        """The first version marked ``isDefault``, if any."""
        for version, entry in self.versions.items():
            if entry.is_default:
                return version
        return None

    def latest_version(self) -> Optional[str]:
        if not self.versions:
            return None
        return max(self.versions, key=version_sort_key)

    def default_version(self) -> Optional[str]:
        """The flagged default version, else the highest version."""
        return self.flagged_default() or self.latest_version()


@dataclass
class ContextEntry:
    """A context as listed in the registry.

    ``path`` is the storage folder name; it is kept equal to the registry
    key in practice but nothing requires that.
    """

    name: str
    default_version: str
    path: str
    description: Optional[str] = None
    based_on: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)
    key_order: tuple[str, ...] = key_order_field()


@dataclass
class ContextRegistry:
    """Root index of all contexts."""

    contexts: dict[str, ContextEntry] = field(default_factory=dict)
    default_context: str = DEFAULT_CONTEXT
    extra: dict[str, Any] = field(default_factory=dict)
    key_order: tuple[str, ...] = key_order_field()

    def entry(self, context_name: str) -> Optional[ContextEntry]:
        return self.contexts.get(context_name)

    def path_for(self, context_name: str) -> str:
        """Storage folder for a context, falling back to its name."""
        entry = self.contexts.get(context_name)
        return entry.path if entry and entry.path else context_name


@dataclass
class ContentType:
    """Projection of a ``ccm:oeh_flex_lrt`` concept that names a schema file."""

    label: LocalizedValue
    schema_file: str
    icon: str = DEFAULT_CONTENT_TYPE_ICON


# ---------------------------------------------------------------------------
# Version ordering
# ---------------------------------------------------------------------------

_VERSION_PART_RE = re.compile(r"\d+|[^\d.]+")


def version_sort_key(version: str) -> tuple:
    """Sort key for semantic-version-like strings.

    Numeric parts compare as numbers (``1.10.0 > 1.9.0``); text parts sort
    after numbers at the same position.
    """
    key = []
    for part in _VERSION_PART_RE.findall(version.lstrip("v")):
        if part.isdigit():
            key.append((0, int(part), ""))
        else:
            key.append((1, 0, part))
    return tuple(key)


# ---------------------------------------------------------------------------
# Converters
# ---------------------------------------------------------------------------

_CHANGELOG_KEYS = ("date", "type", "description", "fieldId", "author")
_VERSION_KEYS = ("releaseDate", "isDefault", "schemas", "changelog")
_MANIFEST_KEYS = ("contextName", "name", "basedOn", "versions")
_ENTRY_KEYS = ("name", "description", "defaultVersion", "path", "basedOn")
_REGISTRY_KEYS = ("contexts", "defaultContext")


def changelog_from_dict(d: dict) -> ChangelogEntry:
    return ChangelogEntry(
        date=d.get("date", ""),
        type=d.get("type", ChangeType.changed.value),
        description=d.get("description", ""),
        field_id=d.get("fieldId"),
        author=d.get("author"),
        extra=extras(d, _CHANGELOG_KEYS),
        key_order=tuple(d),
    )


def changelog_to_dict(c: ChangelogEntry) -> dict:
    change_type = c.type.value if isinstance(c.type, ChangeType) else c.type
    return compact(
        [
            ("date", c.date),
            ("type", change_type),
            ("description", c.description),
            ("fieldId", c.field_id),
            ("author", c.author),
        ],
        c.extra,
        c.key_order,
    )


def version_from_dict(d: dict) -> VersionEntry:
    changelog = d.get("changelog")
    return VersionEntry(
        release_date=d.get("releaseDate", ""),
        is_default=d.get("isDefault"),
        schemas=string_list(d.get("schemas", [])),
        changelog=[changelog_from_dict(c) for c in changelog] if changelog is not None else None,
        extra=extras(d, _VERSION_KEYS),
        key_order=tuple(d),
    )


def version_to_dict(v: VersionEntry) -> dict:
    return compact(
        [
            ("releaseDate", v.release_date),
            ("isDefault", v.is_default),
            ("schemas", list(v.schemas)),
            ("changelog", [changelog_to_dict(c) for c in v.changelog] if v.changelog is not None else None),
        ],
        v.extra,
        v.key_order,
    )


def manifest_from_dict(d: dict) -> ContextManifest:
    return ContextManifest(
        context_name=d.get("contextName", ""),
        name=d.get("name", ""),
        based_on=d.get("basedOn"),
        versions={k: version_from_dict(v) for k, v in d.get("versions", {}).items()},
        extra=extras(d, _MANIFEST_KEYS),
        key_order=tuple(d),
    )


def manifest_to_dict(m: ContextManifest) -> dict:
    return compact(
        [
            ("contextName", m.context_name),
            ("name", m.name),
            ("basedOn", m.based_on),
            ("versions", {k: version_to_dict(v) for k, v in m.versions.items()}),
        ],
        m.extra,
        m.key_order,
    )


def context_entry_from_dict(d: dict) -> ContextEntry:
    return ContextEntry(
        name=d.get("name", ""),
        description=d.get("description"),
        default_version=d.get("defaultVersion", INITIAL_VERSION),
        path=d.get("path", ""),
        based_on=d.get("basedOn"),
        extra=extras(d, _ENTRY_KEYS),
        key_order=tuple(d),
    )


def context_entry_to_dict(e: ContextEntry) -> dict:
    return compact(
        [
            ("name", e.name),
            ("description", e.description),
            ("defaultVersion", e.default_version),
            ("path", e.path),
            ("basedOn", e.based_on),
        ],
        e.extra,
        e.key_order,
    )


def registry_from_dict(d: dict) -> ContextRegistry:
    return ContextRegistry(
        contexts={k: context_entry_from_dict(v) for k, v in d.get("contexts", {}).items()},
        default_context=d.get("defaultContext", DEFAULT_CONTEXT),
        extra=extras(d, _REGISTRY_KEYS),
        key_order=tuple(d),
    )


def registry_to_dict(r: ContextRegistry) -> dict:
    return compact(
        [
            ("contexts", {k: context_entry_to_dict(v) for k, v in r.contexts.items()}),
            ("defaultContext", r.default_context),
        ],
        r.extra,
        r.key_order,
    )


def content_type_to_dict(c: ContentType) -> dict:
    return {"label": c.label, "icon": c.icon, "schema_file": c.schema_file}
