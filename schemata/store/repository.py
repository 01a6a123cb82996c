"""Repository store -- owns registry, manifests and loaded schema documents.

One ``RepositoryStore`` is constructed per editing session and passed to
whatever presents it (CLI, REST app).  It holds:

- ``registry``: the ``ContextRegistry`` (or None before loading)
- ``manifests``: context name -> ``ContextManifest``
- ``schemas``: ``"{context}@{version}/{file}"`` -> ``SchemaDocument``
- the four navigation cursors and the ``error`` / dirty / loading flags

Every mutation is copy-on-write: the affected container is copied, the copy
is changed, and the attribute is reassigned in one step.  Published entity
instances are never changed in place, so a caller holding an earlier
``store.schemas`` keeps a consistent snapshot.

Operations never raise.  Failures land in ``error`` or in a ``False`` /
``None`` return; a reference to something that is not cached is a no-op.
"""

from __future__ import annotations

import copy
import dataclasses
import logging
from dataclasses import replace
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

from schemata.archive import bundle, codec
from schemata.models.context import (
    CONTENT_TYPE_FIELD_ID,
    CORE_SCHEMA_FILE,
    DEFAULT_CONTENT_TYPE_ICON,
    DEFAULT_CONTEXT,
    INITIAL_VERSION,
    ChangelogEntry,
    ChangeType,
    ContentType,
    ContextEntry,
    ContextManifest,
    ContextRegistry,
    VersionEntry,
    manifest_from_dict,
    registry_from_dict,
)
from schemata.models.localized import localized
from schemata.models.schema import (
    SchemaDocument,
    SchemaField,
    SchemaGroup,
    new_schema_document,
    schema_from_dict,
)
from schemata.models.vocabulary import Vocabulary, VocabularyConcept, VocabularyType
from schemata.store.document_store import DocumentStore, DocumentStoreError
from schemata.store.keys import REGISTRY_FILE, cache_key, manifest_path, schema_path
from schemata.vocab.skos import SkosJsonAdapter, VocabularyAdapter, VocabularyFormatError

logger = logging.getLogger(__name__)

# Malformed documents surface as any of these while converting.
_PARSE_ERRORS = (DocumentStoreError, ValueError, KeyError, TypeError, AttributeError)


class FieldIdPolicy(str, Enum):
    """What ``add_field`` does when the id already exists in the document."""

    reject = "reject"  # refuse, set error
    suffix = "suffix"  # rename to id_2, id_3, ...
    allow = "allow"  # accept the duplicate


def _today() -> str:
    return date.today().isoformat()


def utc_timestamp() -> str:
    """UTC timestamp in the ``2024-05-01T12:00:00.000Z`` form."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def _field_names(cls: type) -> set[str]:
    return {f.name for f in dataclasses.fields(cls)}


class RepositoryStore:
    """In-memory schema repository with its editing operations."""

    def __init__(
        self,
        documents: Optional[DocumentStore] = None,
        field_id_policy: FieldIdPolicy | str = FieldIdPolicy.reject,
        active_context: str = DEFAULT_CONTEXT,
        active_version: Optional[str] = None,
    ) -> None:
        self.documents = documents
        self.field_id_policy = FieldIdPolicy(field_id_policy)

        self.registry: Optional[ContextRegistry] = None
        self.manifests: dict[str, ContextManifest] = {}
        self.schemas: dict[str, SchemaDocument] = {}

        self.active_context: str = active_context
        self.active_version: str = active_version or ""
        self.active_schema_file: Optional[str] = None
        self.active_field_id: Optional[str] = None

        self.has_unsaved_changes = False
        self.is_loading = False
        self.error: Optional[str] = None

    # ------------------------------------------------------------------
    # Flags
    # ------------------------------------------------------------------

    def set_error(self, message: Optional[str]) -> None:
        self.error = message

    def mark_unsaved(self) -> None:
        self.has_unsaved_changes = True

    def mark_saved(self) -> None:
        self.has_unsaved_changes = False

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _fail(self, message: str) -> bool:
        logger.info(message)
        self.error = message
        return False

    def _active_key(self, schema_file: str) -> str:
        return cache_key(self.active_context, self.active_version, schema_file)

    def _put_schema(self, key: str, schema: SchemaDocument) -> None:
        schemas = dict(self.schemas)
        schemas[key] = schema
        self.schemas = schemas

    def _put_manifest(self, context_name: str, manifest: ContextManifest) -> None:
        manifests = dict(self.manifests)
        manifests[context_name] = manifest
        self.manifests = manifests

    def _put_version(self, context_name: str, version: str, entry: VersionEntry) -> None:
        manifest = self.manifests[context_name]
        versions = dict(manifest.versions)
        versions[version] = entry
        self._put_manifest(context_name, replace(manifest, versions=versions))

    def _update_schema(
        self,
        schema_file: str,
        change: Callable[[SchemaDocument], SchemaDocument],
        cls: Optional[type] = None,
        updates: Optional[dict[str, Any]] = None,
    ) -> bool:
        """Apply *change* to a cached active-version document.

        *updates* is checked against the attributes of *cls* first.
        """
        key = self._active_key(schema_file)
        schema = self.schemas.get(key)
        if schema is None:
            return False
        if cls is not None and updates:
            unknown = set(updates) - _field_names(cls)
            if unknown:
                return self._fail(f"Unknown {cls.__name__} attributes: {', '.join(sorted(unknown))}")
        self._put_schema(key, change(schema))
        self.mark_unsaved()
        return True

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_registry(self) -> bool:
        """Load ``context-registry.json`` and then every context's manifest.

        A manifest that fails to load is logged and skipped; the others
        still load.
        """
        self.is_loading = True
        self.error = None
        if self.documents is None:
            self.is_loading = False
            return self._fail("No document store configured")
        try:
            registry = registry_from_dict(self.documents.read_json(REGISTRY_FILE))
        except _PARSE_ERRORS as exc:
            self.is_loading = False
            return self._fail(f"Failed to load context registry: {exc}")

        self.registry = registry
        self.is_loading = False
        if not self.active_version:
            entry = registry.entry(self.active_context)
            if entry:
                self.active_version = entry.default_version

        for context_name in registry.contexts:
            self.load_manifest(context_name)
        return True

    def load_manifest(self, context_name: str) -> bool:
        if self.registry is None or self.documents is None:
            return False
        entry = self.registry.entry(context_name)
        if entry is None:
            return False
        try:
            manifest = manifest_from_dict(self.documents.read_json(manifest_path(entry.path)))
        except _PARSE_ERRORS as exc:
            logger.warning("Could not load manifest for %s: %s", context_name, exc)
            return False
        self._put_manifest(context_name, manifest)
        return True

    def load_schema(self, context_name: str, version: str, schema_file: str) -> bool:
        """Fetch one schema document into the cache.

        Always re-fetches, so an explicit reload picks up external edits.
        """
        self.is_loading = True
        self.error = None
        try:
            if self.registry is None or self.documents is None:
                raise DocumentStoreError("Context registry not loaded")
            entry = self.registry.entry(context_name)
            if entry is None:
                raise DocumentStoreError(f"Context {context_name} not found")
            data = self.documents.read_json(schema_path(entry.path, version, schema_file))
            schema = schema_from_dict(data)
        except _PARSE_ERRORS as exc:
            self.is_loading = False
            return self._fail(f"Failed to load schema {schema_file}: {exc}")

        self._put_schema(cache_key(context_name, version, schema_file), schema)
        self.is_loading = False
        return True

    def load_all_schemas(self) -> int:
        """Fetch every manifest-listed schema that is not cached yet.

        Individual failures are logged and skipped.  Returns how many
        documents were loaded.
        """
        if self.registry is None or self.documents is None:
            return 0
        schemas = dict(self.schemas)
        loaded = 0
        for context_name, manifest in self.manifests.items():
            folder = self.registry.path_for(context_name)
            for version, version_entry in manifest.versions.items():
                for schema_file in version_entry.schemas:
                    key = cache_key(context_name, version, schema_file)
                    if key in schemas:
                        continue
                    try:
                        data = self.documents.read_json(schema_path(folder, version, schema_file))
                        schemas[key] = schema_from_dict(data)
                        loaded += 1
                    except _PARSE_ERRORS as exc:
                        logger.warning("Failed to load %s: %s", key, exc)
        self.schemas = schemas
        return loaded

    def reload(self) -> bool:
        """Drop everything cached and load the registry again."""
        self.registry = None
        self.manifests = {}
        self.schemas = {}
        self.active_schema_file = None
        self.active_field_id = None
        return self.load_registry()

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def set_active_context(self, context_name: str) -> None:
        """Switch context; version goes to its default, schema/field clear."""
        entry = self.registry.entry(context_name) if self.registry else None
        if entry is None:
            return
        self.active_context = context_name
        self.active_version = entry.default_version
        self.active_schema_file = None
        self.active_field_id = None

    def set_active_version(self, version: str) -> None:
        self.active_version = version
        self.active_schema_file = None
        self.active_field_id = None

    def set_active_schema(self, schema_file: Optional[str]) -> None:
        """Select a schema file, loading it if it is not cached."""
        self.active_schema_file = schema_file
        self.active_field_id = None
        if schema_file and self._active_key(schema_file) not in self.schemas:
            self.load_schema(self.active_context, self.active_version, schema_file)

    def set_active_field(self, field_id: Optional[str]) -> None:
        self.active_field_id = field_id

    # ------------------------------------------------------------------
    # Selectors
    # ------------------------------------------------------------------

    def get_schema(self, schema_file: str) -> Optional[SchemaDocument]:
        """A schema of the active context and version, if cached."""
        return self.schemas.get(self._active_key(schema_file))

    def active_schema(self) -> Optional[SchemaDocument]:
        if not self.active_schema_file:
            return None
        return self.get_schema(self.active_schema_file)

    def active_field(self) -> Optional[SchemaField]:
        schema = self.active_schema()
        if schema is None or not self.active_field_id:
            return None
        return schema.find_field(self.active_field_id)

    def active_manifest(self) -> Optional[ContextManifest]:
        return self.manifests.get(self.active_context)

    def available_schemas(self) -> list[str]:
        manifest = self.active_manifest()
        if manifest is None:
            return []
        entry = manifest.versions.get(self.active_version)
        return list(entry.schemas) if entry else []

    # ------------------------------------------------------------------
    # Context lifecycle
    # ------------------------------------------------------------------

    def create_context(
        self,
        context_name: str,
        display_name: str,
        based_on: Optional[str] = None,
        selected_schemas: Optional[list[str]] = None,
    ) -> bool:
        """Register a context with an empty ``1.0.0`` manifest.

        Schema documents are not copied from *based_on*; the caller passes
        the file names it has materialized.
        """
        if self.registry is None:
            return False

        contexts = dict(self.registry.contexts)
        contexts[context_name] = ContextEntry(
            name=display_name,
            description=f"Based on {based_on}" if based_on else "",
            default_version=INITIAL_VERSION,
            path=context_name,
            based_on=based_on,
        )
        manifest = ContextManifest(
            context_name=context_name,
            name=display_name,
            based_on=based_on,
            versions={
                INITIAL_VERSION: VersionEntry(
                    release_date=_today(),
                    is_default=True,
                    schemas=list(selected_schemas or [CORE_SCHEMA_FILE]),
                )
            },
        )
        self.registry = replace(self.registry, contexts=contexts)
        self._put_manifest(context_name, manifest)
        self.mark_unsaved()
        return True

    def delete_context(self, context_name: str) -> bool:
        """Remove a context and its manifest; ``default`` is protected.

        Cached documents of the context stay in memory but are no longer
        exported.  The active context is reset to ``default`` afterwards.
        """
        if context_name == DEFAULT_CONTEXT:
            return self._fail("Cannot delete default context")
        if self.registry is None:
            return False

        contexts = {k: v for k, v in self.registry.contexts.items() if k != context_name}
        manifests = {k: v for k, v in self.manifests.items() if k != context_name}
        self.registry = replace(self.registry, contexts=contexts)
        self.manifests = manifests

        if DEFAULT_CONTEXT in contexts:
            self.set_active_context(DEFAULT_CONTEXT)
        else:
            self.active_context = DEFAULT_CONTEXT
            self.active_schema_file = None
            self.active_field_id = None
        self.mark_unsaved()
        return True

    # ------------------------------------------------------------------
    # Version lifecycle
    # ------------------------------------------------------------------

    def create_version(
        self,
        context_name: str,
        new_version: str,
        based_on_version: Optional[str] = None,
    ) -> bool:
        """Create *new_version* as a copy of a base version.

        The base is *based_on_version*, else the version flagged default,
        else the highest version.  Cached base documents are deep-copied and
        stamped with the new version; uncached ones are skipped.
        """
        manifest = self.manifests.get(context_name)
        if manifest is None:
            return False
        if new_version in manifest.versions:
            return self._fail(f"Version {new_version} already exists in {context_name}")

        base_version = based_on_version or manifest.default_version()
        base_entry = manifest.versions.get(base_version) if base_version else None
        base_files = list(base_entry.schemas) if base_entry else [CORE_SCHEMA_FILE]

        schemas = dict(self.schemas)
        for schema_file in base_files:
            base_schema = schemas.get(cache_key(context_name, base_version or "", schema_file))
            if base_schema is None:
                continue
            clone = copy.deepcopy(base_schema)
            clone.version = new_version
            schemas[cache_key(context_name, new_version, schema_file)] = clone

        if base_version:
            description = f"Version {new_version} created from {base_version}"
        else:
            description = f"Version {new_version} created"
        entry = VersionEntry(
            release_date=_today(),
            is_default=False,
            schemas=base_files,
            changelog=[ChangelogEntry(date=utc_timestamp(), type=ChangeType.added.value, description=description)],
        )
        self.schemas = schemas
        self._put_version(context_name, new_version, entry)
        self.mark_unsaved()
        return True

    def delete_version(self, context_name: str, version: str) -> bool:
        """Remove a version; the last remaining version is protected."""
        manifest = self.manifests.get(context_name)
        if manifest is None or version not in manifest.versions:
            return False
        remaining = {k: v for k, v in manifest.versions.items() if k != version}
        if not remaining:
            return self._fail("Cannot delete the last version")

        self._put_manifest(context_name, replace(manifest, versions=remaining))
        self.mark_unsaved()
        return True

    def set_default_version(self, context_name: str, version: str) -> bool:
        """Flag *version* as the only default and point the registry at it."""
        manifest = self.manifests.get(context_name)
        if manifest is None or version not in manifest.versions:
            return False
        versions = {
            k: replace(v, is_default=(k == version)) for k, v in manifest.versions.items()
        }
        self._put_manifest(context_name, replace(manifest, versions=versions))

        entry = self.registry.entry(context_name) if self.registry else None
        if entry is not None:
            contexts = dict(self.registry.contexts)
            contexts[context_name] = replace(entry, default_version=version)
            self.registry = replace(self.registry, contexts=contexts)
        self.mark_unsaved()
        return True

    def add_changelog_entry(self, context_name: str, version: str, entry: ChangelogEntry) -> bool:
        """Prepend a changelog entry to a version."""
        manifest = self.manifests.get(context_name)
        if manifest is None:
            return False
        version_entry = manifest.versions.get(version)
        if version_entry is None:
            return False
        changelog = [entry] + list(version_entry.changelog or [])
        self._put_version(context_name, version, replace(version_entry, changelog=changelog))
        self.mark_unsaved()
        return True

    # ------------------------------------------------------------------
    # Schema lifecycle
    # ------------------------------------------------------------------

    def create_schema(self, schema_file: str, profile_id: str, display_name: str = "") -> bool:
        """Create an empty document in the active context and version.

        *display_name* is only logged; documents carry no display name.
        """
        self._put_schema(
            self._active_key(schema_file),
            new_schema_document(profile_id, self.active_version),
        )

        manifest = self.active_manifest()
        version_entry = manifest.versions.get(self.active_version) if manifest else None
        if version_entry is not None and schema_file not in version_entry.schemas:
            self._put_version(
                self.active_context,
                self.active_version,
                replace(version_entry, schemas=version_entry.schemas + [schema_file]),
            )

        logger.debug("Created schema %s (%s) %s", schema_file, profile_id, display_name)
        self.active_schema_file = schema_file
        self.active_field_id = None
        self.mark_unsaved()
        return True

    def delete_schema(self, schema_file: str) -> bool:
        """Remove a document from the cache and from the version's list."""
        self.schemas = {k: v for k, v in self.schemas.items() if k != self._active_key(schema_file)}

        manifest = self.active_manifest()
        version_entry = manifest.versions.get(self.active_version) if manifest else None
        if version_entry is not None:
            self._put_version(
                self.active_context,
                self.active_version,
                replace(version_entry, schemas=[s for s in version_entry.schemas if s != schema_file]),
            )

        self.active_schema_file = None
        self.active_field_id = None
        self.mark_unsaved()
        return True

    def update_schema(self, schema_file: str, updates: dict[str, Any]) -> bool:
        """Shallow-merge attribute *updates* onto a cached document."""
        return self._update_schema(
            schema_file, lambda schema: replace(schema, **updates), SchemaDocument, updates
        )

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------

    def _unique_field_id(self, schema: SchemaDocument, field_id: str) -> str:
        existing = set(schema.field_ids())
        n = 2
        candidate = f"{field_id}_{n}"
        while candidate in existing:
            n += 1
            candidate = f"{field_id}_{n}"
        return candidate

    def add_field(self, schema_file: str, new_field: SchemaField) -> bool:
        """Append a field and select it.

        Duplicate ids are handled by ``field_id_policy``.
        """
        schema = self.get_schema(schema_file)
        if schema is None:
            return False

        if schema.find_field(new_field.id) is not None:
            if self.field_id_policy == FieldIdPolicy.reject:
                return self._fail(f"Field {new_field.id} already exists in {schema_file}")
            if self.field_id_policy == FieldIdPolicy.suffix:
                new_field = replace(new_field, id=self._unique_field_id(schema, new_field.id))

        self._put_schema(self._active_key(schema_file), replace(schema, fields=schema.fields + [new_field]))
        self.active_field_id = new_field.id
        self.mark_unsaved()
        return True

    def update_field(self, schema_file: str, field_id: str, updates: dict[str, Any]) -> bool:
        """Shallow-merge *updates* onto the field(s) with *field_id*.

        Nested blocks such as ``system`` are replaced whole; callers merge
        them before passing them in.
        """
        schema = self.get_schema(schema_file)
        if schema is None:
            return False
        new_id = updates.get("id")
        if (
            new_id
            and new_id != field_id
            and self.field_id_policy != FieldIdPolicy.allow
            and schema.find_field(new_id) is not None
        ):
            return self._fail(f"Field {new_id} already exists in {schema_file}")

        return self._update_schema(
            schema_file,
            lambda s: replace(
                s,
                fields=[replace(f, **updates) if f.id == field_id else f for f in s.fields],
            ),
            SchemaField,
            updates,
        )

    def delete_field(self, schema_file: str, field_id: str) -> bool:
        schema = self.get_schema(schema_file)
        if schema is None:
            return False
        self._put_schema(
            self._active_key(schema_file),
            replace(schema, fields=[f for f in schema.fields if f.id != field_id]),
        )
        self.active_field_id = None
        self.mark_unsaved()
        return True

    def move_field(self, schema_file: str, field_id: str, new_index: int) -> bool:
        """Move a field to *new_index* in the document's field order."""
        schema = self.get_schema(schema_file)
        if schema is None:
            return False
        current = schema.field_index(field_id)
        if current == -1:
            return False
        fields = list(schema.fields)
        moved = fields.pop(current)
        fields.insert(new_index, moved)
        self._put_schema(self._active_key(schema_file), replace(schema, fields=fields))
        self.mark_unsaved()
        return True

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def add_group(self, schema_file: str, group: SchemaGroup) -> bool:
        return self._update_schema(schema_file, lambda s: replace(s, groups=s.groups + [group]))

    def update_group(self, schema_file: str, group_id: str, updates: dict[str, Any]) -> bool:
        return self._update_schema(
            schema_file,
            lambda s: replace(
                s,
                groups=[replace(g, **updates) if g.id == group_id else g for g in s.groups],
            ),
            SchemaGroup,
            updates,
        )

    def delete_group(self, schema_file: str, group_id: str) -> bool:
        """Remove a group and clear it from every field that referenced it."""
        return self._update_schema(
            schema_file,
            lambda s: replace(
                s,
                groups=[g for g in s.groups if g.id != group_id],
                fields=[replace(f, group=None) if f.group == group_id else f for f in s.fields],
            ),
        )

    # ------------------------------------------------------------------
    # Vocabularies
    # ------------------------------------------------------------------

    def update_vocabulary(self, schema_file: str, field_id: str, vocabulary: Optional[Vocabulary]) -> bool:
        """Replace (or remove, with None) a field's vocabulary."""
        schema = self.get_schema(schema_file)
        if schema is None or schema.find_field(field_id) is None:
            return False
        return self._update_schema(
            schema_file,
            lambda s: replace(
                s,
                fields=[
                    replace(f, system=replace(f.system, vocabulary=vocabulary)) if f.id == field_id else f
                    for f in s.fields
                ],
            ),
        )

    def import_vocabulary(
        self,
        schema_file: str,
        field_id: str,
        raw: Any,
        replace_existing: bool = True,
        source_url: Optional[str] = None,
        adapter: Optional[VocabularyAdapter] = None,
    ) -> int:
        """Import concepts from an external document into a field's vocabulary.

        Returns the number of imported concepts.  Zero means nothing was
        changed; ``error`` then says why.
        """
        schema = self.get_schema(schema_file)
        target = schema.find_field(field_id) if schema else None
        if target is None:
            return 0

        adapter = adapter or SkosJsonAdapter()
        try:
            concepts = adapter.parse_concepts(raw)
            scheme = adapter.scheme_uri(raw)
        except (VocabularyFormatError, ValueError, TypeError, AttributeError) as exc:
            self._fail(str(exc))
            return 0
        if not concepts:
            self._fail("No concepts found in the vocabulary source")
            return 0

        current = target.system.vocabulary or Vocabulary()
        vocabulary = replace(
            current,
            type=VocabularyType.skos.value,
            scheme=scheme or source_url or current.scheme,
            concepts=concepts if replace_existing else current.concepts + concepts,
        )
        self.update_vocabulary(schema_file, field_id, vocabulary)
        return len(concepts)

    # ------------------------------------------------------------------
    # Content types (``ccm:oeh_flex_lrt`` in core.json)
    # ------------------------------------------------------------------

    def _content_type_vocabulary(self) -> Optional[Vocabulary]:
        core = self.get_schema(CORE_SCHEMA_FILE)
        target = core.find_field(CONTENT_TYPE_FIELD_ID) if core else None
        if target is None:
            return None
        return target.system.vocabulary

    def get_content_types(self) -> list[ContentType]:
        """Concepts of the content-type field that name a schema file."""
        vocabulary = self._content_type_vocabulary()
        if vocabulary is None:
            return []
        return [
            ContentType(
                label=localized(c.label),
                icon=c.icon or DEFAULT_CONTENT_TYPE_ICON,
                schema_file=c.schema_file,
            )
            for c in vocabulary.concepts
            if c.schema_file
        ]

    def _set_content_type_concepts(self, concepts: list[VocabularyConcept]) -> bool:
        vocabulary = self._content_type_vocabulary()
        if vocabulary is None:
            return False
        return self.update_vocabulary(
            CORE_SCHEMA_FILE, CONTENT_TYPE_FIELD_ID, replace(vocabulary, concepts=concepts)
        )

    def add_content_type(self, content_type: ContentType) -> bool:
        vocabulary = self._content_type_vocabulary()
        if vocabulary is None:
            return False
        concept = VocabularyConcept(
            label=content_type.label,
            icon=content_type.icon,
            schema_file=content_type.schema_file,
        )
        return self._set_content_type_concepts(vocabulary.concepts + [concept])

    def remove_content_type(self, schema_file: str) -> bool:
        vocabulary = self._content_type_vocabulary()
        if vocabulary is None:
            return False
        return self._set_content_type_concepts(
            [c for c in vocabulary.concepts if c.schema_file != schema_file]
        )

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    def snapshot(self) -> Optional[codec.RepositoryData]:
        if self.registry is None:
            return None
        return codec.RepositoryData(self.registry, self.manifests, self.schemas)

    def export_as_zip(self) -> Optional[bytes]:
        """Load every listed schema, then serialize the repository to ZIP bytes."""
        self.load_all_schemas()
        if self.registry is None:
            return None
        return codec.build_archive(self.registry, self.manifests, self.schemas)

    def import_from_zip(self, data: bytes) -> bool:
        """Replace the repository with an archive's contents.

        Nothing changes unless the whole archive parses.  The cursors move to
        the imported registry's default context.
        """
        contents = codec.read_archive(data)
        if contents is None:
            return False
        self._replace_all(contents)
        return True

    def export_context(self, context_name: str, version: Optional[str] = None) -> str:
        """JSON bundle of one context (one version's schemas)."""
        if version is None:
            entry = self.registry.entry(context_name) if self.registry else None
            version = entry.default_version if entry else self.active_version
        return bundle.export_context(context_name, version, self.registry, self.manifests, self.schemas)

    def export_all(self) -> str:
        """JSON bundle of the whole repository."""
        self.load_all_schemas()
        return bundle.export_all(self.registry, self.manifests, self.schemas)

    def import_data(self, text: str) -> bool:
        """Merge an ``export_all`` bundle into the current state."""
        contents = bundle.parse_bundle(text)
        if contents is None:
            return False
        manifests = dict(self.manifests)
        manifests.update(contents.manifests)
        schemas = dict(self.schemas)
        schemas.update(contents.schemas)
        self.registry = contents.registry
        self.manifests = manifests
        self.schemas = schemas
        self._ensure_active_context()
        self.mark_unsaved()
        return True

    def _replace_all(self, contents: codec.RepositoryData) -> None:
        self.registry = contents.registry
        self.manifests = dict(contents.manifests)
        self.schemas = dict(contents.schemas)
        target = contents.registry.default_context
        if target in contents.registry.contexts:
            self.set_active_context(target)
        else:
            self._ensure_active_context()
        self.mark_unsaved()

    def _ensure_active_context(self) -> None:
        """Move the cursors to the registry default if the active context vanished."""
        if self.registry is None or self.active_context in self.registry.contexts:
            return
        target = self.registry.default_context
        if target in self.registry.contexts:
            self.set_active_context(target)
        else:
            self.active_schema_file = None
            self.active_field_id = None
