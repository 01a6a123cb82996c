"""Contexts router -- registry, versions, changelog and the editing cursors."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from schemata.models.context import ChangelogEntry, ChangeType, ContextManifest, ContextRegistry, version_sort_key
from schemata.store.naming import context_slug
from schemata.store.repository import RepositoryStore, utc_timestamp

from web.backend.app.dependencies import check, get_store, require_registry
from web.backend.app.models.api import (
    ChangelogEntryModel,
    ContextResponse,
    CreateContextRequest,
    CreateVersionRequest,
    NavigationRequest,
    StateResponse,
    VersionResponse,
)

router = APIRouter(prefix="/api", tags=["contexts"])


def _context_to_response(
    name: str, registry: ContextRegistry, manifest: Optional[ContextManifest]
) -> ContextResponse:
    entry = registry.contexts[name]
    versions = sorted(manifest.versions, key=version_sort_key) if manifest else []
    return ContextResponse(
        name=name,
        display_name=entry.name,
        default_version=entry.default_version,
        path=entry.path,
        description=entry.description or "",
        based_on=entry.based_on,
        is_default=name == registry.default_context,
        versions=versions,
    )


def _changelog_to_model(entry: ChangelogEntry) -> ChangelogEntryModel:
    return ChangelogEntryModel(
        date=entry.date,
        type=entry.type,
        description=entry.description,
        field_id=entry.field_id,
        author=entry.author,
    )


def _manifest(store: RepositoryStore, context_name: str) -> ContextManifest:
    manifest = store.manifests.get(context_name)
    if manifest is None:
        raise HTTPException(status_code=404, detail=f"Context {context_name} not found")
    return manifest


def state_response(store: RepositoryStore) -> StateResponse:
    return StateResponse(
        active_context=store.active_context,
        active_version=store.active_version,
        active_schema_file=store.active_schema_file,
        active_field_id=store.active_field_id,
        available_schemas=store.available_schemas(),
        has_unsaved_changes=store.has_unsaved_changes,
        is_loading=store.is_loading,
        error=store.error,
    )


# ---------------------------------------------------------------------------
# Contexts
# ---------------------------------------------------------------------------


@router.get("/contexts", response_model=list[ContextResponse], summary="List contexts")
def list_contexts(store: RepositoryStore = Depends(get_store)):
    require_registry(store)
    return [
        _context_to_response(name, store.registry, store.manifests.get(name))
        for name in store.registry.contexts
    ]


@router.post(
    "/contexts",
    response_model=ContextResponse,
    status_code=201,
    summary="Create a context",
)
def create_context(body: CreateContextRequest, store: RepositoryStore = Depends(get_store)):
    """Register a new context with an initial 1.0.0 version."""
    require_registry(store)
    name = context_slug(body.name)
    if not name:
        raise HTTPException(status_code=400, detail="Context name is required")
    if name in store.registry.contexts:
        raise HTTPException(status_code=409, detail=f"Context {name} already exists")
    check(store, store.create_context(name, body.display_name, body.based_on, body.schemas or None))
    return _context_to_response(name, store.registry, store.manifests.get(name))


@router.delete("/contexts/{context_name}", response_model=StateResponse, summary="Delete a context")
def delete_context(context_name: str, store: RepositoryStore = Depends(get_store)):
    require_registry(store)
    if context_name not in store.registry.contexts:
        raise HTTPException(status_code=404, detail=f"Context {context_name} not found")
    check(store, store.delete_context(context_name))
    return state_response(store)


@router.get("/contexts/{context_name}/export", summary="Export one context as JSON")
def export_context(
    context_name: str,
    version: Optional[str] = Query(None, description="Version (default: the context's default)"),
    store: RepositoryStore = Depends(get_store),
):
    require_registry(store)
    _manifest(store, context_name)
    store.load_all_schemas()
    return Response(content=store.export_context(context_name, version), media_type="application/json")


# ---------------------------------------------------------------------------
# Versions
# ---------------------------------------------------------------------------


@router.get("/versions/{context_name}", response_model=list[VersionResponse], summary="List versions")
def list_versions(context_name: str, store: RepositoryStore = Depends(get_store)):
    """Versions of a context, newest first."""
    manifest = _manifest(store, context_name)
    return [
        VersionResponse(
            version=version,
            release_date=manifest.versions[version].release_date,
            is_default=bool(manifest.versions[version].is_default),
            schemas=list(manifest.versions[version].schemas),
            changelog=[_changelog_to_model(c) for c in manifest.versions[version].changelog or []],
        )
        for version in sorted(manifest.versions, key=version_sort_key, reverse=True)
    ]


@router.post(
    "/versions/{context_name}",
    response_model=list[VersionResponse],
    status_code=201,
    summary="Create a version",
)
def create_version(
    context_name: str, body: CreateVersionRequest, store: RepositoryStore = Depends(get_store)
):
    _manifest(store, context_name)
    version = body.version.strip()
    if not version:
        raise HTTPException(status_code=400, detail="Version is required")
    # Base documents must be cached to be copied.
    store.load_all_schemas()
    check(store, store.create_version(context_name, version, body.based_on))
    return list_versions(context_name, store)


@router.delete("/versions/{context_name}/{version}", summary="Delete a version")
def delete_version(context_name: str, version: str, store: RepositoryStore = Depends(get_store)):
    manifest = _manifest(store, context_name)
    if version not in manifest.versions:
        raise HTTPException(status_code=404, detail=f"Version {version} not found")
    check(store, store.delete_version(context_name, version))
    return {"deleted": version}


@router.put("/versions/{context_name}/{version}/default", summary="Make a version the default")
def set_default_version(context_name: str, version: str, store: RepositoryStore = Depends(get_store)):
    manifest = _manifest(store, context_name)
    if version not in manifest.versions:
        raise HTTPException(status_code=404, detail=f"Version {version} not found")
    check(store, store.set_default_version(context_name, version))
    return {"default_version": version}


# ---------------------------------------------------------------------------
# Changelog
# ---------------------------------------------------------------------------


@router.get(
    "/changelog/{context_name}/{version}",
    response_model=list[ChangelogEntryModel],
    summary="Changelog of a version",
)
def get_changelog(context_name: str, version: str, store: RepositoryStore = Depends(get_store)):
    entry = _manifest(store, context_name).versions.get(version)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"Version {version} not found")
    return [_changelog_to_model(c) for c in entry.changelog or []]


@router.post(
    "/changelog/{context_name}/{version}",
    response_model=list[ChangelogEntryModel],
    status_code=201,
    summary="Add a changelog entry",
)
def add_changelog_entry(
    context_name: str,
    version: str,
    body: ChangelogEntryModel,
    store: RepositoryStore = Depends(get_store),
):
    """Prepend an entry; ``date`` defaults to now."""
    if body.type not in {t.value for t in ChangeType}:
        raise HTTPException(status_code=400, detail=f"Unknown change type: {body.type}")
    entry = ChangelogEntry(
        date=body.date or utc_timestamp(),
        type=body.type,
        description=body.description,
        field_id=body.field_id,
        author=body.author,
    )
    if not store.add_changelog_entry(context_name, version, entry):
        raise HTTPException(status_code=404, detail=f"Version {context_name}@{version} not found")
    return get_changelog(context_name, version, store)


# ---------------------------------------------------------------------------
# Editing state
# ---------------------------------------------------------------------------


@router.get("/state", response_model=StateResponse, summary="Cursors and flags")
def get_state(store: RepositoryStore = Depends(get_store)):
    return state_response(store)


@router.put("/state", response_model=StateResponse, summary="Move the cursors")
def navigate(body: NavigationRequest, store: RepositoryStore = Depends(get_store)):
    """Apply cursor moves with the store's cascading resets."""
    if body.context is not None:
        require_registry(store)
        if body.context not in store.registry.contexts:
            raise HTTPException(status_code=404, detail=f"Context {body.context} not found")
        store.set_active_context(body.context)
    if body.version is not None:
        store.set_active_version(body.version)
    if body.schema_file is not None:
        store.set_active_schema(body.schema_file)
    if body.field_id is not None:
        store.set_active_field(body.field_id)
    return state_response(store)


@router.post("/state/reload", response_model=StateResponse, summary="Reload from the document store")
def reload(store: RepositoryStore = Depends(get_store)):
    check(store, store.reload(), status_code=502)
    return state_response(store)
