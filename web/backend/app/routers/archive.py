"""Archive router -- ZIP and JSON bundle export/import of the whole repository."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, File, HTTPException, Response, UploadFile

from schemata.archive.codec import dump_json, export_filename
from schemata.store.repository import RepositoryStore

from web.backend.app.dependencies import get_store, require_registry
from web.backend.app.models.api import ImportResponse

router = APIRouter(prefix="/api/archive", tags=["archive"])


def _import_response(store: RepositoryStore) -> ImportResponse:
    return ImportResponse(
        contexts=len(store.registry.contexts) if store.registry else 0,
        schemas=len(store.schemas),
        active_context=store.active_context,
        active_version=store.active_version,
    )


@router.get("/export", summary="Download the repository as a ZIP archive")
def export_zip(store: RepositoryStore = Depends(get_store)):
    require_registry(store)
    data = store.export_as_zip()
    if data is None:
        raise HTTPException(status_code=503, detail="Repository not loaded")
    return Response(
        content=data,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@router.post("/import", response_model=ImportResponse, summary="Replace the repository from a ZIP archive")
def import_zip(
    file: UploadFile = File(..., description="Archive produced by /api/archive/export"),
    store: RepositoryStore = Depends(get_store),
):
    """Replace registry, manifests and schemas with the archive's contents.

    The archive must contain ``context-registry.json`` at its root; nothing
    changes when it does not or when it cannot be read.
    """
    content = file.file.read()
    if not store.import_from_zip(content):
        raise HTTPException(status_code=400, detail="Invalid archive: no context-registry.json or unreadable")
    return _import_response(store)


@router.get("/bundle", summary="Export the repository as one JSON document")
def export_bundle(store: RepositoryStore = Depends(get_store)):
    require_registry(store)
    return Response(content=store.export_all(), media_type="application/json")


@router.post("/bundle", response_model=ImportResponse, summary="Merge a JSON bundle")
def import_bundle(
    data: dict = Body(..., description="Document produced by GET /api/archive/bundle"),
    store: RepositoryStore = Depends(get_store),
):
    if not store.import_data(dump_json(data)):
        raise HTTPException(status_code=400, detail="Invalid bundle: missing context-registry.json")
    return _import_response(store)
