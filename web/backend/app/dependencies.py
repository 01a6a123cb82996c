"""Shared FastAPI dependencies."""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request

from schemata.config import load_settings
from schemata.models.schema import SchemaDocument
from schemata.store.repository import RepositoryStore

logger = logging.getLogger(__name__)


def build_store() -> RepositoryStore:
    """Create and load a store from ``schemata.yaml`` / ``SCHEMATA_*``."""
    settings = load_settings()
    store = RepositoryStore(
        settings.document_store(),
        field_id_policy=settings.field_id_policy,
        active_context=settings.default_context,
    )
    if not store.load_registry():
        logger.warning("Repository not loaded: %s", store.error)
    return store


def get_store(request: Request) -> RepositoryStore:
    """The application's single store, created on first use."""
    store = getattr(request.app.state, "store", None)
    if store is None:
        store = build_store()
        request.app.state.store = store
    return store


def require_registry(store: RepositoryStore) -> None:
    if store.registry is None:
        raise HTTPException(status_code=503, detail=store.error or "Repository not loaded")


def check(store: RepositoryStore, ok: bool, status_code: int = 400, detail: str = "") -> None:
    """Turn a failed store operation into an HTTP error."""
    if not ok:
        raise HTTPException(status_code=status_code, detail=store.error or detail or "Operation failed")


def require_schema(store: RepositoryStore, schema_file: str) -> SchemaDocument:
    """A schema of the active version, loaded on demand; 404 if unavailable."""
    schema = store.get_schema(schema_file)
    if schema is None:
        store.load_schema(store.active_context, store.active_version, schema_file)
        schema = store.get_schema(schema_file)
    if schema is None:
        raise HTTPException(
            status_code=404,
            detail=f"Schema {schema_file} not found in {store.active_context}@{store.active_version}",
        )
    return schema
