"""Schemas router -- documents, fields, groups, vocabularies and content types.

All routes act on the active context and version (see ``PUT /api/state``).
Documents, fields and groups are exchanged in their stored JSON form.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException

from schemata.models.context import CORE_SCHEMA_FILE, ContentType, content_type_to_dict
from schemata.models.schema import (
    Datatype,
    SchemaDocument,
    SchemaField,
    SchemaGroup,
    field_from_dict,
    field_to_dict,
    group_from_dict,
    group_to_dict,
    schema_from_dict,
    schema_to_dict,
)
from schemata.models.vocabulary import vocabulary_from_dict
from schemata.store.naming import schema_filename
from schemata.store.repository import RepositoryStore
from schemata.vocab.skos import VocabularyFormatError, fetch_vocabulary

from web.backend.app.dependencies import check, get_store, require_schema
from web.backend.app.models.api import (
    ContentTypeModel,
    CreateSchemaRequest,
    MoveFieldRequest,
    VocabularyImportRequest,
    VocabularyImportResponse,
)

router = APIRouter(prefix="/api", tags=["schemas"])


def _attributes(obj: Any, skip: tuple[str, ...] = ()) -> dict[str, Any]:
    """Dataclass attributes as an ``update_*`` payload."""
    return {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj) if f.name not in skip}


def _parse(convert, data: dict[str, Any]):
    try:
        return convert(data)
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise HTTPException(status_code=422, detail=f"Invalid document: {exc}") from exc


def _require_field(schema: SchemaDocument, field_id: str) -> SchemaField:
    found = schema.find_field(field_id)
    if found is None:
        raise HTTPException(status_code=404, detail=f"Field {field_id} not found")
    return found


def _require_group(schema: SchemaDocument, group_id: str) -> SchemaGroup:
    found = schema.find_group(group_id)
    if found is None:
        raise HTTPException(status_code=404, detail=f"Group {group_id} not found")
    return found


# ---------------------------------------------------------------------------
# Schema documents
# ---------------------------------------------------------------------------


@router.get("/schemas", response_model=list[str], summary="Schema files of the active version")
def list_schemas(store: RepositoryStore = Depends(get_store)):
    return store.available_schemas()


@router.get("/schemas/{schema_file}", summary="Get a schema document")
def get_schema(schema_file: str, store: RepositoryStore = Depends(get_store)):
    return schema_to_dict(require_schema(store, schema_file))


@router.post("/schemas", status_code=201, summary="Create a schema document")
def create_schema(body: CreateSchemaRequest, store: RepositoryStore = Depends(get_store)):
    """Create an empty document (one ``general`` group) and select it."""
    schema_file = schema_filename(body.name)
    if schema_file == ".json":
        raise HTTPException(status_code=400, detail="Schema name is required")
    if store.get_schema(schema_file) is not None:
        raise HTTPException(status_code=409, detail=f"Schema {schema_file} already exists")
    check(store, store.create_schema(schema_file, body.profile_id, body.display_name))
    return schema_to_dict(store.get_schema(schema_file))


@router.patch("/schemas/{schema_file}", summary="Update document attributes")
def update_schema(
    schema_file: str,
    updates: dict[str, Any] = Body(...),
    store: RepositoryStore = Depends(get_store),
):
    """Shallow-merge top-level keys (``profileId``, ``version``, ...) onto a document."""
    current = require_schema(store, schema_file)
    merged = _parse(schema_from_dict, {**schema_to_dict(current), **updates})
    check(store, store.update_schema(schema_file, _attributes(merged, skip=("groups", "fields"))))
    return schema_to_dict(store.get_schema(schema_file))


@router.delete("/schemas/{schema_file}", summary="Delete a schema document")
def delete_schema(schema_file: str, store: RepositoryStore = Depends(get_store)):
    if schema_file not in store.available_schemas() and store.get_schema(schema_file) is None:
        raise HTTPException(status_code=404, detail=f"Schema {schema_file} not found")
    check(store, store.delete_schema(schema_file))
    return {"deleted": schema_file}


# ---------------------------------------------------------------------------
# Fields
# ---------------------------------------------------------------------------


@router.get("/fields/{schema_file}", summary="Fields of a schema document")
def list_fields(schema_file: str, store: RepositoryStore = Depends(get_store)):
    return [field_to_dict(f) for f in require_schema(store, schema_file).fields]


@router.post("/fields/{schema_file}", status_code=201, summary="Add a field")
def add_field(
    schema_file: str,
    data: dict[str, Any] = Body(...),
    store: RepositoryStore = Depends(get_store),
):
    """Append a field.  A duplicate id is handled by the store's id policy."""
    require_schema(store, schema_file)
    # new fields without a datatype are strings
    system = data.get("system") or {}
    if isinstance(system, dict):
        data = {**data, "system": {"datatype": Datatype.string.value, **system}}
    new_field = _parse(field_from_dict, data)
    check(store, store.add_field(schema_file, new_field), status_code=409)
    added = store.get_schema(schema_file).find_field(store.active_field_id)
    return field_to_dict(added)


@router.get("/fields/{schema_file}/{field_id}", summary="Get a field")
def get_field(schema_file: str, field_id: str, store: RepositoryStore = Depends(get_store)):
    return field_to_dict(_require_field(require_schema(store, schema_file), field_id))


@router.put("/fields/{schema_file}/{field_id}", summary="Update a field")
def update_field(
    schema_file: str,
    field_id: str,
    updates: dict[str, Any] = Body(...),
    store: RepositoryStore = Depends(get_store),
):
    """Shallow-merge top-level field keys; ``system`` is replaced whole."""
    current = _require_field(require_schema(store, schema_file), field_id)
    merged = _parse(field_from_dict, {**field_to_dict(current), **updates})
    check(store, store.update_field(schema_file, field_id, _attributes(merged)), status_code=409)
    return field_to_dict(store.get_schema(schema_file).find_field(merged.id))


@router.delete("/fields/{schema_file}/{field_id}", summary="Delete a field")
def delete_field(schema_file: str, field_id: str, store: RepositoryStore = Depends(get_store)):
    _require_field(require_schema(store, schema_file), field_id)
    check(store, store.delete_field(schema_file, field_id))
    return {"deleted": field_id}


@router.post("/fields/{schema_file}/{field_id}/move", summary="Reorder a field")
def move_field(
    schema_file: str,
    field_id: str,
    body: MoveFieldRequest,
    store: RepositoryStore = Depends(get_store),
):
    schema = require_schema(store, schema_file)
    _require_field(schema, field_id)
    if body.new_index >= len(schema.fields):
        raise HTTPException(status_code=400, detail=f"Index {body.new_index} out of range")
    check(store, store.move_field(schema_file, field_id, body.new_index))
    return store.get_schema(schema_file).field_ids()


@router.put("/fields/{schema_file}/{field_id}/vocabulary", summary="Replace a field's vocabulary")
def update_vocabulary(
    schema_file: str,
    field_id: str,
    data: Optional[dict[str, Any]] = Body(None),
    store: RepositoryStore = Depends(get_store),
):
    """Set the vocabulary; an empty body removes it."""
    _require_field(require_schema(store, schema_file), field_id)
    vocabulary = _parse(vocabulary_from_dict, data) if data else None
    check(store, store.update_vocabulary(schema_file, field_id, vocabulary))
    return field_to_dict(store.get_schema(schema_file).find_field(field_id))


@router.post(
    "/fields/{schema_file}/{field_id}/vocabulary/import",
    response_model=VocabularyImportResponse,
    summary="Import SKOS concepts",
)
def import_vocabulary(
    schema_file: str,
    field_id: str,
    body: VocabularyImportRequest,
    store: RepositoryStore = Depends(get_store),
):
    """Import from a SKOHUB URL or an inline JSON document."""
    _require_field(require_schema(store, schema_file), field_id)
    if body.url:
        try:
            raw = fetch_vocabulary(body.url)
        except VocabularyFormatError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
    elif body.data is not None:
        raw = body.data
    else:
        raise HTTPException(status_code=400, detail="Either url or data is required")

    count = store.import_vocabulary(
        schema_file, field_id, raw, replace_existing=body.replace, source_url=body.url
    )
    check(store, count > 0, status_code=422)
    return VocabularyImportResponse(
        imported=count,
        field=field_to_dict(store.get_schema(schema_file).find_field(field_id)),
    )


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


@router.get("/groups/{schema_file}", summary="Groups of a schema document")
def list_groups(schema_file: str, store: RepositoryStore = Depends(get_store)):
    return [group_to_dict(g) for g in require_schema(store, schema_file).groups]


@router.post("/groups/{schema_file}", status_code=201, summary="Add a group")
def add_group(
    schema_file: str,
    data: dict[str, Any] = Body(...),
    store: RepositoryStore = Depends(get_store),
):
    schema = require_schema(store, schema_file)
    group = _parse(group_from_dict, data)
    if schema.find_group(group.id) is not None:
        raise HTTPException(status_code=409, detail=f"Group {group.id} already exists")
    check(store, store.add_group(schema_file, group))
    return group_to_dict(group)


@router.put("/groups/{schema_file}/{group_id}", summary="Update a group")
def update_group(
    schema_file: str,
    group_id: str,
    updates: dict[str, Any] = Body(...),
    store: RepositoryStore = Depends(get_store),
):
    current = _require_group(require_schema(store, schema_file), group_id)
    merged = _parse(group_from_dict, {**group_to_dict(current), **updates})
    check(store, store.update_group(schema_file, group_id, _attributes(merged)))
    return group_to_dict(merged)


@router.delete("/groups/{schema_file}/{group_id}", summary="Delete a group")
def delete_group(schema_file: str, group_id: str, store: RepositoryStore = Depends(get_store)):
    """Remove a group; fields that referenced it become ungrouped."""
    _require_group(require_schema(store, schema_file), group_id)
    check(store, store.delete_group(schema_file, group_id))
    return {"deleted": group_id}


# ---------------------------------------------------------------------------
# Content types
# ---------------------------------------------------------------------------


@router.get("/content-types", response_model=list[ContentTypeModel], summary="List content types")
def list_content_types(store: RepositoryStore = Depends(get_store)):
    """Content types registered in ``core.json`` of the active version."""
    require_schema(store, CORE_SCHEMA_FILE)
    return [ContentTypeModel(**content_type_to_dict(t)) for t in store.get_content_types()]


@router.post(
    "/content-types",
    response_model=list[ContentTypeModel],
    status_code=201,
    summary="Register a content type",
)
def add_content_type(body: ContentTypeModel, store: RepositoryStore = Depends(get_store)):
    require_schema(store, CORE_SCHEMA_FILE)
    content_type = ContentType(label=dict(body.label), schema_file=body.schema_file, icon=body.icon)
    check(store, store.add_content_type(content_type), status_code=404, detail="No content-type field in core.json")
    return [ContentTypeModel(**content_type_to_dict(t)) for t in store.get_content_types()]


@router.delete(
    "/content-types/{schema_file}",
    response_model=list[ContentTypeModel],
    summary="Unregister a content type",
)
def remove_content_type(schema_file: str, store: RepositoryStore = Depends(get_store)):
    require_schema(store, CORE_SCHEMA_FILE)
    check(store, store.remove_content_type(schema_file), status_code=404, detail="No content-type field in core.json")
    return [ContentTypeModel(**content_type_to_dict(t)) for t in store.get_content_types()]
