"""Pydantic models for API request/response serialization.

Registry, manifest and state objects get typed models that mirror the
schemata dataclasses.  Schema documents, fields, groups and vocabularies
travel in their stored JSON form (``profileId``, ``system``, ...), so the
API and the files on disk share one shape.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Registry / manifest models
# ---------------------------------------------------------------------------


class ContextResponse(BaseModel):
    """Mirrors schemata.models.context.ContextEntry plus its manifest's versions."""

    name: str
    display_name: str
    default_version: str
    path: str
    description: str = ""
    based_on: Optional[str] = None
    is_default: bool = False
    versions: list[str] = Field(default_factory=list)


class ChangelogEntryModel(BaseModel):
    """Mirrors schemata.models.context.ChangelogEntry."""

    date: str = ""
    type: str = "changed"
    description: str
    field_id: Optional[str] = None
    author: Optional[str] = None


class VersionResponse(BaseModel):
    """Mirrors schemata.models.context.VersionEntry."""

    version: str
    release_date: str
    is_default: bool = False
    schemas: list[str] = Field(default_factory=list)
    changelog: list[ChangelogEntryModel] = Field(default_factory=list)


class CreateContextRequest(BaseModel):
    name: str
    display_name: str
    based_on: Optional[str] = None
    schemas: list[str] = Field(default_factory=list)


class CreateVersionRequest(BaseModel):
    version: str
    based_on: Optional[str] = None


# ---------------------------------------------------------------------------
# Editing session
# ---------------------------------------------------------------------------


class StateResponse(BaseModel):
    """Cursors and flags of the repository store."""

    active_context: str
    active_version: str
    active_schema_file: Optional[str] = None
    active_field_id: Optional[str] = None
    available_schemas: list[str] = Field(default_factory=list)
    has_unsaved_changes: bool = False
    is_loading: bool = False
    error: Optional[str] = None


class NavigationRequest(BaseModel):
    """Cursor moves, applied in cascade order (context, version, schema, field)."""

    context: Optional[str] = None
    version: Optional[str] = None
    schema_file: Optional[str] = None
    field_id: Optional[str] = None


# ---------------------------------------------------------------------------
# Schema editing
# ---------------------------------------------------------------------------


class CreateSchemaRequest(BaseModel):
    name: str
    profile_id: str
    display_name: str = ""


class MoveFieldRequest(BaseModel):
    new_index: int = Field(ge=0)


class VocabularyImportRequest(BaseModel):
    """Either a SKOHUB ``url`` or an already parsed ``data`` document."""

    url: Optional[str] = None
    data: Any = None
    replace: bool = True


class VocabularyImportResponse(BaseModel):
    imported: int
    field: dict[str, Any]


class ContentTypeModel(BaseModel):
    """Mirrors schemata.models.context.ContentType."""

    label: dict[str, str]
    schema_file: str
    icon: str = "article"


# ---------------------------------------------------------------------------
# Archive
# ---------------------------------------------------------------------------


class ImportResponse(BaseModel):
    contexts: int
    schemas: int
    active_context: str
    active_version: str
