"""Schema document models -- fields, groups and their system configuration.

A schema document is one JSON file (``core.json``, ``event.json`` ...)
holding an ordered list of groups and an ordered list of fields.  Field
order is significant: it is the display order and nothing else defines it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from schemata.models.base import compact, extras, key_order_field
from schemata.models.localized import LocalizedLike
from schemata.models.vocabulary import Vocabulary, vocabulary_from_dict, vocabulary_to_dict

DEFAULT_GROUP_ID = "general"
DEFAULT_JSONLD_CONTEXT = {"schema": "https://schema.org/"}


class Datatype(str, Enum):
    """Value type of a field."""

    string = "string"
    array = "array"
    uri = "uri"
    number = "number"
    date = "date"
    boolean = "boolean"
    object = "object"


class CaseTransform(str, Enum):
    lower = "lower"
    upper = "upper"
    title = "title"


# --- System configuration blocks ---


@dataclass
class IndexConfig:
    """Search index participation."""

    fulltext: Optional[bool] = None
    keyword: Optional[bool] = None
    extra: dict[str, Any] = field(default_factory=dict)
    key_order: tuple[str, ...] = key_order_field()


@dataclass
class NormalizationConfig:
    """Value normalization applied before storing."""

    trim: Optional[bool] = None
    collapse_whitespace: Optional[bool] = None
    deduplicate: Optional[bool] = None
    map_labels_to_uris: Optional[bool] = None
    case: Optional[str] = None  # lower | upper | title
    extra: dict[str, Any] = field(default_factory=dict)
    key_order: tuple[str, ...] = key_order_field()


@dataclass
class ValidationConfig:
    """Value constraints."""

    pattern: Optional[str] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    min: Optional[float] = None
    max: Optional[float] = None
    integer: Optional[bool] = None
    extra: dict[str, Any] = field(default_factory=dict)
    key_order: tuple[str, ...] = key_order_field()


@dataclass
class SystemConfig:
    """Technical configuration owned by exactly one field."""

    path: Optional[str] = None
    uri: Optional[str] = None
    datatype: Optional[str] = None  # Datatype value
    multiple: Optional[bool] = None
    required: Optional[bool] = None
    ask_user: Optional[bool] = None
    ai_fillable: Optional[bool] = None
    repo_field: Optional[bool] = None
    index: Optional[IndexConfig] = None
    vocabulary: Optional[Vocabulary] = None
    normalization: Optional[NormalizationConfig] = None
    validation: Optional[ValidationConfig] = None
    items: Optional[dict[str, Any]] = None  # array item configuration, kept raw
    extra: dict[str, Any] = field(default_factory=dict)
    key_order: tuple[str, ...] = key_order_field()


# --- Fields, groups, documents ---


@dataclass
class SchemaField:
    """One metadata attribute definition.

    ``id`` follows the ``namespace:name`` convention (``cclom:title``).
    ``group`` is a soft reference to a :class:`SchemaGroup` id.
    """

    id: str
    label: Optional[LocalizedLike] = None
    system: SystemConfig = field(default_factory=SystemConfig)
    group: Optional[str] = None
    description: Optional[LocalizedLike] = None
    examples: Optional[dict[str, Any]] = None
    prompt: Optional[LocalizedLike] = None
    prompt_instructions: Optional[dict[str, Any]] = None
    extra: dict[str, Any] = field(default_factory=dict)
    key_order: tuple[str, ...] = key_order_field()


@dataclass
class SchemaGroup:
    """A display bucket for fields."""

    id: str
    label: Optional[LocalizedLike] = None
    description: Optional[LocalizedLike] = None
    order: Optional[int] = None
    extra: dict[str, Any] = field(default_factory=dict)
    key_order: tuple[str, ...] = key_order_field()


@dataclass
class SchemaDocument:
    """A named schema file: profile id, version tag, groups and fields."""

    profile_id: str
    version: str
    groups: list[SchemaGroup] = field(default_factory=list)
    fields: list[SchemaField] = field(default_factory=list)
    jsonld_context: Optional[dict[str, Any]] = None
    output_template: Optional[dict[str, Any]] = None
    extra: dict[str, Any] = field(default_factory=dict)
    key_order: tuple[str, ...] = key_order_field()

    def find_field(self, field_id: str) -> Optional[SchemaField]:
        for f in self.fields:
            if f.id == field_id:
                return f
        return None

    def field_index(self, field_id: str) -> int:
        for i, f in enumerate(self.fields):
            if f.id == field_id:
                return i
        return -1

    def field_ids(self) -> list[str]:
        return [f.id for f in self.fields]

    def find_group(self, group_id: str) -> Optional[SchemaGroup]:
        for g in self.groups:
            if g.id == group_id:
                return g
        return None


def new_schema_document(profile_id: str, version: str) -> SchemaDocument:
    """Create an empty document with the default ``general`` group."""
    return SchemaDocument(
        profile_id=profile_id,
        version=version,
        jsonld_context=dict(DEFAULT_JSONLD_CONTEXT),
        groups=[SchemaGroup(id=DEFAULT_GROUP_ID, label={"de": "Allgemein", "en": "General"})],
        fields=[],
    )


# ---------------------------------------------------------------------------
# Converters
# ---------------------------------------------------------------------------

_INDEX_KEYS = ("fulltext", "keyword")
_NORMALIZATION_KEYS = ("trim", "collapseWhitespace", "deduplicate", "map_labels_to_uris", "case")
_VALIDATION_KEYS = ("pattern", "minLength", "maxLength", "min", "max", "integer")
_SYSTEM_KEYS = (
    "path", "uri", "datatype", "multiple", "required", "ask_user", "ai_fillable",
    "repo_field", "index", "vocabulary", "normalization", "validation", "items",
)
_FIELD_KEYS = (
    "id", "group", "label", "description", "examples", "prompt",
    "promptInstructions", "system",
)
_GROUP_KEYS = ("id", "label", "description", "order")
_SCHEMA_KEYS = ("profileId", "version", "@context", "groups", "fields", "output_template")


def _index_from_dict(d: dict) -> IndexConfig:
    return IndexConfig(
        fulltext=d.get("fulltext"),
        keyword=d.get("keyword"),
        extra=extras(d, _INDEX_KEYS),
        key_order=tuple(d),
    )


def _index_to_dict(i: IndexConfig) -> dict:
    return compact([("fulltext", i.fulltext), ("keyword", i.keyword)], i.extra, i.key_order)


def _normalization_from_dict(d: dict) -> NormalizationConfig:
    return NormalizationConfig(
        trim=d.get("trim"),
        collapse_whitespace=d.get("collapseWhitespace"),
        deduplicate=d.get("deduplicate"),
        map_labels_to_uris=d.get("map_labels_to_uris"),
        case=d.get("case"),
        extra=extras(d, _NORMALIZATION_KEYS),
        key_order=tuple(d),
    )


def _normalization_to_dict(n: NormalizationConfig) -> dict:
    return compact(
        [
            ("trim", n.trim),
            ("collapseWhitespace", n.collapse_whitespace),
            ("deduplicate", n.deduplicate),
            ("map_labels_to_uris", n.map_labels_to_uris),
            ("case", n.case),
        ],
        n.extra,
        n.key_order,
    )


def _validation_from_dict(d: dict) -> ValidationConfig:
    return ValidationConfig(
        pattern=d.get("pattern"),
        min_length=d.get("minLength"),
        max_length=d.get("maxLength"),
        min=d.get("min"),
        max=d.get("max"),
        integer=d.get("integer"),
        extra=extras(d, _VALIDATION_KEYS),
        key_order=tuple(d),
    )


def _validation_to_dict(v: ValidationConfig) -> dict:
    return compact(
        [
            ("pattern", v.pattern),
            ("minLength", v.min_length),
            ("maxLength", v.max_length),
            ("min", v.min),
            ("max", v.max),
            ("integer", v.integer),
        ],
        v.extra,
        v.key_order,
    )


def system_from_dict(d: dict) -> SystemConfig:
    return SystemConfig(
        path=d.get("path"),
        uri=d.get("uri"),
        datatype=d.get("datatype"),
        multiple=d.get("multiple"),
        required=d.get("required"),
        ask_user=d.get("ask_user"),
        ai_fillable=d.get("ai_fillable"),
        repo_field=d.get("repo_field"),
        index=_index_from_dict(d["index"]) if d.get("index") is not None else None,
        vocabulary=vocabulary_from_dict(d["vocabulary"]) if d.get("vocabulary") is not None else None,
        normalization=(
            _normalization_from_dict(d["normalization"])
            if d.get("normalization") is not None
            else None
        ),
        validation=_validation_from_dict(d["validation"]) if d.get("validation") is not None else None,
        items=d.get("items"),
        extra=extras(d, _SYSTEM_KEYS),
        key_order=tuple(d),
    )


def system_to_dict(s: SystemConfig) -> dict:
    datatype = s.datatype.value if isinstance(s.datatype, Datatype) else s.datatype
    return compact(
        [
            ("path", s.path),
            ("uri", s.uri),
            ("datatype", datatype),
            ("multiple", s.multiple),
            ("required", s.required),
            ("ask_user", s.ask_user),
            ("ai_fillable", s.ai_fillable),
            ("repo_field", s.repo_field),
            ("index", _index_to_dict(s.index) if s.index else None),
            ("vocabulary", vocabulary_to_dict(s.vocabulary) if s.vocabulary else None),
            ("normalization", _normalization_to_dict(s.normalization) if s.normalization else None),
            ("validation", _validation_to_dict(s.validation) if s.validation else None),
            ("items", s.items),
        ],
        s.extra,
        s.key_order,
    )


def field_from_dict(d: dict) -> SchemaField:
    return SchemaField(
        id=d["id"],
        group=d.get("group"),
        label=d.get("label"),
        description=d.get("description"),
        examples=d.get("examples"),
        prompt=d.get("prompt"),
        prompt_instructions=d.get("promptInstructions"),
        system=system_from_dict(d.get("system") or {}),
        extra=extras(d, _FIELD_KEYS),
        key_order=tuple(d),
    )


def field_to_dict(f: SchemaField) -> dict:
    system = system_to_dict(f.system)
    return compact(
        [
            ("id", f.id),
            ("group", f.group),
            ("label", f.label),
            ("description", f.description),
            ("examples", f.examples),
            ("prompt", f.prompt),
            ("promptInstructions", f.prompt_instructions),
            # an empty block is written only when the source had one
            ("system", system if system or "system" in f.key_order else None),
        ],
        f.extra,
        f.key_order,
    )


def group_from_dict(d: dict) -> SchemaGroup:
    return SchemaGroup(
        id=d["id"],
        label=d.get("label"),
        description=d.get("description"),
        order=d.get("order"),
        extra=extras(d, _GROUP_KEYS),
        key_order=tuple(d),
    )


def group_to_dict(g: SchemaGroup) -> dict:
    return compact(
        [
            ("id", g.id),
            ("label", g.label),
            ("description", g.description),
            ("order", g.order),
        ],
        g.extra,
        g.key_order,
    )


def schema_from_dict(d: dict) -> SchemaDocument:
    return SchemaDocument(
        profile_id=d.get("profileId", ""),
        version=d.get("version", ""),
        jsonld_context=d.get("@context"),
        groups=[group_from_dict(g) for g in d.get("groups", [])],
        fields=[field_from_dict(f) for f in d.get("fields", [])],
        output_template=d.get("output_template"),
        extra=extras(d, _SCHEMA_KEYS),
        key_order=tuple(d),
    )


def schema_to_dict(s: SchemaDocument) -> dict:
    return compact(
        [
            ("profileId", s.profile_id),
            ("version", s.version),
            ("@context", s.jsonld_context),
            ("groups", [group_to_dict(g) for g in s.groups]),
            ("fields", [field_to_dict(f) for f in s.fields]),
            ("output_template", s.output_template),
        ],
        s.extra,
        s.key_order,
    )
