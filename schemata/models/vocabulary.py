"""Vocabulary models: controlled value sets attached to a field."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from schemata.models.base import compact, extras, key_order_field, string_list
from schemata.models.localized import LocalizedLike


class VocabularyType(str, Enum):
    """Kind of vocabulary."""

    closed = "closed"  # simple select list
    skos = "skos"  # concepts carry URIs, scheme is meaningful
    open = "open"  # suggestions, free values allowed


@dataclass
class VocabularyConcept:
    """A single permissible value.

    ``schema_file`` links the concept to a schema document; this is how
    content types are registered in ``core.json``.
    """

    label: LocalizedLike
    uri: Optional[str] = None
    value: Optional[str] = None
    description: Optional[LocalizedLike] = None
    alt_labels: Optional[Any] = None  # localized mapping or list of strings
    icon: Optional[str] = None
    schema_file: Optional[str] = None
    broader: Optional[str] = None
    narrower: Optional[list[str]] = None
    extra: dict[str, Any] = field(default_factory=dict)
    key_order: tuple[str, ...] = key_order_field()


@dataclass
class Vocabulary:
    """A set of concepts.  ``scheme`` only matters for SKOS vocabularies."""

    type: Optional[str] = VocabularyType.closed.value
    concepts: list[VocabularyConcept] = field(default_factory=list)
    scheme: Optional[str] = None
    hierarchical: Optional[bool] = None
    skohub_url: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)
    key_order: tuple[str, ...] = key_order_field()

    @property
    def is_skos(self) -> bool:
        return self.type == VocabularyType.skos


_CONCEPT_KEYS = (
    "label", "uri", "value", "description", "altLabels", "icon",
    "schema_file", "broader", "narrower",
)
_VOCABULARY_KEYS = ("type", "scheme", "hierarchical", "concepts", "skohubUrl")


def concept_from_dict(data: dict) -> VocabularyConcept:
    return VocabularyConcept(
        label=data.get("label", ""),
        uri=data.get("uri"),
        value=data.get("value"),
        description=data.get("description"),
        alt_labels=data.get("altLabels"),
        icon=data.get("icon"),
        schema_file=data.get("schema_file"),
        broader=data.get("broader"),
        narrower=string_list(data["narrower"]) if data.get("narrower") is not None else None,
        extra=extras(data, _CONCEPT_KEYS),
        key_order=tuple(data),
    )


def concept_to_dict(concept: VocabularyConcept) -> dict:
    return compact(
        [
            ("label", concept.label),
            ("uri", concept.uri),
            ("value", concept.value),
            ("description", concept.description),
            ("altLabels", concept.alt_labels),
            ("icon", concept.icon),
            ("schema_file", concept.schema_file),
            ("broader", concept.broader),
            ("narrower", concept.narrower),
        ],
        concept.extra,
        concept.key_order,
    )


def vocabulary_from_dict(data: dict) -> Vocabulary:
    return Vocabulary(
        type=data.get("type"),
        concepts=[concept_from_dict(c) for c in data.get("concepts", [])],
        scheme=data.get("scheme"),
        hierarchical=data.get("hierarchical"),
        skohub_url=data.get("skohubUrl"),
        extra=extras(data, _VOCABULARY_KEYS),
        key_order=tuple(data),
    )


def vocabulary_to_dict(vocabulary: Vocabulary) -> dict:
    vocab_type = vocabulary.type
    if isinstance(vocab_type, VocabularyType):
        vocab_type = vocab_type.value
    return compact(
        [
            ("type", vocab_type),
            ("scheme", vocabulary.scheme),
            ("hierarchical", vocabulary.hierarchical),
            ("concepts", [concept_to_dict(c) for c in vocabulary.concepts]),
            ("skohubUrl", vocabulary.skohub_url),
        ],
        vocabulary.extra,
        vocabulary.key_order,
    )
