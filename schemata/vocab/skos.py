"""SKOS / SKOHUB vocabulary adapter.

Recognized input shapes:

1. SKOHUB ``ConceptScheme`` with ``hasTopConcept`` (nested ``narrower``)
2. JSON-LD with an ``@graph`` of ``skos:Concept`` nodes
3. A plain list of ``{prefLabel|label, uri|id|@id}`` items

Anything else yields no concepts.  An empty result is a dead end for the
caller, not an error.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional, Protocol

import httpx

from schemata.models.localized import LANGUAGES, LocalizedValue
from schemata.models.vocabulary import VocabularyConcept

logger = logging.getLogger(__name__)


class VocabularyFormatError(Exception):
    """The vocabulary source is not readable (bad JSON, unreachable URL)."""


class VocabularyAdapter(Protocol):
    """Turns an external vocabulary document into concepts."""

    def parse_concepts(self, raw: Any) -> list[VocabularyConcept]: ...

    def scheme_uri(self, raw: Any) -> Optional[str]: ...


def parse_json_text(text: str) -> Any:
    """Decode pasted JSON, raising ``VocabularyFormatError`` when invalid."""
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise VocabularyFormatError(f"Invalid JSON: {exc}") from exc


def fetch_vocabulary(url: str, client: Optional[httpx.Client] = None) -> Any:
    """Download a SKOHUB vocabulary as JSON."""
    owns_client = client is None
    client = client or httpx.Client(timeout=15.0, follow_redirects=True)
    try:
        resp = client.get(url, headers={"Accept": "application/json"})
        resp.raise_for_status()
        return resp.json()
    except httpx.HTTPStatusError as exc:
        raise VocabularyFormatError(
            f"Failed to fetch vocabulary: HTTP {exc.response.status_code}"
        ) from exc
    except httpx.RequestError as exc:
        raise VocabularyFormatError(f"Failed to reach {url}: {exc}") from exc
    except ValueError as exc:
        raise VocabularyFormatError(f"Vocabulary at {url} is not JSON") from exc
    finally:
        if owns_client:
            client.close()


def _lang_pair(value: Any, fallback: str = "") -> LocalizedValue:
    if isinstance(value, dict):
        return {"de": value.get("de") or fallback, "en": value.get("en") or fallback}
    if isinstance(value, str):
        return {"de": value or fallback, "en": value or fallback}
    return {"de": fallback, "en": fallback}


def _joined(value: Any) -> str:
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return value or ""


class SkosJsonAdapter:
    """Default adapter for SKOHUB and JSON-LD SKOS exports."""

    def scheme_uri(self, raw: Any) -> Optional[str]:
        if isinstance(raw, dict) and raw.get("type") == "ConceptScheme":
            return raw.get("id")
        return None

    def parse_concepts(self, raw: Any) -> list[VocabularyConcept]:
        if isinstance(raw, str):
            raw = parse_json_text(raw)

        if isinstance(raw, dict) and raw.get("type") == "ConceptScheme" and raw.get("hasTopConcept"):
            concepts: list[VocabularyConcept] = []
            for item in raw["hasTopConcept"]:
                if not isinstance(item, dict):
                    continue
                self._collect_scheme_concept(item, None, concepts)
            return concepts

        if isinstance(raw, dict) and raw.get("@graph"):
            return [
                self._graph_concept(item)
                for item in raw["@graph"]
                if isinstance(item, dict)
                and (item.get("@type") == "skos:Concept" or item.get("type") == "Concept")
            ]

        if isinstance(raw, list):
            return [self._list_concept(item) for item in raw if isinstance(item, dict)]

        logger.info("Unrecognized vocabulary format")
        return []

    # -- shape handlers -----------------------------------------------------

    def _collect_scheme_concept(
        self,
        item: dict,
        broader: Optional[str],
        out: list[VocabularyConcept],
    ) -> None:
        """Flatten a SKOHUB concept and its ``narrower`` children into *out*."""
        alt_labels = None
        alt = item.get("altLabel")
        if isinstance(alt, dict):
            alt_labels = {"de": _joined(alt.get("de")), "en": _joined(alt.get("en"))}

        definition = item.get("definition")
        uri = item.get("id") or ""
        concept = VocabularyConcept(
            label=_lang_pair(item.get("prefLabel")),
            uri=uri,
            alt_labels=alt_labels,
            description=_lang_pair(definition) if definition else None,
            broader=broader,
        )
        out.append(concept)

        children = [c for c in item.get("narrower") or [] if isinstance(c, dict)]
        if children:
            concept.narrower = [c.get("id") or "" for c in children]
            for child in children:
                self._collect_scheme_concept(child, uri, out)

    @staticmethod
    def _graph_concept(item: dict) -> VocabularyConcept:
        node_id = item.get("@id") or item.get("id")
        skos_value = item.get("skos:prefLabel")
        if isinstance(skos_value, dict):
            skos_value = skos_value.get("@value")
        fallback = skos_value if isinstance(skos_value, str) and skos_value else node_id or ""
        definition = item.get("definition")
        return VocabularyConcept(
            label=_lang_pair(item.get("prefLabel"), fallback),
            uri=node_id,
            description=_lang_pair(definition) if definition else None,
        )

    @staticmethod
    def _list_concept(item: dict) -> VocabularyConcept:
        pref = _lang_pair(item.get("prefLabel"))
        label = _lang_pair(item.get("label"))
        return VocabularyConcept(
            label={lang: pref[lang] or label[lang] for lang in LANGUAGES},
            uri=item.get("uri") or item.get("id") or item.get("@id") or "",
        )
