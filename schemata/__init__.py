"""schemata — editor core for hierarchically versioned JSON metadata schemas.

The package provides:
- Models: registry, manifests, schema documents, fields, vocabularies
- Store: the in-memory repository with load, navigation and mutations
- Archive: ZIP and JSON bundle export/import of the whole repository
- Vocab: pluggable import adapters for external vocabularies (SKOS/SKOHUB)
"""

__version__ = "0.1.0"
