"""Repository store: the in-memory owner of registry, manifests and schemas.

The store provides:
- Loading: registry, manifests and schema documents from a document store
- Navigation: the active context/version/schema/field cursors
- Mutations: context, version, schema, field, group, content type, changelog
- Export/import entry points delegating to ``schemata.archive``
"""
