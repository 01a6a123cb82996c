"""Archive -- export/import of the whole repository.

- ``codec``: ZIP archives with the document-store layout
- ``bundle``: single JSON documents for programmatic use
"""
