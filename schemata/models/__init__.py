"""Data models for the schema repository.

Every entity is a plain dataclass with module-level ``*_from_dict`` /
``*_to_dict`` converters.  Entities carry no back-references; all
relationships are by string key (context name, version, schema file,
field id, group id).
"""
