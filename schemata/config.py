"""Settings for the CLI and REST layers.

Resolution order (later wins): built-in defaults, a YAML file
(``schemata.yaml`` in the working directory or the path in
``SCHEMATA_CONFIG``), then ``SCHEMATA_*`` environment variables.

Example ``schemata.yaml``::

    root: ./public/schemata
    base_url: https://example.org/schemata
    default_context: default
    field_id_policy: reject
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Mapping, Optional

import yaml

from schemata.models.context import DEFAULT_CONTEXT
from schemata.store.document_store import DocumentStore, FileDocumentStore, HttpDocumentStore

CONFIG_FILE = "schemata.yaml"

_ENV_PREFIX = "SCHEMATA_"


@dataclass
class Settings:
    root: str = "public/schemata"
    base_url: str = ""
    default_context: str = DEFAULT_CONTEXT
    field_id_policy: str = "reject"

    def document_store(self) -> DocumentStore:
        """HTTP store when ``base_url`` is set, else the local folder."""
        if self.base_url:
            return HttpDocumentStore(self.base_url)
        return FileDocumentStore(self.root)


def load_settings(
    path: Optional[str | Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build settings from the config file and environment."""
    environ = os.environ if environ is None else environ
    settings = Settings()
    names = {f.name for f in fields(Settings)}

    config_path = Path(path or environ.get(f"{_ENV_PREFIX}CONFIG", CONFIG_FILE))
    if config_path.is_file():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{config_path}: expected a mapping at top level")
        for key, value in data.items():
            if key in names and value is not None:
                setattr(settings, key, str(value))

    for name in names:
        value = environ.get(f"{_ENV_PREFIX}{name.upper()}")
        if value:
            setattr(settings, name, value)

    return settings
