"""Document stores: where registry, manifest and schema JSON files come from.

The repository store only needs ``read(path) -> bytes``.  Three backends:

- ``FileDocumentStore``: a local ``schemata`` folder (also writable)
- ``HttpDocumentStore``: files served below a base URL
- ``MemoryDocumentStore``: an in-process mapping, used for imports and tests
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterator, Optional

import httpx

logger = logging.getLogger(__name__)


class DocumentStoreError(Exception):
    """A document could not be read or written."""


class DocumentNotFoundError(DocumentStoreError):
    """The requested path does not exist in the store."""


class DocumentStore:
    """Path-addressed, read-only view of a schemata tree."""

    def read(self, path: str) -> bytes:
        raise NotImplementedError

    def read_json(self, path: str) -> Any:
        """Read and decode a JSON document.

        Raises ``DocumentStoreError`` for undecodable content.
        """
        raw = self.read(path)
        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise DocumentStoreError(f"Invalid JSON in {path}: {exc}") from exc


class FileDocumentStore(DocumentStore):
    """Documents stored below a local directory."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _resolve(self, path: str) -> Path:
        """Join *path* onto the root, rejecting anything that escapes it."""
        if "\x00" in path:
            raise DocumentStoreError(f"Invalid path: {path!r}")
        root = self.root.resolve()
        target = (root / path).resolve()
        if target != root and root not in target.parents:
            logger.warning("Path outside document root rejected: %r", path)
            raise DocumentStoreError(f"Path escapes document root: {path!r}")
        return target

    def read(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.is_file():
            raise DocumentNotFoundError(path)
        try:
            return target.read_bytes()
        except OSError as exc:
            raise DocumentStoreError(f"Failed to read {path}: {exc}") from exc

    def write(self, path: str, data: bytes) -> None:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise DocumentStoreError(f"Failed to write {path}: {exc}") from exc

    def exists(self, path: str) -> bool:
        try:
            return self._resolve(path).is_file()
        except DocumentStoreError:
            return False


class HttpDocumentStore(DocumentStore):
    """Documents served over HTTP, e.g. ``https://host/schemata``."""

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.Client] = None,
        timeout: float = 15.0,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout)

    def read(self, path: str) -> bytes:
        url = f"{self.base_url}/{path.lstrip('/')}"
        logger.debug("GET %s", url)
        try:
            resp = self._client.get(url, headers={"Accept": "application/json"})
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 404:
                raise DocumentNotFoundError(path) from exc
            raise DocumentStoreError(
                f"Failed to load {path}: HTTP {exc.response.status_code}"
            ) from exc
        except httpx.RequestError as exc:
            raise DocumentStoreError(f"Failed to reach {url}: {exc}") from exc
        return resp.content

    def close(self) -> None:
        self._client.close()


class MemoryDocumentStore(DocumentStore):
    """Documents held in a dict of ``path -> bytes``."""

    def __init__(self, files: Optional[dict[str, bytes]] = None):
        self.files: dict[str, bytes] = dict(files or {})

    @classmethod
    def from_json(cls, documents: dict[str, Any]) -> "MemoryDocumentStore":
        """Build a store from ``path -> JSON-serializable object``."""
        return cls(
            {
                path: json.dumps(doc, indent=2, ensure_ascii=False).encode("utf-8")
                for path, doc in documents.items()
            }
        )

    def read(self, path: str) -> bytes:
        try:
            return self.files[path]
        except KeyError:
            raise DocumentNotFoundError(path) from None

    def write(self, path: str, data: bytes) -> None:
        self.files[path] = data

    def paths(self) -> Iterator[str]:
        return iter(sorted(self.files))
