"""Tests for ZIP archive export and import."""

import io
import json
import tempfile
import zipfile
from datetime import date

from schemata.archive.codec import build_archive, dump_json, export_filename, read_archive, write_documents
from schemata.models.schema import SchemaField
from schemata.store.document_store import FileDocumentStore, MemoryDocumentStore
from schemata.store.repository import RepositoryStore

from tests.sample_data import REGISTRY, loaded_store


def _zip(files: dict) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for path, content in files.items():
            zf.writestr(path, content if isinstance(content, str) else json.dumps(content))
    return buffer.getvalue()


def _entries(data: bytes) -> dict[str, bytes]:
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return {name: zf.read(name) for name in zf.namelist()}


def test_export_filename():
    assert export_filename(date(2024, 5, 1)) == "schemata-export-2024-05-01.zip"


def test_export_layout():
    store = loaded_store()
    data = store.export_as_zip()
    names = list(_entries(data))
    assert names == [
        "context-registry.json",
        "default/manifest.json",
        "default/v1.0.0/core.json",
        "default/v1.8.0/core.json",
        "default/v1.8.0/event.json",
        "mint/manifest.json",
        "mint/v1.0.0/core.json",
    ]
    registry = json.loads(_entries(data)["context-registry.json"])
    assert registry == REGISTRY


def test_export_json_is_pretty_printed_utf8():
    store = loaded_store()
    text = _entries(store.export_as_zip())["default/v1.8.0/core.json"].decode("utf-8")
    assert text.startswith('{\n  "profileId": "core"')
    assert "Schlagwörter" in text


def test_export_twice_is_byte_identical():
    store = loaded_store()
    first = store.export_as_zip()
    second = store.export_as_zip()
    assert first == second


def test_export_without_registry():
    assert RepositoryStore(MemoryDocumentStore()).export_as_zip() is None


def test_round_trip_after_edits():
    store = loaded_store()
    store.load_all_schemas()
    store.create_context("oer", "OER", "default@1.8.0")
    store.create_version("default", "2.0.0")
    store.set_active_schema("core.json")
    store.add_field("core.json", SchemaField(id="cclom:new", label={"de": "Neu", "en": "New"}))
    store.delete_group("core.json", "content")

    data = store.export_as_zip()

    restored = RepositoryStore()
    assert restored.import_from_zip(data)
    assert restored.registry == store.registry
    assert restored.manifests == store.manifests
    # Only documents named by a manifest travel through the archive.
    reachable = {
        key: schema
        for key, schema in store.schemas.items()
        if key.split("@")[0] in store.manifests
    }
    assert restored.schemas == reachable
    assert restored.has_unsaved_changes


def test_reexport_after_import_is_identical():
    data = loaded_store().export_as_zip()
    restored = RepositoryStore()
    restored.import_from_zip(data)
    assert build_archive(restored.registry, restored.manifests, restored.schemas) == data


def test_reexport_keeps_documents_byte_for_byte():
    documents = {
        "context-registry.json": {
            "defaultContext": "default",
            "contexts": {"default": {"path": "default", "name": "Standard", "defaultVersion": "1.0.0"}},
        },
        "default/manifest.json": {
            "versions": {"1.0.0": {"schemas": ["core.json"], "releaseDate": "2024-01-01"}},
            "name": "Standard",
            "contextName": "default",
        },
        "default/v1.0.0/core.json": {
            "version": "1.0.0",
            "profileId": "core",
            "groups": [{"label": "Allgemein", "id": "general"}],
            "fields": [
                {"system": {"datatype": "string"}, "id": "cclom:title", "label": {"en": "Title", "de": "Titel"}},
                {"id": "cclom:bare"},
                {
                    "id": "cclom:keyword",
                    "system": {"vocabulary": {"concepts": [{"uri": "http://example.org/a", "label": "A"}]}},
                },
            ],
        },
    }
    texts = {path: dump_json(doc) for path, doc in documents.items()}

    store = RepositoryStore()
    assert store.import_from_zip(_zip(texts))
    exported = _entries(store.export_as_zip())
    assert exported == {path: text.encode("utf-8") for path, text in texts.items()}


def test_import_moves_cursors_to_default_context():
    store = loaded_store()
    data = store.export_as_zip()

    target = loaded_store()
    target.set_active_context("mint")
    target.set_active_schema("core.json")
    assert target.import_from_zip(data)
    assert target.active_context == "default"
    assert target.active_version == "1.8.0"
    assert target.active_schema_file is None


def test_import_without_registry_changes_nothing():
    store = loaded_store()
    registry = store.registry
    data = _zip({"default/manifest.json": {"contextName": "default", "name": "x", "versions": {}}})
    assert store.import_from_zip(data) is False
    assert store.registry is registry
    assert not store.has_unsaved_changes


def test_import_corrupt_archive():
    store = loaded_store()
    assert store.import_from_zip(b"definitely not a zip") is False
    assert read_archive(b"") is None


def _corrupt_entry(data: bytes, name: str) -> bytes:
    """Overwrite the compressed bytes of one entry, keeping the ZIP structure intact."""
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        info = zf.getinfo(name)
    start = info.header_offset + 30 + len(info.filename.encode("utf-8")) + len(info.extra)
    return data[:start] + b"\xff" * info.compress_size + data[start + info.compress_size :]


def test_import_corrupt_deflate_stream():
    store = loaded_store()
    registry = store.registry
    data = _corrupt_entry(store.export_as_zip(), "context-registry.json")
    assert read_archive(data) is None
    assert store.import_from_zip(data) is False
    assert store.registry is registry
    assert not store.has_unsaved_changes


def test_import_invalid_json_aborts():
    data = _zip(
        {
            "context-registry.json": REGISTRY,
            "default/manifest.json": "{ broken",
        }
    )
    store = loaded_store()
    manifests = store.manifests
    assert store.import_from_zip(data) is False
    assert store.manifests is manifests


def test_import_skips_missing_pieces():
    data = _zip(
        {
            "context-registry.json": REGISTRY,
            "default/manifest.json": {
                "contextName": "default",
                "name": "Standard",
                "versions": {"1.8.0": {"releaseDate": "2024-06-01", "schemas": ["core.json", "gone.json"]}},
            },
            "default/v1.8.0/core.json": {"profileId": "core", "version": "1.8.0"},
        }
    )
    contents = read_archive(data)
    assert set(contents.manifests) == {"default"}
    assert list(contents.schemas) == ["default@1.8.0/core.json"]


def test_write_documents_into_folder():
    store = loaded_store()
    contents = read_archive(store.export_as_zip())
    with tempfile.TemporaryDirectory() as tmpdir:
        count = write_documents(contents, FileDocumentStore(tmpdir))
        assert count == 7

        reloaded = RepositoryStore(FileDocumentStore(tmpdir))
        assert reloaded.load_registry()
        assert reloaded.load_all_schemas() == 4
        assert reloaded.schemas == store.schemas
