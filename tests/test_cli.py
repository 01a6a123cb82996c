"""Tests for the schemata command line interface."""

import json
import tempfile
import zipfile
from pathlib import Path

from click.testing import CliRunner

from schemata.cli import main
from schemata.models.schema import schema_from_dict, schema_to_dict

from tests.sample_data import write_tree


def _run(*args):
    return CliRunner().invoke(main, list(args), catch_exceptions=False)


def test_contexts_lists_registry():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = write_tree(tmpdir)
        result = _run("--root", str(root), "contexts")
    assert result.exit_code == 0
    assert "default" in result.output
    assert "mint" in result.output


def test_contexts_on_empty_folder_fails():
    with tempfile.TemporaryDirectory() as tmpdir:
        result = _run("--root", tmpdir, "contexts")
    assert result.exit_code == 1
    assert "Failed to load repository" in result.output


def test_versions_shows_changelog():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = write_tree(tmpdir)
        result = _run("--root", str(root), "versions", "default")
    assert result.exit_code == 0
    assert "v1.8.0" in result.output
    assert "(default)" in result.output
    assert "Keywords are required" in result.output


def test_versions_unknown_context():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = write_tree(tmpdir)
        result = _run("--root", str(root), "versions", "nope")
    assert result.exit_code == 1


def test_schemas_summary():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = write_tree(tmpdir)
        result = _run("--root", str(root), "schemas", "default", "1.8.0")
    assert result.exit_code == 0
    assert "core.json" in result.output
    assert "event.json" in result.output


def test_content_types():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = write_tree(tmpdir)
        result = _run("--root", str(root), "content-types")
    assert result.exit_code == 0
    assert "event.json" in result.output
    assert "Ereignis" in result.output


def test_export_then_import():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = write_tree(Path(tmpdir) / "source")
        archive = Path(tmpdir) / "out.zip"

        result = _run("--root", str(root), "export", "-o", str(archive))
        assert result.exit_code == 0
        with zipfile.ZipFile(archive) as zf:
            assert "context-registry.json" in zf.namelist()

        target = Path(tmpdir) / "target"
        result = _run("import", str(archive), str(target))
        assert result.exit_code == 0
        assert "2 contexts" in result.output
        restored = json.loads((target / "default" / "v1.8.0" / "core.json").read_text(encoding="utf-8"))
        original = json.loads((root / "default" / "v1.8.0" / "core.json").read_text(encoding="utf-8"))
        assert restored == schema_to_dict(schema_from_dict(original))


def test_import_rejects_archive_without_registry():
    with tempfile.TemporaryDirectory() as tmpdir:
        archive = Path(tmpdir) / "bad.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("readme.txt", "nothing here")
        result = _run("import", str(archive), str(Path(tmpdir) / "target"))
        assert result.exit_code == 1
        assert not (Path(tmpdir) / "target").exists()


def test_create_version_writes_files():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = write_tree(tmpdir)
        result = _run("--root", str(root), "create-version", "default", "2.0.0")
        assert result.exit_code == 0

        manifest = json.loads((root / "default" / "manifest.json").read_text(encoding="utf-8"))
        assert manifest["versions"]["2.0.0"]["schemas"] == ["core.json", "event.json"]
        assert manifest["versions"]["2.0.0"]["isDefault"] is False
        core = json.loads((root / "default" / "v2.0.0" / "core.json").read_text(encoding="utf-8"))
        assert core["version"] == "2.0.0"


def test_create_version_existing_fails():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = write_tree(tmpdir)
        result = _run("--root", str(root), "create-version", "default", "1.8.0")
    assert result.exit_code == 1
    assert "already exists" in result.output


def test_create_context_copies_selected_schemas():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = write_tree(tmpdir)
        result = _run(
            "--root", str(root), "create-context", "Open Edu", "Open Education", "--schema", "event.json"
        )
        assert result.exit_code == 0

        registry = json.loads((root / "context-registry.json").read_text(encoding="utf-8"))
        entry = registry["contexts"]["open_edu"]
        assert entry["name"] == "Open Education"
        assert entry["basedOn"] == "default@1.8.0"

        folder = root / "open_edu" / "v1.0.0"
        assert sorted(p.name for p in folder.iterdir()) == ["core.json", "event.json"]
        event = json.loads((folder / "event.json").read_text(encoding="utf-8"))
        assert event["version"] == "1.0.0"


def test_import_vocabulary_from_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = write_tree(Path(tmpdir) / "schemata")
        source = Path(tmpdir) / "vocab.json"
        source.write_text(
            json.dumps([{"prefLabel": {"de": "Mathe", "en": "Maths"}, "id": "http://example.org/math"}]),
            encoding="utf-8",
        )
        result = _run(
            "--root", str(root),
            "import-vocabulary", "default", "1.8.0", "core.json", "cclom:general_keyword", str(source),
        )
        assert result.exit_code == 0

        core = json.loads((root / "default" / "v1.8.0" / "core.json").read_text(encoding="utf-8"))
        keyword = next(f for f in core["fields"] if f["id"] == "cclom:general_keyword")
        assert keyword["system"]["vocabulary"]["type"] == "skos"
        assert keyword["system"]["vocabulary"]["concepts"][0]["uri"] == "http://example.org/math"


def test_setup_copies_folder():
    with tempfile.TemporaryDirectory() as tmpdir:
        source = write_tree(Path(tmpdir) / "upstream")
        target = Path(tmpdir) / "public" / "schemata"
        result = _run("setup", str(source), str(target))
        assert result.exit_code == 0
        assert (target / "context-registry.json").is_file()
        assert (target / "mint" / "v1.0.0" / "core.json").is_file()
