"""Tests for RepositoryStore loading, navigation and editing operations."""

from dataclasses import replace

from schemata.models.context import ContentType
from schemata.models.schema import SchemaField, SchemaGroup, SystemConfig
from schemata.models.vocabulary import Vocabulary, VocabularyConcept
from schemata.store.document_store import MemoryDocumentStore
from schemata.store.repository import FieldIdPolicy, RepositoryStore

from tests.sample_data import loaded_store, memory_documents


def _store_on_core(**kwargs) -> RepositoryStore:
    store = loaded_store(**kwargs)
    store.set_active_schema("core.json")
    assert store.active_schema() is not None
    return store


def _field(field_id: str, group: str = "general") -> SchemaField:
    return SchemaField(
        id=field_id,
        label={"de": field_id, "en": field_id},
        group=group,
        system=SystemConfig(path=field_id),
    )


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def test_load_registry_loads_manifests():
    store = loaded_store()
    assert set(store.registry.contexts) == {"default", "mint"}
    assert set(store.manifests) == {"default", "mint"}
    assert store.active_context == "default"
    assert store.active_version == "1.8.0"
    assert store.is_loading is False
    assert store.error is None


def test_load_registry_failure_sets_error():
    store = RepositoryStore(MemoryDocumentStore())
    assert store.load_registry() is False
    assert "context registry" in store.error
    assert store.registry is None
    assert store.is_loading is False


def test_load_registry_without_document_store():
    store = RepositoryStore()
    assert store.load_registry() is False
    assert store.error


def test_broken_manifest_is_skipped():
    store = RepositoryStore(memory_documents(**{"mint/manifest.json": None}))
    assert store.load_registry()
    assert "mint" not in store.manifests
    assert "default" in store.manifests


def test_load_schema_failure_sets_error():
    store = loaded_store()
    assert store.load_schema("default", "1.8.0", "missing.json") is False
    assert "missing.json" in store.error
    assert store.is_loading is False


def test_load_schema_unknown_context():
    store = loaded_store()
    assert store.load_schema("nope", "1.0.0", "core.json") is False
    assert "nope" in store.error


def test_load_all_schemas_counts_and_skips_missing():
    store = RepositoryStore(memory_documents(**{"default/v1.8.0/event.json": None}))
    store.load_registry()
    assert store.load_all_schemas() == 3
    assert "default@1.8.0/event.json" not in store.schemas
    # Cached documents are not fetched twice.
    assert store.load_all_schemas() == 0


def test_reload_clears_cache():
    store = _store_on_core()
    store.add_field("core.json", _field("cclom:new"))
    assert store.reload()
    assert store.schemas == {}
    assert store.active_schema_file is None
    assert store.manifests


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------


def test_set_active_version_resets_schema_and_field():
    store = _store_on_core()
    store.set_active_field("cclom:title")
    assert store.active_field().id == "cclom:title"

    store.set_active_version("1.0.0")

    assert store.active_context == "default"
    assert store.active_version == "1.0.0"
    assert store.active_schema_file is None
    assert store.active_field_id is None


def test_set_active_context_uses_context_default_version():
    store = _store_on_core()
    store.set_active_context("mint")
    assert store.active_version == "1.0.0"
    assert store.active_schema_file is None
    assert store.available_schemas() == ["core.json"]


def test_set_active_context_unknown_is_noop():
    store = _store_on_core()
    store.set_active_context("nope")
    assert store.active_context == "default"
    assert store.active_schema_file == "core.json"


def test_set_active_schema_loads_on_demand():
    store = loaded_store()
    assert store.schemas == {}
    store.set_active_schema("event.json")
    assert "default@1.8.0/event.json" in store.schemas
    assert store.active_schema().profile_id == "event"


def test_set_active_schema_does_not_refetch_cached():
    store = _store_on_core()
    store.add_field("core.json", _field("cclom:new"))
    store.set_active_schema("event.json")
    store.set_active_schema("core.json")
    assert store.get_schema("core.json").find_field("cclom:new") is not None


def test_available_schemas():
    store = loaded_store()
    assert store.available_schemas() == ["core.json", "event.json"]
    store.set_active_version("9.9.9")
    assert store.available_schemas() == []


# ---------------------------------------------------------------------------
# Contexts
# ---------------------------------------------------------------------------


def test_create_context():
    store = loaded_store()
    assert store.create_context("oer", "OER", "default@1.8.0", ["core.json", "event.json"])

    entry = store.registry.entry("oer")
    assert entry.name == "OER"
    assert entry.default_version == "1.0.0"
    assert entry.path == "oer"
    assert entry.description == "Based on default@1.8.0"

    manifest = store.manifests["oer"]
    assert list(manifest.versions) == ["1.0.0"]
    assert manifest.versions["1.0.0"].is_default is True
    assert manifest.versions["1.0.0"].schemas == ["core.json", "event.json"]
    assert store.has_unsaved_changes


def test_create_context_defaults_to_core_schema():
    store = loaded_store()
    store.create_context("plain", "Plain")
    assert store.manifests["plain"].versions["1.0.0"].schemas == ["core.json"]
    assert store.registry.entry("plain").description == ""


def test_create_context_without_registry_is_noop():
    store = RepositoryStore(MemoryDocumentStore())
    assert store.create_context("x", "X") is False
    assert store.manifests == {}


def test_delete_default_context_is_rejected():
    store = loaded_store()
    assert store.delete_context("default") is False
    assert "default" in store.registry.contexts
    assert "default" in store.manifests
    assert "Cannot delete default context" in store.error


def test_delete_context_resets_cursor_to_default():
    store = loaded_store()
    store.set_active_context("mint")
    store.set_active_schema("core.json")
    cached = dict(store.schemas)

    assert store.delete_context("mint")

    assert "mint" not in store.registry.contexts
    assert "mint" not in store.manifests
    assert store.schemas == cached  # cached documents stay
    assert store.active_context == "default"
    assert store.active_version == "1.8.0"
    assert store.active_schema_file is None


def test_delete_inactive_context_also_resets_cursor():
    store = _store_on_core()
    store.delete_context("mint")
    assert store.active_context == "default"
    assert store.active_schema_file is None


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


def test_create_schema_registers_in_manifest():
    store = loaded_store()
    assert store.create_schema("course.json", "course", "Course")
    schema = store.get_schema("course.json")
    assert schema.profile_id == "course"
    assert schema.version == "1.8.0"
    assert [g.id for g in schema.groups] == ["general"]
    assert "course.json" in store.available_schemas()
    assert store.active_schema_file == "course.json"


def test_create_schema_twice_lists_file_once():
    store = loaded_store()
    store.create_schema("course.json", "course")
    store.create_schema("course.json", "course")
    assert store.available_schemas().count("course.json") == 1


def test_delete_schema():
    store = _store_on_core()
    assert store.delete_schema("core.json")
    assert store.get_schema("core.json") is None
    assert store.available_schemas() == ["event.json"]
    assert store.active_schema_file is None


def test_update_schema_shallow_merge():
    store = _store_on_core()
    assert store.update_schema("core.json", {"profile_id": "core-v2"})
    schema = store.get_schema("core.json")
    assert schema.profile_id == "core-v2"
    assert len(schema.fields) == 3


def test_update_schema_unknown_attribute():
    store = _store_on_core()
    assert store.update_schema("core.json", {"colour": "red"}) is False
    assert "colour" in store.error


def test_update_uncached_schema_is_noop():
    store = loaded_store()
    assert store.update_schema("core.json", {"profile_id": "x"}) is False
    assert store.has_unsaved_changes is False


# ---------------------------------------------------------------------------
# Fields
# ---------------------------------------------------------------------------


def test_add_field_selects_it():
    store = _store_on_core()
    assert store.add_field("core.json", _field("cclom:new"))
    assert store.get_schema("core.json").field_ids()[-1] == "cclom:new"
    assert store.active_field_id == "cclom:new"
    assert store.has_unsaved_changes


def test_add_field_duplicate_rejected_by_default():
    store = _store_on_core()
    assert store.add_field("core.json", _field("cclom:title")) is False
    assert "cclom:title" in store.error
    assert store.get_schema("core.json").field_ids().count("cclom:title") == 1


def test_add_field_duplicate_suffix_policy():
    store = _store_on_core(field_id_policy=FieldIdPolicy.suffix)
    assert store.add_field("core.json", _field("cclom:title"))
    assert store.add_field("core.json", _field("cclom:title"))
    ids = store.get_schema("core.json").field_ids()
    assert "cclom:title_2" in ids
    assert "cclom:title_3" in ids
    assert store.active_field_id == "cclom:title_3"


def test_add_field_duplicate_allow_policy():
    store = _store_on_core(field_id_policy="allow")
    assert store.add_field("core.json", _field("cclom:title"))
    assert store.get_schema("core.json").field_ids().count("cclom:title") == 2


def test_add_field_uncached_schema_is_noop():
    store = loaded_store()
    assert store.add_field("core.json", _field("x")) is False
    assert store.error is None


def test_update_field_shallow_merge():
    store = _store_on_core()
    before = store.get_schema("core.json").find_field("cclom:title")
    assert store.update_field("core.json", "cclom:title", {"label": {"de": "Name", "en": "Name"}})
    after = store.get_schema("core.json").find_field("cclom:title")
    assert after.label == {"de": "Name", "en": "Name"}
    assert after.system == before.system
    assert after.extra == {"x-note": "kept as is"}


def test_update_field_rename_collision_rejected():
    store = _store_on_core()
    assert store.update_field("core.json", "cclom:title", {"id": "ccm:oeh_flex_lrt"}) is False
    assert store.get_schema("core.json").find_field("cclom:title") is not None


def test_update_field_unknown_attribute():
    store = _store_on_core()
    assert store.update_field("core.json", "cclom:title", {"colour": "red"}) is False
    assert "colour" in store.error


def test_delete_field_clears_cursor():
    store = _store_on_core()
    store.set_active_field("cclom:title")
    assert store.delete_field("core.json", "cclom:title")
    assert store.get_schema("core.json").find_field("cclom:title") is None
    assert store.active_field_id is None


def test_move_field():
    store = _store_on_core()
    assert store.move_field("core.json", "ccm:oeh_flex_lrt", 0)
    assert store.get_schema("core.json").field_ids() == [
        "ccm:oeh_flex_lrt",
        "cclom:title",
        "cclom:general_keyword",
    ]
    assert store.move_field("core.json", "missing", 0) is False


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


def test_add_and_update_group():
    store = _store_on_core()
    assert store.add_group("core.json", SchemaGroup(id="rights", label={"de": "Rechte", "en": "Rights"}))
    assert store.update_group("core.json", "rights", {"order": 3})
    group = store.get_schema("core.json").find_group("rights")
    assert group.order == 3
    assert group.label == {"de": "Rechte", "en": "Rights"}


def test_delete_group_clears_field_references():
    store = _store_on_core()
    before = {f.id: f for f in store.get_schema("core.json").fields}

    assert store.delete_group("core.json", "general")

    schema = store.get_schema("core.json")
    assert schema.find_group("general") is None
    assert all(f.group != "general" for f in schema.fields)
    for f in schema.fields:
        assert replace(f, group=before[f.id].group) == before[f.id]
    assert schema.find_field("ccm:oeh_flex_lrt").group == "content"


# ---------------------------------------------------------------------------
# Content types
# ---------------------------------------------------------------------------


def test_get_content_types_projects_linked_concepts():
    store = _store_on_core()
    assert store.get_content_types() == [
        ContentType(label={"de": "Ereignis", "en": "Event"}, icon="event", schema_file="event.json")
    ]


def test_add_and_remove_content_type():
    store = _store_on_core()
    assert store.add_content_type(
        ContentType(label={"de": "Kurs", "en": "Course"}, schema_file="course.json")
    )
    types = store.get_content_types()
    assert [t.schema_file for t in types] == ["event.json", "course.json"]
    assert types[1].icon == "article"

    assert store.remove_content_type("event.json")
    assert [t.schema_file for t in store.get_content_types()] == ["course.json"]
    # The concept without schema_file is untouched.
    concepts = store.get_schema("core.json").find_field("ccm:oeh_flex_lrt").system.vocabulary.concepts
    assert any(c.schema_file is None for c in concepts)


def test_content_types_without_core_schema():
    store = loaded_store()
    store.set_active_context("mint")
    assert store.get_content_types() == []
    assert store.add_content_type(ContentType(label={"de": "a", "en": "a"}, schema_file="a.json")) is False


# ---------------------------------------------------------------------------
# Vocabularies
# ---------------------------------------------------------------------------


def test_update_vocabulary_and_remove():
    store = _store_on_core()
    vocabulary = Vocabulary(concepts=[VocabularyConcept(label={"de": "a", "en": "a"})])
    assert store.update_vocabulary("core.json", "cclom:general_keyword", vocabulary)
    target = store.get_schema("core.json").find_field("cclom:general_keyword")
    assert target.system.vocabulary == vocabulary
    assert target.system.path == "cclom:general_keyword"

    assert store.update_vocabulary("core.json", "cclom:general_keyword", None)
    assert store.get_schema("core.json").find_field("cclom:general_keyword").system.vocabulary is None


def test_update_vocabulary_unknown_field():
    store = _store_on_core()
    assert store.update_vocabulary("core.json", "missing", Vocabulary()) is False


def test_import_vocabulary_replaces_concepts():
    store = _store_on_core()
    raw = [{"prefLabel": {"de": "Mathe", "en": "Maths"}, "id": "http://example.org/math"}]
    assert store.import_vocabulary("core.json", "cclom:general_keyword", raw, source_url="http://example.org/s") == 1
    vocabulary = store.get_schema("core.json").find_field("cclom:general_keyword").system.vocabulary
    assert vocabulary.type == "skos"
    assert vocabulary.scheme == "http://example.org/s"
    assert vocabulary.concepts[0].uri == "http://example.org/math"


def test_import_vocabulary_appends():
    store = _store_on_core()
    raw = [{"label": "Neu", "uri": "http://example.org/new"}]
    assert store.import_vocabulary("core.json", "ccm:oeh_flex_lrt", raw, replace_existing=False) == 1
    concepts = store.get_schema("core.json").find_field("ccm:oeh_flex_lrt").system.vocabulary.concepts
    assert len(concepts) == 3
    assert concepts[-1].label == {"de": "Neu", "en": "Neu"}


def test_import_vocabulary_without_concepts_leaves_field_untouched():
    store = _store_on_core()
    before = store.get_schema("core.json")
    assert store.import_vocabulary("core.json", "ccm:oeh_flex_lrt", {"unexpected": True}) == 0
    assert "No concepts" in store.error
    assert store.get_schema("core.json") is before


def test_import_vocabulary_invalid_json_text():
    store = _store_on_core()
    assert store.import_vocabulary("core.json", "ccm:oeh_flex_lrt", "{not json") == 0
    assert "Invalid JSON" in store.error


def test_import_vocabulary_with_plain_string_labels():
    store = _store_on_core()
    raw = [{"prefLabel": "Foo", "uri": "http://example.org/foo"}]
    assert store.import_vocabulary("core.json", "cclom:general_keyword", raw) == 1
    vocabulary = store.get_schema("core.json").find_field("cclom:general_keyword").system.vocabulary
    assert vocabulary.concepts[0].label == {"de": "Foo", "en": "Foo"}


class _BrokenAdapter:
    def parse_concepts(self, raw):
        raise TypeError("unexpected shape")

    def scheme_uri(self, raw):
        return None


def test_import_vocabulary_adapter_failure_sets_error():
    store = _store_on_core()
    before = store.get_schema("core.json")
    assert store.import_vocabulary("core.json", "ccm:oeh_flex_lrt", [], adapter=_BrokenAdapter()) == 0
    assert store.error == "unexpected shape"
    assert store.get_schema("core.json") is before


# ---------------------------------------------------------------------------
# Copy-on-write
# ---------------------------------------------------------------------------


def test_mutations_leave_earlier_snapshots_unchanged():
    store = _store_on_core()
    schemas_before = store.schemas
    core_before = store.get_schema("core.json")
    fields_before = list(core_before.fields)
    manifests_before = store.manifests

    store.add_field("core.json", _field("cclom:new"))
    store.update_field("core.json", "cclom:title", {"label": "x"})
    store.delete_group("core.json", "general")
    store.create_schema("course.json", "course")

    assert store.schemas is not schemas_before
    assert schemas_before["default@1.8.0/core.json"] is core_before
    assert core_before.fields == fields_before
    assert core_before.find_field("cclom:title").group == "general"
    assert "course.json" not in manifests_before["default"].versions["1.8.0"].schemas


def test_flags():
    store = loaded_store()
    store.mark_unsaved()
    assert store.has_unsaved_changes
    store.mark_saved()
    assert not store.has_unsaved_changes
    store.set_error("boom")
    assert store.error == "boom"
    store.set_error(None)
    assert store.error is None
