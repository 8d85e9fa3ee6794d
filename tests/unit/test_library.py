"""Tests for the Library facade."""

import json
from pathlib import Path

import pytest

from casebook.core.store.document_store import StoreHealth
from casebook.library import Library
from casebook.models.records import CollectionRecord
from tests.unit.conftest import LEGACY_COLLECTION, make_case


def test_open_reports_store_health(tmp_path: Path) -> None:
    path = tmp_path / "library.json"
    assert Library.open(path).health is StoreHealth.CREATED
    assert Library.open(path).health is StoreHealth.CLEAN

    path.write_text("{corrupt")
    assert Library.open(path).health is StoreHealth.RECOVERED_WITH_DEFAULTS


def test_open_uses_data_dir_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CASEBOOK_DATA_DIR", str(tmp_path / "data"))
    library = Library.open()
    assert library.store.path == tmp_path / "data" / "library.json"
    assert library.store.path.exists()


def test_delete_case_removes_memberships(populated_library: Library) -> None:
    populated_library.delete_case(1)

    assert populated_library.get_case(1) is None
    assert populated_library.associations.links_for_case(1) == []
    counts = {c.name: c.case_count for c in populated_library.list_collections()}
    assert counts["Business"] == 0
    assert counts["Pricing"] == 1


def test_two_saves_then_delete_first(library: Library) -> None:
    first = library.save_case(make_case("First"))
    second = library.save_case(make_case("Second"))
    library.delete_case(first)

    assert [c.id for c in library.list_cases()] == [second]


def test_export_bundle_fills_collection_ids(populated_library: Library) -> None:
    bundle = populated_library.export_bundle(title="All")

    assert bundle["bundle_info"]["total_collections"] == 4
    assert bundle["bundle_info"]["total_cases"] == 3
    by_title = {c["title"]: c for c in bundle["cases"]}
    assert sorted(by_title["Market Entry"]["collection_ids"]) == [1, 2]
    assert by_title["Whistleblower"]["collection_ids"] == []


def test_export_bundle_restricts_memberships_to_exported_collections(
    populated_library: Library,
) -> None:
    business = populated_library.collections.get(1)
    assert business is not None

    bundle = populated_library.export_bundle(
        [business], populated_library.cases_in_collection(1)
    )

    assert [c["title"] for c in bundle["cases"]] == ["Market Entry"]
    assert bundle["cases"][0]["collection_ids"] == [1]


def test_export_then_import_roundtrip(populated_library: Library, tmp_path: Path) -> None:
    """A bundle exported from one library reproduces its structure in another."""
    path = tmp_path / "out" / "bundle.json"
    populated_library.write_bundle(path)

    target = Library.open(tmp_path / "other.json")
    target.save_collection(CollectionRecord(name="Pre-existing"))
    result = target.import_bundle(json.loads(path.read_text()))

    assert result.stats.cases_imported == 3
    assert result.stats.collections_imported == 4
    assert result.stats.links_created == 3
    assert {c.title for c in result.cases} == {"Market Entry", "Discount War", "Whistleblower"}

    by_name = {c.name: c for c in target.list_collections()}
    assert by_name["Strategy"].parent_collection_id == by_name["Business"].id
    assert by_name["Pricing"].parent_collection_id == by_name["Strategy"].id
    assert by_name["Business"].case_count == 1
    assert by_name["Pre-existing"].id == 1
    entry = next(c for c in target.list_cases() if c.title == "Market Entry")
    names = {c.name for c in target.collections_for_case(entry.id or 0)}
    assert names == {"Business", "Strategy"}


def test_import_legacy_collection(library: Library) -> None:
    result = library.import_bundle(LEGACY_COLLECTION)

    assert result.collection_info["title"] == "Ethics Pack"
    assert [c.title for c in result.cases] == ["A"]
    assert result.collections == ()
    assert library.list_collections() == []


@pytest.mark.parametrize(
    "document",
    [
        {"cases": None, "collections": None},
        {"cases": {"title": "not a list"}, "collections": "nope"},
        {
            "cases": [1, "x", None, {"id": 2, "title": "Kept", "content": "c"}],
            "collections": [3, {"id": 5, "name": "Kept"}, ["bad"]],
        },
        {"cases": [{"id": 1, "title": "Bad tags", "content": "c", "tags": 5}], "collections": []},
    ],
)
def test_library_stays_usable_with_malformed_sections(
    tmp_path: Path, document: dict[str, object]
) -> None:
    """Malformed sections and entries never make the library unusable."""
    path = tmp_path / "library.json"
    path.write_text(json.dumps(document))

    library = Library.open(path)
    cases = library.list_cases()
    collections = library.list_collections()

    assert all(c.title == "Kept" for c in cases)
    assert all(c.name == "Kept" for c in collections)
    assert library.save_case(make_case("New")) >= 1
    assert library.save_collection(CollectionRecord(name="New")) >= 1
