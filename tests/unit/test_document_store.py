"""Tests for the JSON document store."""

import json
from pathlib import Path

import pytest

from casebook.core.store.document_store import (
    SECTION_CASES,
    SECTION_LINKS,
    DocumentStore,
    StoreHealth,
    default_document,
)
from casebook.errors import NotInitializedError


def test_load_creates_default_document(tmp_path: Path) -> None:
    """A missing file is created with every default section."""
    path = tmp_path / "nested" / "library.json"
    store = DocumentStore(path)

    assert store.load() is StoreHealth.CREATED
    assert path.exists()
    data = json.loads(path.read_text())
    assert set(data) == set(default_document())
    assert data["preferences"]["theme"] == "light"
    assert store.get_section(SECTION_CASES) == []


def test_load_existing_file_is_clean(tmp_path: Path) -> None:
    path = tmp_path / "library.json"
    doc = default_document()
    doc[SECTION_CASES] = [{"id": 1, "title": "T", "content": "C"}]
    path.write_text(json.dumps(doc))

    store = DocumentStore(path)
    assert store.load() is StoreHealth.CLEAN
    assert store.get_section(SECTION_CASES)[0]["title"] == "T"


def test_load_fills_missing_sections(tmp_path: Path) -> None:
    """Sections absent from an older file are added and written back."""
    path = tmp_path / "library.json"
    path.write_text(json.dumps({"cases": [], "custom": {"keep": True}}))

    store = DocumentStore(path)
    assert store.load() is StoreHealth.CLEAN
    data = json.loads(path.read_text())
    assert data["case_collections"] == []
    assert data["custom"] == {"keep": True}


@pytest.mark.parametrize("contents", ["{not json", "[1, 2, 3]", '"text"'])
def test_load_recovers_from_corrupt_file(tmp_path: Path, contents: str) -> None:
    """Unparsable or non-object contents are replaced with defaults."""
    path = tmp_path / "library.json"
    path.write_text(contents)

    store = DocumentStore(path)
    assert store.load() is StoreHealth.RECOVERED_WITH_DEFAULTS
    assert json.loads(path.read_text()) == default_document()


@pytest.mark.parametrize(
    ("section", "value"),
    [
        ("cases", None),
        ("cases", {"id": 1}),
        ("collections", None),
        ("case_collections", "links"),
        ("id_sequences", [1, 2]),
        ("preferences", []),
    ],
)
def test_load_resets_mistyped_section(tmp_path: Path, section: str, value: object) -> None:
    """A known section of the wrong type is reset; other sections survive."""
    path = tmp_path / "library.json"
    doc = default_document()
    doc["ai_usage"] = [{"tokens": 5}]
    doc[section] = value
    path.write_text(json.dumps(doc))

    store = DocumentStore(path)
    assert store.load() is StoreHealth.RECOVERED_WITH_DEFAULTS
    assert store.get_section(section) == default_document()[section]
    assert store.get_section("ai_usage") == [{"tokens": 5}]
    assert json.loads(path.read_text())[section] == default_document()[section]


def test_section_access_before_load_raises(tmp_path: Path) -> None:
    store = DocumentStore(tmp_path / "library.json")
    assert not store.is_loaded
    with pytest.raises(NotInitializedError):
        store.get_section(SECTION_CASES)
    with pytest.raises(NotInitializedError):
        store.put_section(SECTION_CASES, [])


def test_get_section_returns_copy(store: DocumentStore) -> None:
    """Mutating a returned section does not change the stored one."""
    store.put_section(SECTION_LINKS, [{"case_id": 1, "collection_id": 2}])
    links = store.get_section(SECTION_LINKS)
    links.append({"case_id": 9, "collection_id": 9})
    links[0]["case_id"] = 42

    assert store.get_section(SECTION_LINKS) == [{"case_id": 1, "collection_id": 2}]


def test_put_section_persists_whole_document(tmp_path: Path, store: DocumentStore) -> None:
    store.put_section(SECTION_CASES, [{"id": 1}])

    reloaded = DocumentStore(store.path)
    assert reloaded.load() is StoreHealth.CLEAN
    assert reloaded.get_section(SECTION_CASES) == [{"id": 1}]
    assert not (tmp_path / "library.json.tmp").exists()


def test_get_section_initializes_unknown_section(store: DocumentStore) -> None:
    assert store.get_section("practice_sessions") == []
    assert store.get_section("something_new") == []
