"""Tests for MCP tool core functions."""

from unittest.mock import patch

from casebook.errors import BundleFetchError
from casebook.library import Library
from casebook.mcp.server import (
    casebook_cases_in_collection,
    casebook_import_url,
    casebook_list_collections,
    casebook_read_case,
    casebook_search,
)
from tests.unit.conftest import SINGLE_CASE


def test_casebook_search_returns_results(populated_library: Library) -> None:
    result = casebook_search(populated_library, query="python")
    assert result["count"] == 1
    assert result["total"] == 1
    first = result["results"][0]
    assert first["title"] == "Market Entry"
    assert "preview" in first
    assert "content" not in first


def test_casebook_search_paginates(populated_library: Library) -> None:
    result = casebook_search(populated_library, query="content", limit=1)
    assert result["count"] == 1
    assert result["total"] == 2
    assert result["has_more"] is True
    assert result["next_offset"] == 1


def test_casebook_search_detailed_and_empty_query(populated_library: Library) -> None:
    detailed = casebook_search(populated_library, query="python", response_format="detailed")
    assert "content" in detailed["results"][0]

    empty = casebook_search(populated_library, query="  ")
    assert "error" in empty
    assert empty["count"] == 0


def test_casebook_read_case(populated_library: Library) -> None:
    result = casebook_read_case(populated_library, case_id=1)
    assert result["title"] == "Market Entry"
    assert set(result["collections"]) == {"Business", "Strategy"}

    assert "error" in casebook_read_case(populated_library, case_id=99)


def test_casebook_list_collections(populated_library: Library) -> None:
    result = casebook_list_collections(populated_library)
    assert result["count"] == 4
    business = next(c for c in result["collections"] if c["name"] == "Business")
    assert business["case_count"] == 1
    assert business["subcollection_count"] == 1
    assert result["tree"].startswith("- Business (1 case)")


def test_casebook_cases_in_collection(populated_library: Library) -> None:
    result = casebook_cases_in_collection(populated_library, collection_id=3)
    assert result["collection"] == "Pricing"
    assert [c["title"] for c in result["results"]] == ["Discount War"]

    missing = casebook_cases_in_collection(populated_library, collection_id=99)
    assert "error" in missing


def test_casebook_import_url(library: Library) -> None:
    with patch("casebook.mcp.server.fetch_bundle", return_value=SINGLE_CASE):
        result = casebook_import_url(library, url="https://example.com/case.json")
    assert result["success"] is True
    assert result["cases_imported"] == 1
    assert library.get_case(result["case_ids"][0]) is not None


def test_casebook_import_url_reports_errors(library: Library) -> None:
    error = BundleFetchError("Bundle URL not found (404)")
    with patch("casebook.mcp.server.fetch_bundle", side_effect=error):
        result = casebook_import_url(library, url="https://example.com/missing.json")
    assert result == {"success": False, "error": "Bundle URL not found (404)"}
