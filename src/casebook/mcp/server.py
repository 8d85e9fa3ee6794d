"""MCP server exposing casebook search, browsing and import tools."""

import asyncio
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger
from mcp.server.fastmcp import Context, FastMCP

from casebook.config import DATA_DIR_ENV, resolve_database_path
from casebook.core.bundle.importer import fetch_bundle
from casebook.core.tree.hierarchy import render_forest_as_markdown
from casebook.errors import CasebookError
from casebook.library import Library
from casebook.models.records import CaseRecord


def _case_summary(case: CaseRecord, *, detailed: bool = False) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "id": case.id,
        "title": case.title,
        "domain": case.domain,
        "complexity": str(case.complexity),
        "scenario_type": str(case.scenario_type),
        "tags": list(case.tags),
        "is_favorite": case.is_favorite,
        "modified": case.modified_date,
    }
    if detailed:
        entry["content"] = case.content
        entry["questions"] = case.questions
        if case.answers:
            entry["answers"] = case.answers
    else:
        entry["preview"] = case.content[:200]
    return entry


# --- Core functions (testable without MCP context) ---


def casebook_search(
    library: Library,
    *,
    query: str = "",
    limit: int = 20,
    offset: int = 0,
    response_format: str = "concise",
) -> dict[str, Any]:
    """Search case studies by substring in title, content and questions.

    Args:
        query: Search text (case-insensitive).
        limit: Max results (1-50, default 20).
        offset: Pagination offset.
        response_format: "concise" or "detailed".
    """
    if not query.strip():
        return {"error": "No search query provided.", "results": [], "count": 0, "total": 0}

    limit = max(1, min(limit, 50))
    matches = library.search_cases(query)
    page = matches[offset : offset + limit]
    output: dict[str, Any] = {
        "results": [_case_summary(c, detailed=response_format == "detailed") for c in page],
        "count": len(page),
        "total": len(matches),
        "has_more": offset + len(page) < len(matches),
    }
    if output["has_more"]:
        output["next_offset"] = offset + limit
    return output


def casebook_read_case(library: Library, *, case_id: int) -> dict[str, Any]:
    """Return a case study with its full text and collection names."""
    case = library.get_case(case_id)
    if case is None:
        return {"error": f"Case {case_id} not found."}
    entry = _case_summary(case, detailed=True)
    entry["collections"] = [c.name for c in library.collections_for_case(case_id)]
    return entry


def casebook_list_collections(library: Library) -> dict[str, Any]:
    """List all collections with counts and a rendered tree."""
    collections = library.list_collections()
    return {
        "collections": [
            {
                "id": c.id,
                "name": c.name,
                "description": c.description,
                "parent_collection_id": c.parent_collection_id,
                "case_count": c.case_count,
                "subcollection_count": c.subcollection_count,
            }
            for c in collections
        ],
        "count": len(collections),
        "tree": render_forest_as_markdown(library.collection_tree()),
    }


def casebook_cases_in_collection(library: Library, *, collection_id: int) -> dict[str, Any]:
    """List the case studies that belong to a collection."""
    collection = library.collections.get(collection_id)
    if collection is None:
        return {"error": f"Collection {collection_id} not found.", "results": [], "count": 0}
    cases = library.cases_in_collection(collection_id)
    return {
        "collection": collection.name,
        "results": [_case_summary(c) for c in cases],
        "count": len(cases),
    }


def casebook_import_url(library: Library, *, url: str) -> dict[str, Any]:
    """Download a bundle, legacy collection or single case and add it to the library."""
    try:
        result = library.import_bundle(fetch_bundle(url))
    except CasebookError as e:
        return {"success": False, "error": str(e)}
    return {
        "success": True,
        "cases_imported": result.stats.cases_imported,
        "collections_imported": result.stats.collections_imported,
        "case_ids": list(result.stats.case_ids),
        "collection_info": result.collection_info,
    }


# --- MCP server setup ---


@dataclass
class ServerContext:
    """Shared resources for the MCP server lifetime."""

    library: Library
    write_lock: asyncio.Lock = field(default_factory=asyncio.Lock)


def _resolve_library_path() -> Path:
    data_dir = os.environ.get(DATA_DIR_ENV)
    return resolve_database_path(Path(data_dir) if data_dir else None)


@asynccontextmanager
async def server_lifespan(_server: FastMCP) -> AsyncIterator[ServerContext]:
    """Load the library on startup."""
    library = Library.open(_resolve_library_path())
    logger.info("Serving library {} ({})", library.store.path, library.health)
    yield ServerContext(library=library)


mcp_server = FastMCP(
    "casebook",
    instructions="""\
Casebook is a local library of case studies organised into nested collections.

1. Use casebook_list_collections_tool to see how the library is organised.
2. Use casebook_search_tool to find case studies by text, then
   casebook_read_case_tool for the full content of a result.
3. casebook_import_url_tool adds a shared bundle to the library.
""",
    lifespan=server_lifespan,
)


def _ctx(mcp_ctx: Context) -> ServerContext:
    return mcp_ctx.request_context.lifespan_context  # type: ignore[return-value]


# --- MCP Tool Wrappers ---


@mcp_server.tool()
async def casebook_search_tool(
    ctx: Context,
    query: str,
    limit: int = 20,
    offset: int = 0,
    response_format: str = "concise",
) -> dict[str, Any]:
    """Search case studies by text.

    Args:
        query: Text to look for in titles, content and questions.
        limit: Max results (1-50).
        offset: Pagination offset.
        response_format: "concise" or "detailed".
    """
    return casebook_search(
        _ctx(ctx).library,
        query=query,
        limit=limit,
        offset=offset,
        response_format=response_format,
    )


@mcp_server.tool()
async def casebook_read_case_tool(ctx: Context, case_id: int) -> dict[str, Any]:
    """Read a case study in full.

    Args:
        case_id: Case id from search or collection results.
    """
    return casebook_read_case(_ctx(ctx).library, case_id=case_id)


@mcp_server.tool()
async def casebook_list_collections_tool(ctx: Context) -> dict[str, Any]:
    """List collections with case counts and their nesting."""
    return casebook_list_collections(_ctx(ctx).library)


@mcp_server.tool()
async def casebook_cases_in_collection_tool(ctx: Context, collection_id: int) -> dict[str, Any]:
    """List the case studies in a collection.

    Args:
        collection_id: Collection id from casebook_list_collections_tool.
    """
    return casebook_cases_in_collection(_ctx(ctx).library, collection_id=collection_id)


@mcp_server.tool()
async def casebook_import_url_tool(ctx: Context, url: str) -> dict[str, Any]:
    """Import a shared bundle from an http(s) URL.

    Args:
        url: Location of a bundle, legacy collection or single case JSON file.
    """
    server_ctx = _ctx(ctx)
    async with server_ctx.write_lock:
        return casebook_import_url(server_ctx.library, url=url)


def run_mcp_server() -> None:
    """Run the MCP server with stdio transport."""
    from casebook.logging_config import configure_logging

    configure_logging(verbose=False)
    mcp_server.run(transport="stdio")
