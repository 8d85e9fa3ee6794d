"""CLI for the casebook library (cases, collections, bundles, MCP server)."""

import json
from dataclasses import replace
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from casebook.config import resolve_database_path
from casebook.core.bundle.importer import fetch_bundle, load_bundle_file
from casebook.core.tree.hierarchy import render_forest_as_markdown
from casebook.errors import CasebookError
from casebook.library import Library
from casebook.logging_config import configure_logging
from casebook.models.records import (
    CaseFilters,
    CaseRecord,
    CollectionRecord,
    Complexity,
    ScenarioType,
    count_words,
)

app = typer.Typer(help="Casebook: a local library of case studies and collections.")
cases_app = typer.Typer(help="List, search and edit case studies.")
collections_app = typer.Typer(help="Organize case studies into nested collections.")
app.add_typer(cases_app, name="cases")
app.add_typer(collections_app, name="collections")

DataDirOption = Annotated[
    Path | None,
    typer.Option("--data-dir", "-d", help="Library directory (default: first existing data dir)"),
]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    configure_logging(verbose=verbose)


def _open_library(data_dir: Path | None) -> Library:
    path = resolve_database_path(data_dir.expanduser() if data_dir else None)
    return Library.open(path)


def _fail(error: Exception) -> typer.Exit:
    logger.error("{}", error)
    return typer.Exit(1)


def _case_line(case: CaseRecord) -> str:
    star = "*" if case.is_favorite else " "
    details = f"{case.domain}, {case.complexity}, {case.word_count} words"
    return f"{star} [{case.id}] {case.title}  ({details})"


def _echo_cases(cases: list[CaseRecord], *, output_json: bool) -> None:
    if output_json:
        typer.echo(json.dumps([c.to_dict() for c in cases], indent=2, ensure_ascii=False))
        return
    typer.echo(f"{len(cases)} cases:\n")
    for case in cases:
        typer.echo(f"  {_case_line(case)}")


# --- cases ---


@cases_app.command("list")
def list_cases(
    domain: Annotated[str | None, typer.Option("--domain", help="Exact domain")] = None,
    complexity: Annotated[
        Complexity | None, typer.Option("--complexity", help="Exact complexity")
    ] = None,
    favorites: bool = typer.Option(False, "--favorites", "-f", help="Only favorites"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
    data_dir: DataDirOption = None,
) -> None:
    """List case studies, most recently modified first."""
    library = _open_library(data_dir)
    filters = CaseFilters(domain=domain, complexity=complexity, favorite=favorites)
    _echo_cases(library.list_cases(filters), output_json=output_json)


@cases_app.command("search")
def search_cases(
    query: str = typer.Argument(..., help="Text to look for in title, content and questions"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
    data_dir: DataDirOption = None,
) -> None:
    """Search case studies by substring."""
    library = _open_library(data_dir)
    _echo_cases(library.search_cases(query), output_json=output_json)


@cases_app.command("show")
def show_case(
    case_id: int = typer.Argument(..., help="Case id"),
    data_dir: DataDirOption = None,
) -> None:
    """Print a case study with its collections."""
    library = _open_library(data_dir)
    case = library.get_case(case_id)
    if case is None:
        typer.echo(f"Case {case_id} not found.")
        raise typer.Exit(1)

    typer.echo(f"# {case.title}\n")
    typer.echo(f"Domain: {case.domain}  Complexity: {case.complexity}  Type: {case.scenario_type}")
    if case.tags:
        typer.echo(f"Tags: {', '.join(case.tags)}")
    member_of = library.collections_for_case(case_id)
    if member_of:
        typer.echo(f"Collections: {', '.join(c.name for c in member_of)}")
    typer.echo(f"\n{case.content}")
    if case.questions:
        typer.echo(f"\n## Questions\n\n{case.questions}")
    if case.answers:
        typer.echo(f"\n## Answers\n\n{case.answers}")


@cases_app.command("add")
def add_case(
    title: str = typer.Option(..., "--title", "-t", help="Case title"),
    content_file: Path = typer.Option(
        ..., "--content-file", "-c", help="Text file with the case content"
    ),
    domain: str = typer.Option("General", "--domain", help="Subject domain"),
    complexity: Complexity = typer.Option(Complexity.INTERMEDIATE, "--complexity"),
    scenario_type: ScenarioType = typer.Option(ScenarioType.PROBLEM_SOLVING, "--scenario-type"),
    tags: Annotated[list[str] | None, typer.Option("--tag", help="Tag (repeatable)")] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Add a case study from a text file."""
    library = _open_library(data_dir)
    content = content_file.read_text(encoding="utf-8")
    case_id = library.save_case(
        CaseRecord(
            title=title,
            content=content,
            domain=domain,
            complexity=complexity,
            scenario_type=scenario_type,
            tags=tuple(tags or ()),
            word_count=count_words(content),
        )
    )
    typer.echo(f"Saved case {case_id}.")


@cases_app.command("favorite")
def favorite_case(
    case_id: int = typer.Argument(..., help="Case id"),
    off: bool = typer.Option(False, "--off", help="Remove from favorites"),
    data_dir: DataDirOption = None,
) -> None:
    """Mark or unmark a case study as favorite."""
    library = _open_library(data_dir)
    case = library.get_case(case_id)
    if case is None:
        typer.echo(f"Case {case_id} not found.")
        raise typer.Exit(1)
    library.save_case(replace(case, is_favorite=not off))


@cases_app.command("delete")
def delete_case(
    case_id: int = typer.Argument(..., help="Case id"),
    data_dir: DataDirOption = None,
) -> None:
    """Delete a case study and its collection memberships."""
    library = _open_library(data_dir)
    library.delete_case(case_id)
    typer.echo(f"Deleted case {case_id}.")


# --- collections ---


@collections_app.command("list")
def list_collections(
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
    data_dir: DataDirOption = None,
) -> None:
    """List collections with their case and sub-collection counts."""
    library = _open_library(data_dir)
    collections = library.list_collections()
    if output_json:
        data = [
            {
                **c.to_dict(),
                "case_count": c.case_count,
                "subcollection_count": c.subcollection_count,
            }
            for c in collections
        ]
        typer.echo(json.dumps(data, indent=2, ensure_ascii=False))
        return
    typer.echo(f"{len(collections)} collections:\n")
    for c in collections:
        parent = f"  parent={c.parent_collection_id}" if c.parent_collection_id else ""
        typer.echo(
            f"  [{c.id}] {c.name} - {c.case_count} cases, "
            f"{c.subcollection_count} sub-collections{parent}"
        )


@collections_app.command("tree")
def collection_tree(data_dir: DataDirOption = None) -> None:
    """Show collections as a nested tree."""
    library = _open_library(data_dir)
    md = render_forest_as_markdown(library.collection_tree())
    typer.echo(md or "No collections.")


@collections_app.command("show")
def show_collection(
    collection_id: int = typer.Argument(..., help="Collection id"),
    data_dir: DataDirOption = None,
) -> None:
    """List the case studies in a collection."""
    library = _open_library(data_dir)
    collection = library.collections.get(collection_id)
    if collection is None:
        typer.echo(f"Collection {collection_id} not found.")
        raise typer.Exit(1)
    typer.echo(f"{collection.name}: {collection.case_count} cases\n")
    for case in library.cases_in_collection(collection_id):
        typer.echo(f"  {_case_line(case)}")


@collections_app.command("create")
def create_collection(
    name: str = typer.Argument(..., help="Collection name"),
    parent: Annotated[int | None, typer.Option("--parent", "-p", help="Parent collection id")] = None,
    color: Annotated[str | None, typer.Option("--color", help="Display color")] = None,
    description: Annotated[str | None, typer.Option("--description", help="Description")] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Create a collection, optionally nested under another one."""
    library = _open_library(data_dir)
    try:
        collection_id = library.save_collection(
            CollectionRecord(
                name=name, description=description, color=color, parent_collection_id=parent
            )
        )
    except CasebookError as e:
        raise _fail(e) from e
    typer.echo(f"Created collection {collection_id}.")


@collections_app.command("move")
def move_collection(
    collection_id: int = typer.Argument(..., help="Collection id"),
    parent: Annotated[
        int | None, typer.Option("--parent", "-p", help="New parent id (omit for root)")
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Move a collection under another parent, or to the root."""
    library = _open_library(data_dir)
    collection = library.collections.get(collection_id)
    if collection is None:
        typer.echo(f"Collection {collection_id} not found.")
        raise typer.Exit(1)
    try:
        library.save_collection(replace(collection, parent_collection_id=parent))
    except CasebookError as e:
        raise _fail(e) from e


@collections_app.command("delete")
def delete_collection(
    collection_id: int = typer.Argument(..., help="Collection id"),
    data_dir: DataDirOption = None,
) -> None:
    """Delete a collection. Its sub-collections move to the root."""
    library = _open_library(data_dir)
    library.delete_collection(collection_id)
    typer.echo(f"Deleted collection {collection_id}.")


@collections_app.command("add")
def add_to_collection(
    case_id: int = typer.Argument(..., help="Case id"),
    collection_id: int = typer.Argument(..., help="Collection id"),
    data_dir: DataDirOption = None,
) -> None:
    """Add a case study to a collection."""
    library = _open_library(data_dir)
    if library.get_case(case_id) is None or library.collections.get(collection_id) is None:
        typer.echo("Case or collection not found.")
        raise typer.Exit(1)
    added = library.add_case_to_collection(case_id, collection_id)
    typer.echo("Added." if added else "Already a member.")


@collections_app.command("remove")
def remove_from_collection(
    case_id: int = typer.Argument(..., help="Case id"),
    collection_id: int = typer.Argument(..., help="Collection id"),
    data_dir: DataDirOption = None,
) -> None:
    """Remove a case study from a collection."""
    library = _open_library(data_dir)
    removed = library.remove_case_from_collection(case_id, collection_id)
    typer.echo("Removed." if removed else "Not a member.")


# --- bundles ---


@app.command("export")
def export_cmd(
    output: Path = typer.Argument(..., help="Bundle file to write"),
    collection: Annotated[
        list[int] | None,
        typer.Option("--collection", "-c", help="Export only these collections and their cases"),
    ] = None,
    title: Annotated[str | None, typer.Option("--title", help="Bundle title")] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Export collections and case studies as a v2.0 bundle."""
    library = _open_library(data_dir)
    if collection:
        selected = [c for c in library.list_collections() if c.id in set(collection)]
        case_ids = {
            x.id for c in selected if c.id is not None for x in library.cases_in_collection(c.id)
        }
        cases = [x for x in library.list_cases() if x.id in case_ids]
        bundle = library.write_bundle(output, collections=selected, cases=cases, title=title)
    else:
        bundle = library.write_bundle(output, title=title)
    info = bundle["bundle_info"]
    typer.echo(
        f"Exported {info['total_collections']} collections and {info['total_cases']} cases "
        f"to {output}"
    )


@app.command(name="import")
def import_cmd(
    source: str = typer.Argument(..., help="Bundle or case file path, or http(s) URL"),
    data_dir: DataDirOption = None,
) -> None:
    """Import a bundle, a legacy collection, a single case or a plain-text case file."""
    library = _open_library(data_dir)
    try:
        if source.startswith(("http://", "https://")):
            raw = fetch_bundle(source)
        else:
            path = Path(source).expanduser()
            if not path.exists():
                logger.error("Import file not found: {}", path)
                raise typer.Exit(1)
            raw = load_bundle_file(path)
        result = library.import_bundle(raw)
    except CasebookError as e:
        raise _fail(e) from e

    typer.echo(
        f"Imported {result.stats.cases_imported} cases, "
        f"{result.stats.collections_imported} collections "
        f"from {result.collection_info.get('title')!r}"
    )


@app.command()
def serve() -> None:
    """Start the MCP server (stdio transport)."""
    from casebook.mcp.server import run_mcp_server

    run_mcp_server()
