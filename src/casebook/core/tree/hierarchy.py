"""Collection forest building and markdown rendering."""

import io
from collections.abc import Sequence
from dataclasses import dataclass, field

from casebook.models.records import CollectionRecord


@dataclass
class CollectionNode:
    """A collection with its nested sub-collections."""

    collection: CollectionRecord
    children: list["CollectionNode"] = field(default_factory=list)


def _mark_reachable(node: CollectionNode, reachable: set[int]) -> None:
    stack = [node]
    while stack:
        current = stack.pop()
        node_id = current.collection.id
        if node_id is None or node_id in reachable:
            continue
        reachable.add(node_id)
        stack.extend(current.children)


def build_forest(collections: Sequence[CollectionRecord]) -> list[CollectionNode]:
    """Group collections under their parents.

    Roots are collections without a parent or whose parent no longer exists.
    A parent cycle is broken at one of its members, which becomes an extra
    root; everything hanging off the cycle stays nested beneath it.
    """
    nodes = {c.id: CollectionNode(c) for c in collections if c.id is not None}
    roots: list[CollectionNode] = []
    parents: dict[int, int] = {}
    for node_id, node in nodes.items():
        parent_id = node.collection.parent_collection_id
        if parent_id is None or parent_id not in nodes or parent_id == node_id:
            roots.append(node)
        else:
            parents[node_id] = parent_id
            nodes[parent_id].children.append(node)

    reachable: set[int] = set()
    for root in roots:
        _mark_reachable(root, reachable)
    for node_id in sorted(nodes):
        if node_id in reachable:
            continue
        # Every unreachable node hangs below a cycle; climb until one repeats.
        seen: set[int] = set()
        current = node_id
        while current not in seen:
            seen.add(current)
            current = parents[current]
        member = nodes[current]
        nodes[parents.pop(current)].children.remove(member)
        roots.append(member)
        _mark_reachable(member, reachable)

    def sort_key(n: CollectionNode) -> tuple[str, int]:
        return (n.collection.name.lower(), n.collection.id or 0)

    for node in nodes.values():
        node.children.sort(key=sort_key)
    roots.sort(key=sort_key)
    return roots


def render_forest_as_markdown(forest: Sequence[CollectionNode], *, show_ids: bool = True) -> str:
    """Render a collection forest as an indented bullet list with case counts."""
    out = io.StringIO()

    def write(node: CollectionNode, depth: int) -> None:
        c = node.collection
        noun = "case" if c.case_count == 1 else "cases"
        line = f"{'    ' * depth}- {c.name} ({c.case_count} {noun})"
        if show_ids:
            line += f"  [id={c.id}]"
        out.write(line + "\n")
        if c.description:
            out.write(f"{'    ' * depth}  > {c.description}\n")
        for child in node.children:
            write(child, depth + 1)

    for root in forest:
        write(root, 0)
    return out.getvalue()
