"""Adjacency view over a flat node collection.

Stateless: callers rebuild it from whatever snapshot they hold. Node counts
per conversation are small enough that an O(n) rebuild per read is fine.
"""

from collections.abc import Iterable, Mapping
from typing import Any, NamedTuple


class TreeIndex(NamedTuple):
    children_of: dict[str, list[str]]
    roots: list[str]


def build_children_index(nodes: Iterable[Mapping[str, Any]]) -> TreeIndex:
    """Group nodes by parent in a single pass.

    Every node id gets an entry in children_of, in input order. A node is a
    root when its parent_id is None or names a node outside the collection,
    so nodes whose parent was filtered out of the snapshot stay reachable.
    """
    nodes = list(nodes)
    children_of: dict[str, list[str]] = {n["node_id"]: [] for n in nodes}
    roots: list[str] = []
    for n in nodes:
        parent_id = n["parent_id"]
        if parent_id is not None and parent_id in children_of:
            children_of[parent_id].append(n["node_id"])
        else:
            roots.append(n["node_id"])
    return TreeIndex(children_of=children_of, roots=roots)


def sibling_info(index: TreeIndex) -> dict[str, tuple[int, int]]:
    """Compute (sibling_index, sibling_count) for each node.

    Roots are siblings of each other.
    """
    result: dict[str, tuple[int, int]] = {}
    for group in [index.roots, *index.children_of.values()]:
        count = len(group)
        for idx, node_id in enumerate(group):
            result[node_id] = (idx, count)
    return result


def edges(index: TreeIndex) -> list[tuple[str, str]]:
    """Parent -> child pairs in index order."""
    return [
        (parent_id, child_id)
        for parent_id, children in index.children_of.items()
        for child_id in children
    ]
