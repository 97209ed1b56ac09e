"""Flat WBS rows <-> nested tree.

Both directions work over an id-indexed map and an explicit stack, so very
deep trees never hit the recursion limit.
"""
from typing import Any, Iterable, Iterator

from pcm.schemas.wbs import WBSItemOut, WBSNodeOut


def _sort_key(node: WBSNodeOut) -> tuple[int, int]:
    return node.sort_order, node.id


def build_hierarchy(items: Iterable[Any]) -> list[WBSNodeOut]:
    """Nest ``items`` under their parents and return the roots.

    ``items`` may be ORM rows, ``WBSItemOut`` instances or plain dicts. Fresh
    node objects are built on every call, so the input is never mutated and
    the function can be applied repeatedly to the same list. Children are
    ordered by ``sort_order`` (ties broken by id). Rows whose parent is not
    part of ``items`` are dropped.
    """
    nodes: dict[int, WBSNodeOut] = {}
    for it in items:
        data = WBSItemOut.model_validate(it).model_dump(exclude={"children"})
        nodes[data["id"]] = WBSNodeOut(**data)

    roots: list[WBSNodeOut] = []
    for node in nodes.values():
        if node.parent_id is None:
            roots.append(node)
            continue
        parent = nodes.get(node.parent_id)
        if parent is not None:
            parent.children.append(node)

    for node in nodes.values():
        node.children.sort(key=_sort_key)
    roots.sort(key=_sort_key)
    return roots


def iter_tree(roots: list[WBSNodeOut]) -> Iterator[WBSNodeOut]:
    """Pre-order walk: each node is followed by its descendants."""
    stack = list(reversed(roots))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def count_nodes(roots: list[WBSNodeOut]) -> int:
    return sum(1 for _ in iter_tree(roots))
