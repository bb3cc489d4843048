"""Build reply trees from flat or partially nested comment lists."""

import logging
from dataclasses import replace
from enum import Enum
from typing import Callable, Iterable, Iterator, Optional, Sequence

from src.core.types import DELETED_SENTINEL, CommentDTO, CommentNode

logger = logging.getLogger("forumclient")


class OrphanPolicy(str, Enum):
    """What to do with a comment whose parent is not in the fetched set."""

    PROMOTE = "promote"   # show it as a top-level comment
    DROP = "drop"         # leave it out of the tree


def flatten_comments(records: Iterable[CommentDTO]) -> list[CommentDTO]:
    """Expand pre-nested `children` into one flat, depth-first list.

    A nested record without a parent_id inherits the id of the record that
    contained it. Only the first record seen for a given id is kept, but
    replies nested under a later copy are still expanded.
    """
    flat: list[CommentDTO] = []
    seen: set[str] = set()
    stack = [(record, None) for record in reversed(list(records))]

    while stack:
        record, container_id = stack.pop()
        if record.id in seen:
            logger.debug(f"Skipping duplicate comment {record.id}")
            stack.extend((child, record.id) for child in reversed(record.children))
            continue
        seen.add(record.id)

        if container_id is not None and record.parent_id is None:
            record = replace(record, parent_id=container_id)

        nested = record.children
        if nested:
            record = replace(record, children=())
        flat.append(record)

        stack.extend((child, record.id) for child in reversed(nested))

    return flat


def build_comment_tree(
    records: Iterable[CommentDTO],
    orphan_policy: OrphanPolicy = OrphanPolicy.PROMOTE,
) -> tuple[CommentNode, ...]:
    """Turn comment records into an ordered forest of CommentNode.

    Sibling order is input order at every level. Records whose parent is
    missing follow `orphan_policy`. Records that only hang off a parent
    cycle cannot be reached from any root and are left out.

    Args:
        records: Flat or partially nested comments, in fetch order
        orphan_policy: PROMOTE or DROP

    Returns:
        Top-level CommentNode tuple
    """
    flat = flatten_comments(records)
    known_ids = {comment.id for comment in flat}

    roots: list[CommentDTO] = []
    children_of: dict[str, list[CommentDTO]] = {}
    dropped = 0

    for comment in flat:
        parent_id = comment.parent_id
        if parent_id is None:
            roots.append(comment)
        elif parent_id in known_ids and parent_id != comment.id:
            children_of.setdefault(parent_id, []).append(comment)
        elif orphan_policy is OrphanPolicy.PROMOTE:
            roots.append(comment)
        else:
            dropped += 1

    # Pre-order walk from the roots; building in reverse pre-order
    # guarantees every child node exists before its parent.
    order: list[tuple[CommentDTO, int]] = []
    visited: set[str] = set()
    stack = [(comment, 0) for comment in reversed(roots)]
    while stack:
        comment, depth = stack.pop()
        if comment.id in visited:
            continue
        visited.add(comment.id)
        order.append((comment, depth))
        for child in reversed(children_of.get(comment.id, ())):
            stack.append((child, depth + 1))

    built: dict[str, CommentNode] = {}
    for comment, depth in reversed(order):
        kids = tuple(
            built[child.id]
            for child in children_of.get(comment.id, ())
            if child.id in built
        )
        built[comment.id] = CommentNode(comment=comment, children=kids, depth=depth)

    unreachable = len(flat) - len(built) - dropped
    if dropped or unreachable:
        logger.debug(
            f"Comment tree: {dropped} orphan(s) dropped, {unreachable} unreachable"
        )

    return tuple(built[comment.id] for comment in roots)


def iter_nodes(forest: Sequence[CommentNode]) -> Iterator[CommentNode]:
    """Depth-first, pre-order traversal of a forest."""
    stack = list(reversed(forest))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def count_nodes(forest: Sequence[CommentNode]) -> int:
    return sum(1 for _ in iter_nodes(forest))


def find_node(forest: Sequence[CommentNode], comment_id: str) -> Optional[CommentNode]:
    for node in iter_nodes(forest):
        if node.id == comment_id:
            return node
    return None


def append_reply(
    forest: Sequence[CommentNode], comment: CommentDTO
) -> tuple[CommentNode, ...]:
    """Return a new forest with `comment` added as the last reply to its parent.

    Meant for showing a freshly created comment until the next full refresh.
    A comment with no parent, or whose parent is not in the forest, is
    appended at the top level. The input forest is left untouched.
    """
    forest = tuple(forest)
    comment = replace(comment, children=())

    if find_node(forest, comment.id) is not None:
        return forest

    path = _find_path(forest, comment.parent_id) if comment.parent_id else None
    if path is None:
        return forest + (CommentNode(comment=comment, depth=0),)

    def add_child(parent: CommentNode) -> CommentNode:
        child = CommentNode(comment=comment, depth=parent.depth + 1)
        return replace(parent, children=parent.children + (child,))

    return _replace_at(forest, path, add_child)


def mark_deleted(
    forest: Sequence[CommentNode], comment_id: str
) -> tuple[CommentNode, ...]:
    """Return a new forest where `comment_id` is a tombstone. Replies stay."""
    forest = tuple(forest)
    path = _find_path(forest, comment_id)
    if path is None:
        return forest

    def tombstone(node: CommentNode) -> CommentNode:
        return replace(node, comment=replace(node.comment, content=DELETED_SENTINEL))

    return _replace_at(forest, path, tombstone)


def _find_path(
    forest: tuple[CommentNode, ...], comment_id: str
) -> Optional[tuple[int, ...]]:
    """Index path from the forest down to `comment_id`, or None."""
    stack = [((i,), node) for i, node in reversed(list(enumerate(forest)))]
    while stack:
        path, node = stack.pop()
        if node.id == comment_id:
            return path
        stack.extend(
            (path + (i,), child)
            for i, child in reversed(list(enumerate(node.children)))
        )
    return None


def _replace_at(
    forest: tuple[CommentNode, ...],
    path: tuple[int, ...],
    update: Callable[[CommentNode], CommentNode],
) -> tuple[CommentNode, ...]:
    """Copy-on-write update of the node at `path`."""
    ancestors = []
    level = forest
    for index in path:
        node = level[index]
        ancestors.append(node)
        level = node.children

    new_node = update(ancestors[-1])
    for depth in range(len(path) - 1, 0, -1):
        parent = ancestors[depth - 1]
        index = path[depth]
        children = parent.children[:index] + (new_node,) + parent.children[index + 1:]
        new_node = replace(parent, children=children)

    return forest[:path[0]] + (new_node,) + forest[path[0] + 1:]
