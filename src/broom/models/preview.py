"""Deletion plan tree used to preview and select items before removal."""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field


@dataclass(slots=True)
class PreviewNode:
    """One node of a deletion plan.

    Leaves carry a filesystem path in ``title`` and their own size;
    internal nodes group leaves (e.g. App -> Kind -> Path) and usually
    have ``own_size`` 0. Parents own their children; there are no back
    references, lookups walk the tree from the roots.
    """

    title: str
    detail: str | None = None
    own_size: int = 0
    selected: bool = True
    children: list[PreviewNode] | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def total_size(self) -> int:
        """Own size plus the total size of every descendant."""
        if not self.children:
            return self.own_size
        return self.own_size + sum(c.total_size for c in self.children)

    def set_selected(self, value: bool) -> None:
        """Select or deselect this node and all of its descendants."""
        stack = [self]
        while stack:
            node = stack.pop()
            node.selected = value
            if node.children:
                stack.extend(node.children)

    def walk(self) -> Iterator[PreviewNode]:
        """Yield this node and its descendants depth-first."""
        yield self
        for child in self.children or ():
            yield from child.walk()

    def to_dict(self) -> dict:
        data: dict = {
            "id": self.id,
            "title": self.title,
            "size": self.total_size,
            "selected": self.selected,
        }
        if self.detail:
            data["detail"] = self.detail
        if self.children is not None:
            data["children"] = [c.to_dict() for c in self.children]
        return data


def find_node(roots: Iterable[PreviewNode], node_id: str) -> PreviewNode | None:
    """Find a node anywhere in the forest by id."""
    for root in roots:
        for node in root.walk():
            if node.id == node_id:
                return node
    return None


def toggle(roots: Iterable[PreviewNode], node_id: str, value: bool) -> bool:
    """Set selection on a node (cascading to descendants).

    Returns False when no node has that id.
    """
    node = find_node(roots, node_id)
    if node is None:
        return False
    node.set_selected(value)
    return True


def selected_leaves(roots: Iterable[PreviewNode]) -> list[PreviewNode]:
    """Collect leaves that are selected along with all of their ancestors."""
    out: list[PreviewNode] = []

    def visit(node: PreviewNode) -> None:
        if not node.selected:
            return
        if node.children:
            for child in node.children:
                visit(child)
        else:
            out.append(node)

    for root in roots:
        visit(root)
    return out


def selected_paths(roots: Iterable[PreviewNode]) -> list[str]:
    """Flatten the selected leaves into the path list handed to the reclaimer."""
    return [leaf.title for leaf in selected_leaves(roots)]
