"""
Child management shared by tree nodes and table cells.
"""

import logging
from typing import Iterator, List, Optional

logger = logging.getLogger(__name__)


class NodeContainer:
    """
    Something that owns an ordered list of DocumentNode children.

    Document nodes are containers, and so are table cells: paragraphs and
    nested tables inside a cell belong to the cell, not to the table node.
    """

    def __init__(self):
        self.parent: Optional["NodeContainer"] = None
        self.children: List["DocumentNode"] = []

    def _check_adoptable(self, child) -> None:
        from .node import DocumentNode, DocumentRoot

        if not isinstance(child, DocumentNode):
            raise TypeError(f"Expected DocumentNode, got {type(child).__name__}")
        if isinstance(child, DocumentRoot):
            raise ValueError("The document root cannot be attached as a child")
        if child.parent is not None:
            raise ValueError(f"Node {child.id} already has a parent; remove it first")
        ancestor = self
        while ancestor is not None:
            if ancestor is child:
                raise ValueError(f"Attaching node {child.id} would create a cycle")
            ancestor = ancestor.parent

    def add_child(self, child: "DocumentNode") -> "DocumentNode":
        """
        Append a child node.

        Args:
            child: Detached node to attach

        Returns:
            The attached child

        Raises:
            TypeError: If child is not a DocumentNode
            ValueError: If child is the root, already parented, or an ancestor
        """
        self._check_adoptable(child)
        child.parent = self
        self.children.append(child)
        return child

    def insert_child(self, index: int, child: "DocumentNode") -> "DocumentNode":
        self._check_adoptable(child)
        child.parent = self
        self.children.insert(index, child)
        return child

    def remove_child(self, child: "DocumentNode") -> "DocumentNode":
        """
        Detach a child node.

        Raises:
            ValueError: If child is not a child of this container
        """
        for index, existing in enumerate(self.children):
            if existing is child:
                del self.children[index]
                child.parent = None
                return child
        raise ValueError("Node is not a child of this container")

    def index_of(self, child: "DocumentNode") -> int:
        for index, existing in enumerate(self.children):
            if existing is child:
                return index
        raise ValueError("Node is not a child of this container")

    def iter_descendants(self) -> Iterator["DocumentNode"]:
        """Depth-first pre-order walk, descending into table cells."""
        for child in self.children:
            yield child
            yield from child.iter_descendants()

    @property
    def plain_text(self) -> str:
        return "\n".join(child.text for child in self.children)
