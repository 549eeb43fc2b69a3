"""Mutable copy of a source tree that edit actions are applied to."""

from ast_diff.actions.exceptions import ReplayError
from ast_diff.models.diff_models import VIRTUAL_ROOT_ID
from ast_diff.tree.tree import Tree, TreeBuilder


class WorkingTree:
    """Source tree copy hung under a virtual root, open to edits.

    Original nodes keep their source ids; created nodes get fresh ids above
    the source tree's largest id.
    """

    def __init__(self, source: Tree):
        self.types: dict[int, str] = {}
        self.texts: dict[int, str] = {}
        self.parents: dict[int, int] = {}
        self.children: dict[int, list[int]] = {VIRTUAL_ROOT_ID: [source.root]}
        for node in source:
            self.types[node.id] = node.type
            self.texts[node.id] = node.text
            self.parents[node.id] = VIRTUAL_ROOT_ID if node.parent is None else node.parent
            self.children[node.id] = list(node.children)
        self._next_id = max(source.max_id, VIRTUAL_ROOT_ID) + 1

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.types

    def create(self, node_type: str, text: str) -> int:
        """Create a detached node and return its id."""
        node_id = self._next_id
        self._next_id += 1
        self.types[node_id] = node_type
        self.texts[node_id] = text
        self.children[node_id] = []
        return node_id

    def insert(self, node_id: int, parent: int, position: int) -> None:
        if parent not in self.children:
            raise ReplayError(f"Unknown parent {parent} for node {node_id}")
        if node_id in self.parents:
            raise ReplayError(f"Node {node_id} is still attached to {self.parents[node_id]}")
        siblings = self.children[parent]
        if not 0 <= position <= len(siblings):
            raise ReplayError(
                f"Position {position} out of range for parent {parent} with {len(siblings)} children"
            )
        siblings.insert(position, node_id)
        self.parents[node_id] = parent

    def detach(self, node_id: int) -> None:
        if node_id not in self.parents:
            raise ReplayError(f"Node {node_id} is not attached")
        parent = self.parents.pop(node_id)
        self.children[parent].remove(node_id)

    def remove(self, node_id: int) -> None:
        """Delete a leaf node."""
        if node_id not in self.types:
            raise ReplayError(f"Unknown node {node_id}")
        if self.children[node_id]:
            raise ReplayError(f"Node {node_id} still has {len(self.children[node_id])} children")
        self.detach(node_id)
        del self.types[node_id]
        del self.texts[node_id]
        del self.children[node_id]

    def parent(self, node_id: int) -> int:
        return self.parents[node_id]

    def position(self, node_id: int) -> int:
        return self.children[self.parents[node_id]].index(node_id)

    def postorder(self) -> list[int]:
        """Every attached node, children before parents, virtual root excluded."""
        order: list[int] = []
        stack: list[tuple[int, bool]] = [
            (child, False) for child in reversed(self.children[VIRTUAL_ROOT_ID])
        ]
        while stack:
            node_id, expanded = stack.pop()
            if expanded:
                order.append(node_id)
                continue
            stack.append((node_id, True))
            for child in reversed(self.children[node_id]):
                stack.append((child, False))
        return order

    def to_tree(self, name: str = "") -> Tree:
        """Freeze the current state into a Tree with fresh preorder ids.

        Raises:
            ReplayError: If the virtual root does not hold exactly one node.
        """
        roots = self.children[VIRTUAL_ROOT_ID]
        if len(roots) != 1:
            raise ReplayError(f"Expected a single root after replay, found {len(roots)}")
        builder = TreeBuilder(name)
        stack: list[tuple[int, int | None]] = [(roots[0], None)]
        while stack:
            node_id, parent = stack.pop()
            new_id = builder.add(self.types[node_id], self.texts[node_id], parent)
            for child in reversed(self.children[node_id]):
                stack.append((child, new_id))
        return builder.build()
