"""Arena-backed syntax tree with cached metrics used by the matchers."""

import hashlib
from collections import deque
from typing import Iterable, Iterator, Optional, Union

from ast_diff.models.tree_models import Node
from ast_diff.tree.exceptions import MalformedTreeError

# Nested tree literal: "type" | (type,) | (type, text) | (type, text, [children])
NestedSpec = Union[str, tuple]


def _digest(*parts: str) -> str:
    hasher = hashlib.blake2b(digest_size=16)
    hasher.update("\x1f".join(parts).encode("utf-8"))
    return hasher.hexdigest()


class Tree:
    """Immutable tree of Nodes for one file version.

    Nodes live in an arena keyed by id. Height, size, preorder index and the
    two subtree hashes are computed once when the tree is built.

    Use :func:`build_tree` (or :class:`TreeBuilder`) rather than calling the
    constructor directly: the constructor assumes already-validated input.
    """

    def __init__(self, nodes: dict[int, Node], root: int, name: str = ""):
        self._nodes = nodes
        self._root = root
        self.name = name

        self._preorder: list[int] = []
        stack = [root]
        while stack:
            node_id = stack.pop()
            self._preorder.append(node_id)
            stack.extend(reversed(nodes[node_id].children))
        self._preorder_index = {node_id: i for i, node_id in enumerate(self._preorder)}

        self._height: dict[int, int] = {}
        self._size: dict[int, int] = {}
        self._structure_hash: dict[int, str] = {}
        self._content_hash: dict[int, str] = {}
        # Reversed preorder visits every child before its parent
        for node_id in reversed(self._preorder):
            node = nodes[node_id]
            height = 1
            size = 1
            for child_id in node.children:
                height = max(height, self._height[child_id] + 1)
                size += self._size[child_id]
            self._height[node_id] = height
            self._size[node_id] = size
            self._structure_hash[node_id] = _digest(
                node.type, *(self._structure_hash[c] for c in node.children)
            )
            self._content_hash[node_id] = _digest(
                node.type, node.text, *(self._content_hash[c] for c in node.children)
            )

    # -- lookup -----------------------------------------------------------

    @property
    def root(self) -> int:
        return self._root

    @property
    def max_id(self) -> int:
        return max(self._nodes)

    def node(self, node_id: int) -> Node:
        return self._nodes[node_id]

    def __getitem__(self, node_id: int) -> Node:
        return self._nodes[node_id]

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[Node]:
        """Iterate nodes in preorder."""
        for node_id in self._preorder:
            yield self._nodes[node_id]

    def __repr__(self) -> str:
        return f"Tree(name={self.name!r}, size={len(self)}, root={self._root})"

    def children(self, node_id: int) -> tuple[int, ...]:
        return self._nodes[node_id].children

    def parent(self, node_id: int) -> Optional[int]:
        return self._nodes[node_id].parent

    def child_index(self, node_id: int) -> int:
        parent = self._nodes[node_id].parent
        if parent is None:
            return 0
        return self._nodes[parent].children.index(node_id)

    def is_leaf(self, node_id: int) -> bool:
        return not self._nodes[node_id].children

    # -- cached metrics ---------------------------------------------------

    def height(self, node_id: int) -> int:
        return self._height[node_id]

    def size(self, node_id: int) -> int:
        return self._size[node_id]

    def preorder_index(self, node_id: int) -> int:
        return self._preorder_index[node_id]

    def structure_hash(self, node_id: int) -> str:
        """Hash over the type labels and shape of the subtree."""
        return self._structure_hash[node_id]

    def content_hash(self, node_id: int) -> str:
        """Hash over type labels, text and shape of the subtree."""
        return self._content_hash[node_id]

    # -- traversal --------------------------------------------------------

    def preorder(self, start: Optional[int] = None) -> Iterator[int]:
        start = self._root if start is None else start
        first = self._preorder_index[start]
        for i in range(first, first + self._size[start]):
            yield self._preorder[i]

    def postorder(self, start: Optional[int] = None) -> Iterator[int]:
        start = self._root if start is None else start
        stack: list[tuple[int, bool]] = [(start, False)]
        while stack:
            node_id, expanded = stack.pop()
            if expanded:
                yield node_id
                continue
            stack.append((node_id, True))
            for child_id in reversed(self._nodes[node_id].children):
                stack.append((child_id, False))

    def bfs(self, start: Optional[int] = None) -> Iterator[int]:
        queue = deque([self._root if start is None else start])
        while queue:
            node_id = queue.popleft()
            yield node_id
            queue.extend(self._nodes[node_id].children)

    def descendants(self, node_id: int) -> list[int]:
        """Proper descendants of ``node_id`` in preorder."""
        first = self._preorder_index[node_id]
        return self._preorder[first + 1 : first + self._size[node_id]]

    def is_descendant(self, node_id: int, ancestor: int) -> bool:
        """True when ``node_id`` lies strictly inside the subtree of ``ancestor``."""
        first = self._preorder_index[ancestor]
        index = self._preorder_index[node_id]
        return first < index < first + self._size[ancestor]

    def is_isomorphic(self, other: "Tree") -> bool:
        """Same shape, type labels and text, ignoring ids and spans."""
        return self.content_hash(self._root) == other.content_hash(other.root)

    def to_nested(self, node_id: Optional[int] = None) -> tuple:
        """Inverse of :func:`build_tree_from_nested`."""
        node_id = self._root if node_id is None else node_id
        node = self._nodes[node_id]
        return (node.type, node.text, [self.to_nested(c) for c in node.children])


def build_tree(nodes: Iterable[Node], name: str = "") -> Tree:
    """Validate ``nodes`` and build a Tree.

    Args:
        nodes: Every node of the tree, in any order.
        name: Optional label (usually the file path) used in logs.

    Returns:
        The immutable Tree.

    Raises:
        MalformedTreeError: If ids are negative or repeat, there is not
            exactly one root, parent and child links disagree, or some node
            is unreachable from the root.
    """
    arena: dict[int, Node] = {}
    for node in nodes:
        if node.id < 0:
            raise MalformedTreeError(f"Negative node id {node.id}")
        if node.id in arena:
            raise MalformedTreeError(f"Duplicate node id {node.id}")
        arena[node.id] = node

    if not arena:
        raise MalformedTreeError("Tree has no nodes")

    roots = sorted(node.id for node in arena.values() if node.parent is None)
    if len(roots) != 1:
        raise MalformedTreeError(f"Expected exactly one root, found {len(roots)}: {roots[:10]}")

    listed: set[int] = set()
    for node in arena.values():
        for child_id in node.children:
            child = arena.get(child_id)
            if child is None:
                raise MalformedTreeError(f"Node {node.id} references missing child {child_id}")
            if child.parent != node.id:
                raise MalformedTreeError(
                    f"Node {child_id} is a child of {node.id} but names {child.parent} as parent"
                )
            if child_id in listed:
                raise MalformedTreeError(f"Node {child_id} appears more than once as a child")
            listed.add(child_id)

    for node in arena.values():
        if node.parent is None:
            continue
        if node.parent not in arena:
            raise MalformedTreeError(f"Node {node.id} references missing parent {node.parent}")
        if node.id not in listed:
            raise MalformedTreeError(
                f"Node {node.id} is not listed among the children of {node.parent}"
            )

    # Everything must hang off the root; anything else sits on a cycle
    reached = 0
    stack = [roots[0]]
    while stack:
        node_id = stack.pop()
        reached += 1
        stack.extend(arena[node_id].children)
    if reached != len(arena):
        raise MalformedTreeError(
            f"{len(arena) - reached} node(s) are not reachable from root {roots[0]}"
        )

    return Tree(arena, roots[0], name)


class TreeBuilder:
    """Incremental tree construction with sequential ids.

    Example:
        builder = TreeBuilder()
        block = builder.add("Block")
        builder.add("Return", "x", parent=block)
        tree = builder.build()
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._fields: dict[int, dict] = {}
        self._children: dict[int, list[int]] = {}
        self._next_id = 0

    def add(
        self,
        node_type: str,
        text: str = "",
        parent: Optional[int] = None,
        *,
        start_byte: int = 0,
        end_byte: int = 0,
        start_line: int = 0,
        end_line: int = 0,
    ) -> int:
        """Append a node as the last child of ``parent`` and return its id."""
        if parent is not None and parent not in self._fields:
            raise MalformedTreeError(f"Unknown parent id {parent}")
        node_id = self._next_id
        self._next_id += 1
        self._fields[node_id] = {
            "type": node_type,
            "text": text,
            "parent": parent,
            "start_byte": start_byte,
            "end_byte": end_byte,
            "start_line": start_line,
            "end_line": end_line,
        }
        self._children[node_id] = []
        if parent is not None:
            self._children[parent].append(node_id)
        return node_id

    def build(self) -> Tree:
        nodes = [
            Node(id=node_id, children=tuple(self._children[node_id]), **fields)
            for node_id, fields in self._fields.items()
        ]
        return build_tree(nodes, self.name)


def build_tree_from_nested(spec: NestedSpec, name: str = "") -> Tree:
    """Build a tree from a nested literal such as
    ``("Block", "", [("If", "", [("Cond", "a"), ("Then", "x")])])``.
    """
    builder = TreeBuilder(name)
    stack: list[tuple[NestedSpec, Optional[int]]] = [(spec, None)]
    while stack:
        item, parent = stack.pop()
        if isinstance(item, str):
            item = (item,)
        if not item or len(item) > 3:
            raise MalformedTreeError(f"Invalid nested node spec: {item!r}")
        node_type = item[0]
        text = item[1] if len(item) > 1 else ""
        children = item[2] if len(item) > 2 else []
        node_id = builder.add(node_type, text, parent)
        for child in reversed(children):
            stack.append((child, node_id))
    return builder.build()
