"""Tree model: validated, immutable node arenas."""

from ast_diff.tree.exceptions import MalformedTreeError, TreeError
from ast_diff.tree.tree import Tree, TreeBuilder, build_tree, build_tree_from_nested

__all__ = [
    "MalformedTreeError",
    "Tree",
    "TreeBuilder",
    "TreeError",
    "build_tree",
    "build_tree_from_nested",
]
