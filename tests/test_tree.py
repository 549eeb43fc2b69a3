"""Tests for the tree arena, its builders and validation."""

import pytest

from ast_diff.models import Node
from ast_diff.tree import (
    MalformedTreeError,
    TreeBuilder,
    TreeError,
    build_tree,
    build_tree_from_nested,
)


def _sample():
    #        0 Block
    #       /       \
    #   1 If        4 Return(x)
    #   /   \
    # 2 Cond(a) 3 Then(b)
    return build_tree_from_nested(
        ("Block", "", [("If", "", [("Cond", "a"), ("Then", "b")]), ("Return", "x")])
    )


class TestBuildTree:
    def test_valid_nodes(self):
        nodes = [
            Node(id=10, type="Block", children=(11, 12)),
            Node(id=11, type="Stmt", text="a", parent=10),
            Node(id=12, type="Stmt", text="b", parent=10),
        ]
        tree = build_tree(nodes, "a.js")
        assert tree.root == 10
        assert len(tree) == 3
        assert tree.name == "a.js"
        assert tree.children(10) == (11, 12)
        assert tree.parent(12) == 10

    def test_nodes_in_any_order(self):
        nodes = [
            Node(id=2, type="Leaf", parent=1),
            Node(id=1, type="Root", children=(2,)),
        ]
        assert build_tree(nodes).root == 1

    def test_empty_input(self):
        with pytest.raises(MalformedTreeError, match="no nodes"):
            build_tree([])

    def test_duplicate_ids(self):
        with pytest.raises(MalformedTreeError, match="Duplicate"):
            build_tree([Node(id=1, type="A"), Node(id=1, type="B")])

    def test_two_roots(self):
        with pytest.raises(MalformedTreeError, match="exactly one root"):
            build_tree([Node(id=1, type="A"), Node(id=2, type="B")])

    def test_missing_child(self):
        with pytest.raises(MalformedTreeError, match="missing child"):
            build_tree([Node(id=1, type="A", children=(2,))])

    def test_child_parent_disagree(self):
        nodes = [
            Node(id=1, type="A", children=(2,)),
            Node(id=2, type="B", parent=3),
            Node(id=3, type="C", parent=1),
        ]
        with pytest.raises(MalformedTreeError):
            build_tree(nodes)

    def test_child_listed_twice(self):
        nodes = [
            Node(id=1, type="A", children=(2, 2)),
            Node(id=2, type="B", parent=1),
        ]
        with pytest.raises(MalformedTreeError, match="more than once"):
            build_tree(nodes)

    def test_node_not_listed_in_parent(self):
        nodes = [
            Node(id=1, type="A"),
            Node(id=2, type="B", parent=1),
        ]
        with pytest.raises(MalformedTreeError, match="not listed"):
            build_tree(nodes)

    def test_cycle_unreachable_from_root(self):
        nodes = [
            Node(id=1, type="Root"),
            Node(id=2, type="A", parent=3, children=(3,)),
            Node(id=3, type="B", parent=2, children=(2,)),
        ]
        with pytest.raises(MalformedTreeError, match="not reachable"):
            build_tree(nodes)

    def test_negative_id_rejected(self):
        nodes = [
            Node(id=-1, type="Block", children=(0,)),
            Node(id=0, type="Stmt", text="a", parent=-1),
        ]
        with pytest.raises(MalformedTreeError, match="Negative node id -1"):
            build_tree(nodes)

    def test_malformed_is_tree_error(self):
        assert issubclass(MalformedTreeError, TreeError)


class TestTreeMetrics:
    def test_height_and_size(self):
        tree = _sample()
        assert tree.height(0) == 3
        assert tree.height(1) == 2
        assert tree.height(2) == 1
        assert tree.size(0) == 5
        assert tree.size(1) == 3
        assert tree.size(4) == 1

    def test_preorder_ids_from_nested(self):
        tree = _sample()
        assert list(tree.preorder()) == [0, 1, 2, 3, 4]
        assert [tree.preorder_index(n) for n in range(5)] == [0, 1, 2, 3, 4]

    def test_child_index(self):
        tree = _sample()
        assert tree.child_index(3) == 1
        assert tree.child_index(4) == 1

    def test_structure_hash_ignores_text(self):
        a = build_tree_from_nested(("If", "", [("Cond", "a"), ("Then", "b")]))
        b = build_tree_from_nested(("If", "", [("Cond", "zz"), ("Then", "yy")]))
        assert a.structure_hash(a.root) == b.structure_hash(b.root)
        assert a.content_hash(a.root) != b.content_hash(b.root)

    def test_structure_hash_sees_shape(self):
        a = build_tree_from_nested(("A", "", [("B", "", [("C",)])]))
        b = build_tree_from_nested(("A", "", [("B",), ("C",)]))
        assert a.structure_hash(a.root) != b.structure_hash(b.root)

    def test_content_hash_sees_child_order(self):
        a = build_tree_from_nested(("Block", "", [("Stmt", "a"), ("Stmt", "b")]))
        b = build_tree_from_nested(("Block", "", [("Stmt", "b"), ("Stmt", "a")]))
        assert a.content_hash(a.root) != b.content_hash(b.root)

    def test_is_isomorphic_ignores_ids_and_spans(self):
        a = _sample()
        builder = TreeBuilder()
        block = builder.add("Block", start_byte=4, end_byte=40)
        if_id = builder.add("If", parent=block, start_line=3)
        builder.add("Cond", "a", if_id)
        builder.add("Then", "b", if_id)
        builder.add("Return", "x", block)
        assert a.is_isomorphic(builder.build())

    def test_is_leaf(self):
        tree = _sample()
        assert tree.is_leaf(2)
        assert not tree.is_leaf(1)
        assert tree[2].is_leaf


class TestTraversals:
    def test_postorder(self):
        assert list(_sample().postorder()) == [2, 3, 1, 4, 0]

    def test_bfs(self):
        assert list(_sample().bfs()) == [0, 1, 4, 2, 3]

    def test_traversals_from_subtree(self):
        tree = _sample()
        assert list(tree.preorder(1)) == [1, 2, 3]
        assert list(tree.postorder(1)) == [2, 3, 1]
        assert list(tree.bfs(1)) == [1, 2, 3]

    def test_traversals_are_restartable(self):
        tree = _sample()
        first = list(tree.preorder())
        assert list(tree.preorder()) == first

    def test_descendants(self):
        tree = _sample()
        assert tree.descendants(1) == [2, 3]
        assert tree.descendants(2) == []
        assert sorted(tree.descendants(0)) == [1, 2, 3, 4]

    def test_is_descendant(self):
        tree = _sample()
        assert tree.is_descendant(3, 0)
        assert tree.is_descendant(3, 1)
        assert not tree.is_descendant(4, 1)
        assert not tree.is_descendant(1, 1)

    def test_iter_yields_nodes_in_preorder(self):
        tree = _sample()
        assert [node.id for node in tree] == [0, 1, 2, 3, 4]

    def test_lookup(self):
        tree = _sample()
        assert 3 in tree
        assert 99 not in tree
        assert tree.node(4).text == "x"
        assert tree[4].type == "Return"


class TestBuilders:
    def test_tree_builder_sequential_ids(self):
        builder = TreeBuilder("f.py")
        root = builder.add("Module")
        first = builder.add("Expr", "1", root)
        second = builder.add("Expr", "2", root)
        tree = builder.build()
        assert (root, first, second) == (0, 1, 2)
        assert tree.children(root) == (1, 2)
        assert tree.name == "f.py"

    def test_tree_builder_keeps_spans(self):
        builder = TreeBuilder()
        builder.add("Module", start_byte=0, end_byte=12, start_line=1, end_line=2)
        node = builder.build()[0]
        assert (node.start_byte, node.end_byte, node.start_line, node.end_line) == (0, 12, 1, 2)

    def test_tree_builder_unknown_parent(self):
        builder = TreeBuilder()
        with pytest.raises(MalformedTreeError):
            builder.add("Expr", parent=5)

    def test_nested_accepts_short_forms(self):
        tree = build_tree_from_nested(("Call", "", ["Name", ("Arg", "x")]))
        assert [tree[n].type for n in tree.preorder()] == ["Call", "Name", "Arg"]
        assert tree[2].text == "x"

    def test_nested_round_trip(self):
        spec = ("Block", "", [("If", "", [("Cond", "a", []), ("Then", "b", [])]), ("Return", "x", [])])
        assert build_tree_from_nested(spec).to_nested() == spec

    def test_nested_rejects_invalid_spec(self):
        with pytest.raises(MalformedTreeError):
            build_tree_from_nested(("A", "", [], "extra"))
