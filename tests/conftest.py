import pytest

from ast_diff.mapping.store import MappingStore
from ast_diff.matchers.bottom_up import BottomUpMatcher
from ast_diff.matchers.top_down import TopDownMatcher
from ast_diff.models import DiffConfig
from ast_diff.tree.tree import build_tree_from_nested


def run_matchers(source, destination, config=None) -> MappingStore:
    """Top-down then bottom-up matching, as the pipeline runs them."""
    config = config or DiffConfig()
    result = TopDownMatcher(config).match(source, destination)
    BottomUpMatcher(config).match(source, destination, result.mappings)
    return result.mappings


@pytest.fixture
def match_trees():
    return run_matchers


@pytest.fixture
def config():
    return DiffConfig()


@pytest.fixture
def rename_trees():
    """An if-statement whose then-branch token changes from x to y."""
    source = build_tree_from_nested(
        ("Block", "", [("IfStmt", "", [("Cond", "a"), ("Then", "x")])]), "rename.js"
    )
    destination = build_tree_from_nested(
        ("Block", "", [("IfStmt", "", [("Cond", "a"), ("Then", "y")])]), "rename.js"
    )
    return source, destination


@pytest.fixture
def swap_trees():
    """Two statements of a block trade places."""
    source = build_tree_from_nested(("Block", "", [("Stmt", "a"), ("Stmt", "b")]))
    destination = build_tree_from_nested(("Block", "", [("Stmt", "b"), ("Stmt", "a")]))
    return source, destination


@pytest.fixture
def move_trees():
    """A method moves from class A to the end of class B."""
    source = build_tree_from_nested(
        (
            "Program",
            "",
            [
                (
                    "Class",
                    "A",
                    [
                        ("Field", "a1"),
                        ("Field", "a2"),
                        ("Field", "a3"),
                        ("Method", "m", [("Return", "1")]),
                    ],
                ),
                ("Class", "B", [("Field", "b1"), ("Field", "b2")]),
            ],
        )
    )
    destination = build_tree_from_nested(
        (
            "Program",
            "",
            [
                ("Class", "A", [("Field", "a1"), ("Field", "a2"), ("Field", "a3")]),
                (
                    "Class",
                    "B",
                    [
                        ("Field", "b1"),
                        ("Field", "b2"),
                        ("Method", "m", [("Return", "1")]),
                    ],
                ),
            ],
        )
    )
    return source, destination


@pytest.fixture
def function_trees():
    """A function body gains a statement, loses one and renames a variable."""
    source = build_tree_from_nested(
        (
            "Module",
            "",
            [
                (
                    "Function",
                    "compute",
                    [
                        ("Params", "", [("Param", "a"), ("Param", "b")]),
                        (
                            "Body",
                            "",
                            [
                                ("Assign", "", [("Name", "total"), ("Call", "add")]),
                                ("Log", "", [("Name", "total")]),
                                ("Return", "", [("Name", "total")]),
                            ],
                        ),
                    ],
                ),
                ("Function", "helper", [("Params", ""), ("Body", "", [("Pass", "")])]),
            ],
        )
    )
    destination = build_tree_from_nested(
        (
            "Module",
            "",
            [
                (
                    "Function",
                    "compute",
                    [
                        ("Params", "", [("Param", "a"), ("Param", "b"), ("Param", "c")]),
                        (
                            "Body",
                            "",
                            [
                                ("Assign", "", [("Name", "result"), ("Call", "add")]),
                                ("Return", "", [("Name", "result")]),
                            ],
                        ),
                    ],
                ),
                ("Function", "helper", [("Params", ""), ("Body", "", [("Pass", "")])]),
            ],
        )
    )
    return source, destination
