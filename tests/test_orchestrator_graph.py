"""Unit tests for individual diff pipeline graph nodes and routing."""
import threading
from unittest.mock import patch

import pytest

from ast_diff.actions.exceptions import EditScriptError
from ast_diff.mapping import ConflictError, MappingStore
from ast_diff.matchers import DiffCancelledError
from ast_diff.models import DiffConfig, FailedPair, Node
from ast_diff.orchestrator.exceptions import GraphBuildError
from ast_diff.orchestrator.graph import (
    bottom_up_node,
    build_file_graph,
    build_node,
    edit_script_node,
    make_top_down_node,
    route_after_bottom_up,
    route_after_build,
    route_after_top_down,
)
from ast_diff.orchestrator.state import file_diff_from_state, make_initial_state
from ast_diff.tree import Tree


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _built_state(source, destination, config=None):
    state = make_initial_state("src/app.js", source, destination, config)
    state.update(build_node(state))
    return state


def _malformed_nodes():
    return [Node(id=1, type="A"), Node(id=2, type="B")]


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------
class TestInitialState:
    def test_defaults(self, rename_trees):
        source, destination = rename_trees
        state = make_initial_state("a.js", source, destination)
        assert state["diff_config"] == DiffConfig()
        assert state["mappings"] is None
        assert state["failure"] is None
        assert state["warnings"] == []
        assert state["errors"] == []

    def test_config_threaded(self, rename_trees):
        source, destination = rename_trees
        config = DiffConfig(min_height=2)
        state = make_initial_state("a.js", source, destination, config)
        assert state["diff_config"] is config

    def test_file_diff_from_unfinished_state(self, rename_trees):
        source, destination = rename_trees
        diff = file_diff_from_state(make_initial_state("a.js", source, destination))
        assert diff.file_path == "a.js"
        assert diff.mappings == []
        assert diff.source_size == 0


# ---------------------------------------------------------------------------
# build_node
# ---------------------------------------------------------------------------
class TestBuildNode:
    def test_trees_pass_through(self, rename_trees):
        source, destination = rename_trees
        update = build_node(make_initial_state("a.js", source, destination))
        assert update == {"source": source, "destination": destination}

    def test_raw_nodes_are_built(self, rename_trees):
        source, destination = rename_trees
        update = build_node(make_initial_state("a.js", list(source), list(destination)))
        assert isinstance(update["source"], Tree)
        assert update["source"].is_isomorphic(source)
        assert update["source"].name == "a.js"

    def test_malformed_nodes_fail_pair(self, rename_trees):
        _, destination = rename_trees
        update = build_node(make_initial_state("bad.js", _malformed_nodes(), destination))
        assert isinstance(update["failure"], FailedPair)
        assert update["failure"].error_type == "MalformedTreeError"
        assert update["failure"].file_path == "bad.js"
        assert update["errors"][0].startswith("build_node error:")


# ---------------------------------------------------------------------------
# top_down_node
# ---------------------------------------------------------------------------
class TestTopDownNode:
    def test_returns_mappings(self, rename_trees):
        state = _built_state(*rename_trees)
        update = make_top_down_node()(state)
        assert isinstance(update["mappings"], MappingStore)
        assert update["identical"] is False

    def test_identical_flag(self, rename_trees):
        source, _ = rename_trees
        update = make_top_down_node()(_built_state(source, source))
        assert update["identical"] is True

    def test_cancellation_propagates(self, rename_trees):
        event = threading.Event()
        event.set()
        with pytest.raises(DiffCancelledError):
            make_top_down_node(event)(_built_state(*rename_trees))

    def test_conflict_fails_pair(self, rename_trees):
        state = _built_state(*rename_trees)
        with patch(
            "ast_diff.orchestrator.graph.TopDownMatcher.match",
            side_effect=ConflictError(1, 2, "source 1 already mapped to 3"),
        ):
            update = make_top_down_node()(state)
        assert update["failure"].error_type == "ConflictError"
        assert isinstance(update["exception"], ConflictError)


# ---------------------------------------------------------------------------
# bottom_up_node / edit_script_node
# ---------------------------------------------------------------------------
class TestBottomUpNode:
    def test_completes_mapping(self, rename_trees):
        state = _built_state(*rename_trees)
        state.update(make_top_down_node()(state))
        update = bottom_up_node(state)
        assert update["exhausted"] == []
        assert "warnings" not in update
        assert state["mappings"].is_complete()

    @pytest.mark.filterwarnings("ignore::UserWarning")
    def test_exhaustion_reported_as_warning(self, rename_trees):
        config = DiffConfig(bottom_up_threshold=0.9)
        state = _built_state(*rename_trees, config)
        state.update(make_top_down_node()(state))
        update = bottom_up_node(state)
        assert update["exhausted"]
        assert update["warnings"][0].startswith("ThresholdExhaustionWarning")


class TestEditScriptNode:
    def test_produces_actions(self, rename_trees):
        state = _built_state(*rename_trees)
        state.update(make_top_down_node()(state))
        bottom_up_node(state)
        update = edit_script_node(state)
        assert len(update["actions"]) == 1

    def test_error_fails_pair(self, rename_trees):
        state = _built_state(*rename_trees)
        state.update(make_top_down_node()(state))
        with patch(
            "ast_diff.orchestrator.graph.generate_edit_script",
            side_effect=EditScriptError("boom"),
        ):
            update = edit_script_node(state)
        assert update["failure"].message == "boom"


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------
class TestRouting:
    def _failed(self, rename_trees):
        state = make_initial_state("a.js", *rename_trees)
        state["failure"] = FailedPair(file_path="a.js", error_type="X", message="m")
        return state

    def test_route_after_build(self, rename_trees):
        assert route_after_build(make_initial_state("a.js", *rename_trees)) == "continue"
        assert route_after_build(self._failed(rename_trees)) == "failed"

    def test_route_after_top_down(self, rename_trees):
        state = make_initial_state("a.js", *rename_trees)
        assert route_after_top_down(state) == "continue"
        state["identical"] = True
        assert route_after_top_down(state) == "identical"
        assert route_after_top_down(self._failed(rename_trees)) == "failed"

    def test_route_after_bottom_up(self, rename_trees):
        assert route_after_bottom_up(make_initial_state("a.js", *rename_trees)) == "continue"
        assert route_after_bottom_up(self._failed(rename_trees)) == "failed"


# ---------------------------------------------------------------------------
# Compiled graph
# ---------------------------------------------------------------------------
class TestBuildFileGraph:
    def test_full_run(self, rename_trees):
        result = build_file_graph().invoke(make_initial_state("a.js", *rename_trees))
        diff = file_diff_from_state(result)
        assert diff.file_path == "a.js"
        assert len(diff.mappings) == 4
        assert len(diff.actions) == 1
        assert diff.source_size == 4
        assert diff.destination_size == 4

    def test_identical_skips_bottom_up(self, rename_trees):
        source, _ = rename_trees
        with patch("ast_diff.orchestrator.graph.BottomUpMatcher") as matcher_cls:
            result = build_file_graph().invoke(make_initial_state("a.js", source, source))
        matcher_cls.assert_not_called()
        assert result["identical"] is True
        assert result["actions"] == []

    def test_malformed_ends_early(self, rename_trees):
        _, destination = rename_trees
        with patch("ast_diff.orchestrator.graph.TopDownMatcher") as matcher_cls:
            result = build_file_graph().invoke(
                make_initial_state("bad.js", _malformed_nodes(), destination)
            )
        matcher_cls.assert_not_called()
        assert result["failure"].error_type == "MalformedTreeError"
        assert result["actions"] == []

    def test_build_failure_wrapped(self):
        with patch(
            "ast_diff.orchestrator.graph.StateGraph", side_effect=RuntimeError("no graph")
        ):
            with pytest.raises(GraphBuildError, match="no graph"):
                build_file_graph()
