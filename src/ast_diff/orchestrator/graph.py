"""LangGraph pipeline computing the diff of one file pair.

Wires tree validation, top-down matching, bottom-up matching and edit
script generation into a StateGraph. A pair judged identical by the
top-down phase skips bottom-up matching; a failing phase ends the graph.
"""

import threading
from typing import Callable, Optional

import structlog
from langgraph.graph import END, START, StateGraph

from ast_diff.actions.edit_script import generate_edit_script
from ast_diff.actions.exceptions import EditScriptError
from ast_diff.mapping.exceptions import MappingError
from ast_diff.matchers.bottom_up import BottomUpMatcher
from ast_diff.matchers.top_down import TopDownMatcher
from ast_diff.models import FailedPair
from ast_diff.orchestrator.exceptions import GraphBuildError
from ast_diff.orchestrator.state import FileDiffState, TreeInput
from ast_diff.tree.exceptions import TreeError
from ast_diff.tree.tree import Tree, build_tree

logger = structlog.get_logger()


def _as_tree(value: TreeInput, name: str) -> Tree:
    if isinstance(value, Tree):
        return value
    return build_tree(value, name)


def _failure(state: FileDiffState, node: str, exc: Exception) -> dict:
    """State update recording a fatal error for this pair."""
    logger.error(
        "file_diff_failed",
        file=state["file_path"],
        node=node,
        error_type=type(exc).__name__,
        error=str(exc),
    )
    return {
        "errors": [f"{node} error: {exc}"],
        "failure": FailedPair(
            file_path=state["file_path"],
            error_type=type(exc).__name__,
            message=str(exc),
        ),
        "exception": exc,
    }


def build_node(state: FileDiffState) -> dict:
    """Validate both sides of the pair into Trees.

    On MalformedTreeError: returns a failure update.
    """
    try:
        source = _as_tree(state["source_input"], state["file_path"])
        destination = _as_tree(state["destination_input"], state["file_path"])
    except TreeError as exc:
        return _failure(state, "build_node", exc)
    return {"source": source, "destination": destination}


def make_top_down_node(
    cancel_event: Optional[threading.Event] = None,
) -> Callable[[FileDiffState], dict]:
    """Factory: returns a node closure running the top-down matcher.

    The closure returns {"mappings": ..., "identical": ...}. DiffCancelledError
    is not caught: cancellation aborts the whole graph run.
    """

    def top_down_node(state: FileDiffState) -> dict:
        matcher = TopDownMatcher(state["diff_config"], cancel_event)
        try:
            result = matcher.match(state["source"], state["destination"])
        except MappingError as exc:
            return _failure(state, "top_down_node", exc)
        return {"mappings": result.mappings, "identical": result.identical}

    return top_down_node


def bottom_up_node(state: FileDiffState) -> dict:
    """Complete the mapping with the bottom-up matcher."""
    matcher = BottomUpMatcher(state["diff_config"])
    try:
        result = matcher.match(state["source"], state["destination"], state["mappings"])
    except MappingError as exc:
        return _failure(state, "bottom_up_node", exc)

    update: dict = {"exhausted": result.exhausted}
    if result.exhausted:
        update["warnings"] = [
            f"ThresholdExhaustionWarning: {len(result.exhausted)} container(s) below "
            f"similarity {state['diff_config'].bottom_up_threshold}"
        ]
    return update


def edit_script_node(state: FileDiffState) -> dict:
    """Derive the ordered edit actions from the final mapping."""
    try:
        actions = generate_edit_script(state["source"], state["destination"], state["mappings"])
    except EditScriptError as exc:
        return _failure(state, "edit_script_node", exc)
    return {"actions": actions}


def route_after_build(state: FileDiffState) -> str:
    return "failed" if state["failure"] is not None else "continue"


def route_after_top_down(state: FileDiffState) -> str:
    """Router: "failed", "identical" (skip bottom-up) or "continue"."""
    if state["failure"] is not None:
        return "failed"
    if state["identical"]:
        return "identical"
    return "continue"


def route_after_bottom_up(state: FileDiffState) -> str:
    return "failed" if state["failure"] is not None else "continue"


def build_file_graph(cancel_event: Optional[threading.Event] = None):
    """Build and compile the per-file diff StateGraph.

    Edge topology:
      START -> build_node -> conditional -> {top_down_node, END}
      top_down_node -> conditional -> {bottom_up_node, edit_script_node, END}
      bottom_up_node -> conditional -> {edit_script_node, END}
      edit_script_node -> END

    Args:
        cancel_event: Shared flag checked between top-down height passes.

    Returns:
        CompiledStateGraph ready to invoke with a FileDiffState.

    Raises:
        GraphBuildError: If graph construction fails.
    """
    try:
        graph = StateGraph(FileDiffState)

        graph.add_node("build_node", build_node)
        graph.add_node("top_down_node", make_top_down_node(cancel_event))
        graph.add_node("bottom_up_node", bottom_up_node)
        graph.add_node("edit_script_node", edit_script_node)

        graph.add_edge(START, "build_node")
        graph.add_conditional_edges(
            "build_node",
            route_after_build,
            {
                "continue": "top_down_node",
                "failed": END,
            },
        )
        graph.add_conditional_edges(
            "top_down_node",
            route_after_top_down,
            {
                "continue": "bottom_up_node",
                "identical": "edit_script_node",
                "failed": END,
            },
        )
        graph.add_conditional_edges(
            "bottom_up_node",
            route_after_bottom_up,
            {
                "continue": "edit_script_node",
                "failed": END,
            },
        )
        graph.add_edge("edit_script_node", END)

        return graph.compile()

    except Exception as exc:
        raise GraphBuildError(f"Failed to build diff graph: {exc}") from exc
