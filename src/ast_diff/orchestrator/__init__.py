"""LangGraph orchestrator package for the diff pipeline."""

from ast_diff.orchestrator.exceptions import GraphBuildError, OrchestratorError
from ast_diff.orchestrator.graph import build_file_graph
from ast_diff.orchestrator.project import ProjectDiffer, TreePair, diff_trees
from ast_diff.orchestrator.state import FileDiffState, file_diff_from_state, make_initial_state

__all__ = [
    "FileDiffState",
    "GraphBuildError",
    "OrchestratorError",
    "ProjectDiffer",
    "TreePair",
    "build_file_graph",
    "diff_trees",
    "file_diff_from_state",
    "make_initial_state",
]
