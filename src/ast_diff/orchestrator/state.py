"""State definition for the per-file diff pipeline graph."""

import operator
from typing import Annotated, Iterable, Optional, TypedDict, Union

from ast_diff.mapping.store import MappingStore
from ast_diff.models import DiffConfig, EditAction, FailedPair, FileDiff, Node
from ast_diff.tree.tree import Tree

# A side of a file pair: a built tree, or raw nodes to be validated in the pipeline
TreeInput = Union[Tree, Iterable[Node]]


class FileDiffState(TypedDict):
    """State for one file pair flowing through the diff graph.

    Fields with Annotated[list, operator.add] reducers accumulate across nodes.
    All other fields use default overwrite semantics.
    """

    # Input
    file_path: str
    diff_config: DiffConfig
    source_input: TreeInput
    destination_input: TreeInput

    # Tree model
    source: Optional[Tree]
    destination: Optional[Tree]

    # Matching
    mappings: Optional[MappingStore]
    identical: bool
    exhausted: list[int]

    # Edit script
    actions: list[EditAction]

    # Failure of this pair (pipeline routes to END once set)
    failure: Optional[FailedPair]
    exception: Optional[Exception]

    # Accumulating
    warnings: Annotated[list[str], operator.add]
    errors: Annotated[list[str], operator.add]


def make_initial_state(
    file_path: str,
    source: TreeInput,
    destination: TreeInput,
    config: Optional[DiffConfig] = None,
) -> FileDiffState:
    """Create the initial state for one file pair.

    Args:
        file_path: Path identifying the pair in reports.
        source: Tree (or nodes) before the change.
        destination: Tree (or nodes) after the change.
        config: Tunables; defaults to ``DiffConfig()``.

    Returns:
        FileDiffState dict with all fields initialised to defaults.
    """
    return {
        "file_path": file_path,
        "diff_config": config if config is not None else DiffConfig(),
        "source_input": source,
        "destination_input": destination,
        "source": None,
        "destination": None,
        "mappings": None,
        "identical": False,
        "exhausted": [],
        "actions": [],
        "failure": None,
        "exception": None,
        "warnings": [],
        "errors": [],
    }


def file_diff_from_state(state: FileDiffState) -> FileDiff:
    """Package a completed pipeline state as a FileDiff."""
    mappings = state["mappings"]
    source = state["source"]
    destination = state["destination"]
    return FileDiff(
        file_path=state["file_path"],
        mappings=mappings.to_records() if mappings is not None else [],
        actions=list(state["actions"]),
        identical=state["identical"],
        warnings=list(state["warnings"]),
        source_size=len(source) if source is not None else 0,
        destination_size=len(destination) if destination is not None else 0,
    )
