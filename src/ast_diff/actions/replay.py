"""Apply an edit script to a source tree."""

from typing import Iterable, Union

from ast_diff.actions.exceptions import ReplayError
from ast_diff.actions.working_tree import WorkingTree
from ast_diff.models.diff_models import (
    VIRTUAL_ROOT_ID,
    DeleteAction,
    EditAction,
    InsertAction,
    MappingRecord,
    MoveAction,
    UpdateAction,
)
from ast_diff.tree.tree import Tree


def apply_edit_script(
    source: Tree,
    mappings: Iterable[Union[tuple[int, int], MappingRecord]],
    actions: Iterable[EditAction],
) -> Tree:
    """Replay ``actions`` in order against a copy of ``source``.

    Args:
        source: Tree the script was generated from.
        mappings: The source/destination pairs the script was generated
            from; insert and move targets name destination parents, which
            are resolved through them.
        actions: Edit actions in generation order.

    Returns:
        The resulting tree, with fresh preorder ids.

    Raises:
        ReplayError: If an action references an unknown node or position.
    """
    work = WorkingTree(source)
    resolve: dict[int, int] = {VIRTUAL_ROOT_ID: VIRTUAL_ROOT_ID}
    for pair in mappings:
        if isinstance(pair, MappingRecord):
            resolve[pair.dst] = pair.src
        else:
            resolve[pair[1]] = pair[0]

    def parent_of(action: Union[InsertAction, MoveAction]) -> int:
        parent = resolve.get(action.parent_id)
        if parent is None:
            raise ReplayError(f"{action.kind.value} targets unknown parent {action.parent_id}")
        return parent

    for action in actions:
        if isinstance(action, InsertAction):
            node_id = work.create(action.node_type, action.text)
            work.insert(node_id, parent_of(action), action.position)
            resolve[action.node_id] = node_id
        elif isinstance(action, UpdateAction):
            if action.node_id not in work:
                raise ReplayError(f"update targets unknown node {action.node_id}")
            work.texts[action.node_id] = action.new_text
        elif isinstance(action, MoveAction):
            if action.node_id not in work:
                raise ReplayError(f"move targets unknown node {action.node_id}")
            work.detach(action.node_id)
            work.insert(action.node_id, parent_of(action), action.position)
        elif isinstance(action, DeleteAction):
            work.remove(action.node_id)
        else:
            raise ReplayError(f"Unsupported action {action!r}")

    return work.to_tree(source.name)
