"""Edit script generation and replay."""

from ast_diff.actions.edit_script import EditScriptGenerator, generate_edit_script
from ast_diff.actions.exceptions import EditScriptError, ReplayError
from ast_diff.actions.replay import apply_edit_script
from ast_diff.actions.working_tree import WorkingTree

__all__ = [
    "EditScriptError",
    "EditScriptGenerator",
    "ReplayError",
    "WorkingTree",
    "apply_edit_script",
    "generate_edit_script",
]
