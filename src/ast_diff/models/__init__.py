"""Data models for the diff engine."""

from ast_diff.models.config_models import DiffConfig
from ast_diff.models.diff_models import (
    VIRTUAL_ROOT_ID,
    ActionKind,
    DeleteAction,
    EditAction,
    FailedPair,
    FileDiff,
    InsertAction,
    MappingRecord,
    MoveAction,
    ProjectDiff,
    UpdateAction,
)
from ast_diff.models.tree_models import Node

__all__ = [
    "VIRTUAL_ROOT_ID",
    "ActionKind",
    "DeleteAction",
    "DiffConfig",
    "EditAction",
    "FailedPair",
    "FileDiff",
    "InsertAction",
    "MappingRecord",
    "MoveAction",
    "Node",
    "ProjectDiff",
    "UpdateAction",
]
