"""Models for mappings, edit actions and per-file / per-commit diffs."""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

# Parent id used for the implicit node sitting above both tree roots;
# build_tree only accepts non-negative ids so it never names a real node
VIRTUAL_ROOT_ID = -1


class ActionKind(str, Enum):
    """Kind of a primitive edit action."""

    INSERT = "insert"
    DELETE = "delete"
    UPDATE = "update"
    MOVE = "move"


class MappingRecord(BaseModel):
    """One source/destination node correspondence."""

    model_config = ConfigDict(frozen=True)

    src: int
    dst: int


class InsertAction(BaseModel):
    """Insert a copy of a destination node under ``parent_id``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[ActionKind.INSERT] = ActionKind.INSERT
    node_id: int  # destination tree id
    node_type: str
    text: str = ""
    parent_id: int  # destination tree id, or VIRTUAL_ROOT_ID
    position: int


class DeleteAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal[ActionKind.DELETE] = ActionKind.DELETE
    node_id: int  # source tree id


class UpdateAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal[ActionKind.UPDATE] = ActionKind.UPDATE
    node_id: int  # source tree id
    dest_id: int
    old_text: str
    new_text: str


class MoveAction(BaseModel):
    """Detach a source node and re-insert it at ``position`` under ``parent_id``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[ActionKind.MOVE] = ActionKind.MOVE
    node_id: int  # source tree id
    dest_id: int
    parent_id: int  # destination tree id, or VIRTUAL_ROOT_ID
    position: int


EditAction = Annotated[
    Union[InsertAction, DeleteAction, UpdateAction, MoveAction],
    Field(discriminator="kind"),
]


class FileDiff(BaseModel):
    """Mapping and edit script computed for a single file pair."""

    model_config = ConfigDict(frozen=False)

    file_path: str  # Relative path from repo root
    mappings: list[MappingRecord] = Field(default_factory=list)  # source preorder
    actions: list[EditAction] = Field(default_factory=list)
    identical: bool = False  # True when top-down matching mapped every node
    warnings: list[str] = Field(default_factory=list)
    source_size: int = 0
    destination_size: int = 0

    def count(self, kind: ActionKind) -> int:
        return sum(1 for action in self.actions if action.kind == kind)


class FailedPair(BaseModel):
    """A file pair whose pipeline raised instead of producing a FileDiff."""

    model_config = ConfigDict(frozen=True)

    file_path: str
    error_type: str  # "MalformedTreeError" | "ConflictError" | ...
    message: str


class ProjectDiff(BaseModel):
    """All file diffs computed for one commit."""

    model_config = ConfigDict(frozen=False)

    file_diffs: list[FileDiff] = Field(default_factory=list)  # sorted by file_path
    failed: list[FailedPair] = Field(default_factory=list)
    cancelled: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.cancelled

    def get(self, file_path: str) -> FileDiff | None:
        for file_diff in self.file_diffs:
            if file_diff.file_path == file_path:
                return file_diff
        return None
