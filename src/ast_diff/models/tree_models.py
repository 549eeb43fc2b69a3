"""Node model shared by the tree arena and the matchers."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Node(BaseModel):
    """A single labeled element of a syntax tree.

    Parent and child links are stored as ids into the owning tree's arena,
    never as object references.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    type: str  # syntactic label, e.g. "if_statement"
    text: str = ""  # token text for leaves, usually empty for containers
    start_byte: int = 0
    end_byte: int = 0
    start_line: int = 0
    end_line: int = 0
    children: tuple[int, ...] = Field(default_factory=tuple)
    parent: Optional[int] = None

    @property
    def is_leaf(self) -> bool:
        return not self.children
