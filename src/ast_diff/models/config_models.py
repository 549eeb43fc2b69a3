"""Tunables threaded through the diff pipeline."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DiffConfig(BaseModel):
    """Configuration for one diff run.

    Passed explicitly to every phase; never read from module globals.
    """

    model_config = ConfigDict(frozen=True)

    # Top-down: smallest subtree height still considered for anchoring
    min_height: int = Field(default=1, ge=1)
    top_down_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    # Hash-equal candidates scored per source subtree, nearest preorder first
    top_down_candidate_limit: int = Field(default=256, ge=1)

    # Bottom-up: minimum Dice score for matching two containers
    bottom_up_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    # Largest allowed subtree size ratio between candidates; None disables
    size_ratio_cap: Optional[float] = Field(default=10.0, ge=1.0)
    # Above this many DP cells, child recovery falls back to greedy pairing
    max_alignment_cells: int = Field(default=250_000, ge=1)
    match_roots: bool = True

    # Orchestrator
    max_workers: int = Field(default=4, ge=1)
