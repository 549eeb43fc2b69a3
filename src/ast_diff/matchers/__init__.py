"""Matchers that build the node mapping between two trees."""

from ast_diff.matchers.bottom_up import BottomUpMatcher, BottomUpResult
from ast_diff.matchers.exceptions import (
    DiffCancelledError,
    MatcherError,
    ThresholdExhaustionWarning,
)
from ast_diff.matchers.similarity import (
    dice,
    isomorphic_similarity,
    node_similarity,
    text_similarity,
)
from ast_diff.matchers.top_down import TopDownMatcher, TopDownResult

__all__ = [
    "BottomUpMatcher",
    "BottomUpResult",
    "DiffCancelledError",
    "MatcherError",
    "ThresholdExhaustionWarning",
    "TopDownMatcher",
    "TopDownResult",
    "dice",
    "isomorphic_similarity",
    "node_similarity",
    "text_similarity",
]
