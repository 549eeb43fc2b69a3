"""Exceptions for tree construction."""


class TreeError(Exception):
    """Base exception for all tree operations."""


class MalformedTreeError(TreeError):
    """Raised when input nodes do not form a single rooted, ordered tree."""
