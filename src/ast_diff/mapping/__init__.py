"""Mapping store: the accumulating node correspondence."""

from ast_diff.mapping.exceptions import ConflictError, MappingError
from ast_diff.mapping.store import MappingStore

__all__ = ["ConflictError", "MappingError", "MappingStore"]
