"""Tree-sitter front end producing Trees from source files."""

from ast_diff.frontend.tree_sitter_frontend import (
    FilePairs,
    discover_file_pairs,
    get_language_for_file,
    get_parser,
    is_supported_file,
    parse_file,
    parse_source,
)

__all__ = [
    "FilePairs",
    "discover_file_pairs",
    "get_language_for_file",
    "get_parser",
    "is_supported_file",
    "parse_file",
    "parse_source",
]
