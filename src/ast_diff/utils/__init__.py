"""Utility modules for serialization and oracle comparison."""

from ast_diff.utils.oracle import OracleComparison, compare_with_oracle
from ast_diff.utils.serialization import (
    dumps_records,
    file_diff_to_records,
    load_mapping_records,
    project_diff_to_records,
    write_records,
)

__all__ = [
    "OracleComparison",
    "compare_with_oracle",
    "dumps_records",
    "file_diff_to_records",
    "load_mapping_records",
    "project_diff_to_records",
    "write_records",
]
