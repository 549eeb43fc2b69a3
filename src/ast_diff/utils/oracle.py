"""Compare computed mappings against a hand-validated oracle."""

from dataclasses import dataclass, field
from typing import Iterable

from ast_diff.models import MappingRecord


@dataclass
class OracleComparison:
    """Outcome of comparing one mapping set against the expected one."""

    matched: list[MappingRecord] = field(default_factory=list)
    missing: list[MappingRecord] = field(default_factory=list)  # expected, not produced
    unexpected: list[MappingRecord] = field(default_factory=list)  # produced, not expected

    @property
    def precision(self) -> float:
        produced = len(self.matched) + len(self.unexpected)
        return len(self.matched) / produced if produced else 1.0

    @property
    def recall(self) -> float:
        expected = len(self.matched) + len(self.missing)
        return len(self.matched) / expected if expected else 1.0

    @property
    def exact(self) -> bool:
        return not self.missing and not self.unexpected


def _key(record: MappingRecord) -> tuple[int, int]:
    return (record.src, record.dst)


def compare_with_oracle(
    expected: Iterable[MappingRecord],
    actual: Iterable[MappingRecord],
) -> OracleComparison:
    """Split mappings into matched, missing and unexpected, each sorted by (src, dst)."""
    expected_set = {_key(r) for r in expected}
    actual_set = {_key(r) for r in actual}

    def records(pairs: set[tuple[int, int]]) -> list[MappingRecord]:
        return [MappingRecord(src=s, dst=d) for s, d in sorted(pairs)]

    return OracleComparison(
        matched=records(expected_set & actual_set),
        missing=records(expected_set - actual_set),
        unexpected=records(actual_set - expected_set),
    )
