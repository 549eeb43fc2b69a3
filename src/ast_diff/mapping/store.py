"""Two-way injective mapping between source and destination nodes."""

from typing import Iterable, Iterator, Optional

import structlog

from ast_diff.mapping.exceptions import ConflictError
from ast_diff.models.diff_models import MappingRecord
from ast_diff.tree.tree import Tree

logger = structlog.get_logger()


class MappingStore:
    """Partial bijection between the nodes of two trees.

    All writes go through :meth:`add` / :meth:`add_all`, which check both
    directions before committing. Iteration is ordered by source preorder
    index so downstream output is deterministic.
    """

    def __init__(self, source: Tree, destination: Tree):
        self.source = source
        self.destination = destination
        self._src_to_dst: dict[int, int] = {}
        self._dst_to_src: dict[int, int] = {}
        self._ordered: Optional[list[tuple[int, int]]] = None

    def _check(self, src: int, dst: int) -> None:
        if src not in self.source:
            raise ConflictError(src, dst, f"{src} is not a node of the source tree")
        if dst not in self.destination:
            raise ConflictError(src, dst, f"{dst} is not a node of the destination tree")
        if src in self._src_to_dst:
            raise ConflictError(
                src, dst, f"source {src} already mapped to {self._src_to_dst[src]}"
            )
        if dst in self._dst_to_src:
            raise ConflictError(
                src, dst, f"destination {dst} already mapped to {self._dst_to_src[dst]}"
            )

    def add(self, src: int, dst: int) -> None:
        """Map ``src`` to ``dst``.

        Raises:
            ConflictError: If either node already has a counterpart.
        """
        try:
            self._check(src, dst)
        except ConflictError as exc:
            logger.error("mapping_conflict", src=exc.src, dst=exc.dst, reason=exc.reason)
            raise
        self._src_to_dst[src] = dst
        self._dst_to_src[dst] = src
        self._ordered = None

    def add_all(self, pairs: Iterable[tuple[int, int]]) -> None:
        """Map every pair or none of them.

        Raises:
            ConflictError: If any pair conflicts with the store or with
                another pair of the same batch.
        """
        batch = list(pairs)
        batch_src: set[int] = set()
        batch_dst: set[int] = set()
        try:
            for src, dst in batch:
                self._check(src, dst)
                if src in batch_src:
                    raise ConflictError(src, dst, f"source {src} repeated within batch")
                if dst in batch_dst:
                    raise ConflictError(src, dst, f"destination {dst} repeated within batch")
                batch_src.add(src)
                batch_dst.add(dst)
        except ConflictError as exc:
            logger.error("mapping_conflict", src=exc.src, dst=exc.dst, reason=exc.reason)
            raise
        for src, dst in batch:
            self._src_to_dst[src] = dst
            self._dst_to_src[dst] = src
        if batch:
            self._ordered = None

    def get_destination(self, src: int) -> Optional[int]:
        return self._src_to_dst.get(src)

    def get_source(self, dst: int) -> Optional[int]:
        return self._dst_to_src.get(dst)

    def has_source(self, src: int) -> bool:
        return src in self._src_to_dst

    def has_destination(self, dst: int) -> bool:
        return dst in self._dst_to_src

    def is_complete(self) -> bool:
        """True when every node of both trees has a counterpart."""
        return len(self._src_to_dst) == len(self.source) == len(self.destination)

    def __len__(self) -> int:
        return len(self._src_to_dst)

    def __contains__(self, pair: object) -> bool:
        if not isinstance(pair, tuple) or len(pair) != 2:
            return False
        src, dst = pair
        return src in self._src_to_dst and self._src_to_dst[src] == dst

    def __iter__(self) -> Iterator[tuple[int, int]]:
        if self._ordered is None:
            self._ordered = sorted(
                self._src_to_dst.items(),
                key=lambda pair: self.source.preorder_index(pair[0]),
            )
        return iter(self._ordered)

    def to_records(self) -> list[MappingRecord]:
        return [MappingRecord(src=src, dst=dst) for src, dst in self]
