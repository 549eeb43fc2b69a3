"""Top-down anchoring of large isomorphic subtrees.

Subtrees are bucketed by height, tallest first. Within a height, source
subtrees look for an identical destination subtree (content hash) and
otherwise for the most similar subtree sharing their structure hash. A
match maps the whole subtree at once.
"""

import threading
from bisect import bisect_left
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterator, Optional

import structlog

from ast_diff.mapping.store import MappingStore
from ast_diff.matchers.exceptions import DiffCancelledError
from ast_diff.matchers.similarity import isomorphic_similarity
from ast_diff.models.config_models import DiffConfig
from ast_diff.tree.tree import Tree

logger = structlog.get_logger()


@dataclass
class TopDownResult:
    """Outcome of the anchoring phase."""

    mappings: MappingStore
    identical: bool  # every node of both trees mapped
    anchors: int  # subtree pairs matched
    heights_scanned: int


class _Bucket:
    """Destination candidates ordered by preorder index."""

    __slots__ = ("keys", "ids")

    def __init__(self) -> None:
        self.keys: list[int] = []
        self.ids: list[int] = []

    def append(self, key: int, node_id: int) -> None:
        self.keys.append(key)
        self.ids.append(node_id)

    def remove(self, key: int) -> None:
        index = bisect_left(self.keys, key)
        if index < len(self.keys) and self.keys[index] == key:
            del self.keys[index]
            del self.ids[index]

    def nearest(self, key: int) -> Iterator[int]:
        """Yield ids by distance to ``key``; equal distances favour the lower index."""
        right = bisect_left(self.keys, key)
        left = right - 1
        while left >= 0 or right < len(self.keys):
            if right >= len(self.keys) or (
                left >= 0 and key - self.keys[left] <= self.keys[right] - key
            ):
                yield self.ids[left]
                left -= 1
            else:
                yield self.ids[right]
                right += 1


def _group_by_height(tree: Tree) -> dict[int, list[int]]:
    groups: dict[int, list[int]] = defaultdict(list)
    for node_id in tree.preorder():
        groups[tree.height(node_id)].append(node_id)
    return groups


class TopDownMatcher:
    """Greedy subtree matcher run before the expensive bottom-up search."""

    def __init__(self, config: DiffConfig, cancel_event: Optional[threading.Event] = None):
        self.config = config
        self.cancel_event = cancel_event

    def match(
        self,
        source: Tree,
        destination: Tree,
        mappings: Optional[MappingStore] = None,
    ) -> TopDownResult:
        """Anchor isomorphic subtrees of ``source`` and ``destination``.

        Args:
            source: Tree before the change.
            destination: Tree after the change.
            mappings: Store to extend; a fresh one is created when omitted.

        Returns:
            TopDownResult holding the store and whether the trees are
            fully matched.

        Raises:
            DiffCancelledError: If the cancel event is set between height passes.
            ConflictError: If a propagated mapping collides with an existing one.
        """
        if mappings is None:
            mappings = MappingStore(source, destination)

        src_by_height = _group_by_height(source)
        dst_by_height = _group_by_height(destination)
        top = max(source.height(source.root), destination.height(destination.root))

        anchors = 0
        heights_scanned = 0
        for height in range(top, self.config.min_height - 1, -1):
            self._check_cancelled(source.name)
            heights_scanned += 1
            src_candidates = [
                n for n in src_by_height.get(height, ()) if not mappings.has_source(n)
            ]
            dst_candidates = [
                n for n in dst_by_height.get(height, ()) if not mappings.has_destination(n)
            ]
            if not src_candidates or not dst_candidates:
                continue
            anchors += self._match_height(
                source, destination, mappings, src_candidates, dst_candidates
            )

        identical = mappings.is_complete()
        logger.debug(
            "top_down_complete",
            tree=source.name,
            anchors=anchors,
            mapped=len(mappings),
            source_size=len(source),
            destination_size=len(destination),
            identical=identical,
        )
        return TopDownResult(
            mappings=mappings,
            identical=identical,
            anchors=anchors,
            heights_scanned=heights_scanned,
        )

    def _check_cancelled(self, name: str) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise DiffCancelledError(f"Diff cancelled during top-down matching of {name!r}")

    def _match_height(
        self,
        source: Tree,
        destination: Tree,
        mappings: MappingStore,
        src_candidates: list[int],
        dst_candidates: list[int],
    ) -> int:
        by_content: dict[str, _Bucket] = defaultdict(_Bucket)
        by_structure: dict[str, _Bucket] = defaultdict(_Bucket)
        for dst in dst_candidates:
            key = destination.preorder_index(dst)
            by_content[destination.content_hash(dst)].append(key, dst)
            by_structure[destination.structure_hash(dst)].append(key, dst)

        anchors = 0
        for src in src_candidates:
            key = source.preorder_index(src)
            best: Optional[int] = None
            pairs: Optional[list[tuple[int, int]]] = None

            exact = by_content.get(source.content_hash(src))
            if exact is not None:
                for dst in exact.nearest(key):
                    pairs = self._isomorphic_pairs(source, src, destination, dst)
                    if pairs is not None:
                        best = dst
                        break

            if best is None:
                similar = by_structure.get(source.structure_hash(src))
                if similar is not None:
                    best = self._most_similar(source, src, destination, similar, key)
                if best is not None:
                    pairs = self._isomorphic_pairs(source, src, destination, best)

            if best is None or pairs is None:
                continue
            mappings.add_all(pairs)
            anchors += 1

            best_key = destination.preorder_index(best)
            by_content[destination.content_hash(best)].remove(best_key)
            by_structure[destination.structure_hash(best)].remove(best_key)
        return anchors

    def _most_similar(
        self,
        source: Tree,
        src: int,
        destination: Tree,
        bucket: _Bucket,
        key: int,
    ) -> Optional[int]:
        """Highest similarity at or above threshold; nearest preorder wins ties."""
        threshold = self.config.top_down_threshold
        best: Optional[int] = None
        best_score = -1.0
        for examined, dst in enumerate(bucket.nearest(key)):
            if examined >= self.config.top_down_candidate_limit:
                break
            score = isomorphic_similarity(source, src, destination, dst, threshold)
            if score >= threshold and score > best_score:
                best = dst
                best_score = score
                if score == 1.0:
                    break
        return best

    @staticmethod
    def _isomorphic_pairs(
        source: Tree, src: int, destination: Tree, dst: int
    ) -> Optional[list[tuple[int, int]]]:
        """Node pairs in matching relative position, or None if shapes differ."""
        if source.size(src) != destination.size(dst):
            return None
        pairs = []
        for a_id, b_id in zip(source.preorder(src), destination.preorder(dst)):
            a = source[a_id]
            b = destination[b_id]
            if a.type != b.type or len(a.children) != len(b.children):
                return None
            pairs.append((a_id, b_id))
        return pairs
