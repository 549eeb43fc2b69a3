"""Bottom-up matching of containers through their mapped descendants."""

import warnings
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Callable, Optional

import structlog

from ast_diff.mapping.store import MappingStore
from ast_diff.matchers.exceptions import ThresholdExhaustionWarning
from ast_diff.matchers.similarity import common_descendants, node_similarity
from ast_diff.models.config_models import DiffConfig
from ast_diff.tree.tree import Tree

logger = structlog.get_logger()


@dataclass
class BottomUpResult:
    """Outcome of the bottom-up phase."""

    mappings: MappingStore
    matched_containers: int = 0
    recovered: int = 0  # pairs added while aligning children
    exhausted: list[int] = field(default_factory=list)  # source ids below threshold


class BottomUpMatcher:
    """Matches source containers left over by the top-down phase.

    Source containers are visited in postorder. Each one is compared with
    the unmatched destination containers that hold the counterpart of at
    least one of its matched descendants, and paired with the one scoring
    the highest Dice coefficient, if that reaches the threshold. Every new
    pair then aligns its still-unmatched children.

    An equal type label is a precondition for a candidate rather than the
    first tie-breaker, since an Update only ever changes text. Ties on Dice
    go to the most shared descendants, then the lowest destination id.
    """

    def __init__(self, config: DiffConfig):
        self.config = config

    def match(self, source: Tree, destination: Tree, mappings: MappingStore) -> BottomUpResult:
        result = BottomUpResult(mappings=mappings)

        for src in source.postorder():
            if mappings.has_source(src) or source.is_leaf(src):
                continue
            candidates = self._candidates(source, src, destination, mappings)
            if not candidates:
                continue
            best = self._select(source, src, destination, candidates, mappings)
            if best is None:
                result.exhausted.append(src)
                continue
            mappings.add(src, best)
            result.matched_containers += 1
            result.recovered += self._recover(source, src, destination, best, mappings)

        src_root = source.root
        dst_root = destination.root
        if (
            self.config.match_roots
            and not mappings.has_source(src_root)
            and not mappings.has_destination(dst_root)
            and source[src_root].type == destination[dst_root].type
        ):
            mappings.add(src_root, dst_root)
            result.matched_containers += 1
            result.recovered += self._recover(source, src_root, destination, dst_root, mappings)

        if result.exhausted:
            logger.debug(
                "bottom_up_exhausted",
                tree=source.name,
                containers=len(result.exhausted),
                threshold=self.config.bottom_up_threshold,
            )
            warnings.warn(
                f"{len(result.exhausted)} container(s) in {source.name or 'tree'!r} had no "
                f"candidate reaching similarity {self.config.bottom_up_threshold}",
                ThresholdExhaustionWarning,
                stacklevel=2,
            )

        logger.debug(
            "bottom_up_complete",
            tree=source.name,
            matched_containers=result.matched_containers,
            recovered=result.recovered,
            mapped=len(mappings),
        )
        return result

    def _size_ok(self, src_size: int, dst_size: int) -> bool:
        cap = self.config.size_ratio_cap
        if cap is None:
            return True
        return max(src_size, dst_size) <= cap * min(src_size, dst_size)

    def _candidates(
        self,
        source: Tree,
        src: int,
        destination: Tree,
        mappings: MappingStore,
    ) -> list[int]:
        """Unmatched same-type destination ancestors of mapped descendants."""
        node_type = source[src].type
        src_size = source.size(src)
        seen: set[int] = set()
        candidates: list[int] = []
        for node_id in source.descendants(src):
            partner = mappings.get_destination(node_id)
            if partner is None:
                continue
            ancestor = destination.parent(partner)
            # Once an ancestor is seen, everything above it was seen too
            while ancestor is not None and ancestor not in seen:
                seen.add(ancestor)
                if (
                    not mappings.has_destination(ancestor)
                    and destination[ancestor].type == node_type
                    and self._size_ok(src_size, destination.size(ancestor))
                ):
                    candidates.append(ancestor)
                ancestor = destination.parent(ancestor)
        return candidates

    def _select(
        self,
        source: Tree,
        src: int,
        destination: Tree,
        candidates: list[int],
        mappings: MappingStore,
    ) -> Optional[int]:
        """Best candidate by Dice, then matched-descendant count, then lowest id."""
        src_descendants = source.size(src) - 1
        best: Optional[int] = None
        best_key: Optional[tuple[float, int, int]] = None
        for dst in candidates:
            common = common_descendants(source, src, destination, dst, mappings)
            denominator = src_descendants + destination.size(dst) - 1
            score = 2.0 * common / denominator if denominator else 0.0
            key = (score, common, -dst)
            if best_key is None or key > best_key:
                best = dst
                best_key = key
        if best_key is None or best_key[0] < self.config.bottom_up_threshold:
            return None
        return best

    def _recover(
        self,
        source: Tree,
        src: int,
        destination: Tree,
        dst: int,
        mappings: MappingStore,
    ) -> int:
        """Map the unmatched children of a new pair, then theirs, and so on."""
        added = 0
        work = [(src, dst)]
        while work:
            a, b = work.pop()
            src_children = [c for c in source.children(a) if not mappings.has_source(c)]
            dst_children = [
                c for c in destination.children(b) if not mappings.has_destination(c)
            ]
            if not src_children or not dst_children:
                continue

            # Identical subtrees pair up regardless of order
            identical: dict[str, deque[int]] = defaultdict(deque)
            for child in dst_children:
                if _subtree_free(destination, child, mappings.has_destination):
                    identical[destination.content_hash(child)].append(child)
            used: set[int] = set()
            remaining_src: list[int] = []
            for child in src_children:
                bucket = identical.get(source.content_hash(child))
                if bucket and _subtree_free(source, child, mappings.has_source):
                    partner = bucket.popleft()
                    mappings.add_all(zip(source.preorder(child), destination.preorder(partner)))
                    used.add(partner)
                    added += source.size(child)
                else:
                    remaining_src.append(child)
            remaining_dst = [c for c in dst_children if c not in used]

            for x, y in self._align(source, remaining_src, destination, remaining_dst):
                mappings.add(x, y)
                added += 1
                work.append((x, y))
        return added

    def _align(
        self,
        source: Tree,
        xs: list[int],
        destination: Tree,
        ys: list[int],
    ) -> list[tuple[int, int]]:
        """Order-preserving alignment maximising summed node similarity."""
        n, m = len(xs), len(ys)
        if not n or not m:
            return []
        if n * m > self.config.max_alignment_cells:
            return _greedy_align(source, xs, destination, ys)

        score = [[0.0] * (m + 1) for _ in range(n + 1)]
        for i in range(1, n + 1):
            row = score[i]
            previous = score[i - 1]
            for j in range(1, m + 1):
                best = previous[j]
                if row[j - 1] > best:
                    best = row[j - 1]
                weight = node_similarity(source, xs[i - 1], destination, ys[j - 1])
                if weight > 0.0 and previous[j - 1] + weight > best:
                    best = previous[j - 1] + weight
                row[j] = best

        pairs: list[tuple[int, int]] = []
        i, j = n, m
        while i > 0 and j > 0:
            if score[i][j] == score[i - 1][j]:
                i -= 1
            elif score[i][j] == score[i][j - 1]:
                j -= 1
            else:
                pairs.append((xs[i - 1], ys[j - 1]))
                i -= 1
                j -= 1
        pairs.reverse()
        return pairs


def _subtree_free(tree: Tree, node_id: int, is_mapped: Callable[[int], bool]) -> bool:
    return not any(is_mapped(n) for n in tree.preorder(node_id))


def _greedy_align(
    source: Tree,
    xs: list[int],
    destination: Tree,
    ys: list[int],
) -> list[tuple[int, int]]:
    """In-order pairing of each source child with the next same-type destination child."""
    pairs: list[tuple[int, int]] = []
    start = 0
    for x in xs:
        node_type = source[x].type
        for j in range(start, len(ys)):
            if destination[ys[j]].type == node_type:
                pairs.append((x, ys[j]))
                start = j + 1
                break
    return pairs
