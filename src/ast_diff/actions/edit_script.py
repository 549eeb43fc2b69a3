"""Derive an ordered edit script from a finalized mapping.

Destination nodes are visited parents-first while a working copy of the
source tree is edited to match: unmatched nodes are inserted, matched
nodes are updated when their text differs and moved when their parent
differs, and children whose relative order changed are moved into place.
Unmatched source nodes are deleted last, children before parents. Applying
the resulting actions in order to the source tree rebuilds the destination.
"""

from bisect import bisect_left
from typing import Optional

import structlog

from ast_diff.actions.working_tree import WorkingTree
from ast_diff.mapping.store import MappingStore
from ast_diff.models.diff_models import (
    VIRTUAL_ROOT_ID,
    DeleteAction,
    EditAction,
    InsertAction,
    MoveAction,
    UpdateAction,
)
from ast_diff.tree.tree import Tree

logger = structlog.get_logger()


class EditScriptGenerator:
    """Single-use generator bound to one mapping."""

    def __init__(self, source: Tree, destination: Tree, mappings: MappingStore):
        self.source = source
        self.destination = destination
        self.mappings = mappings

    def generate(self) -> list[EditAction]:
        work = WorkingTree(self.source)
        # Working-node <-> destination-node correspondence, grown by inserts
        self._to_dst: dict[int, int] = {VIRTUAL_ROOT_ID: VIRTUAL_ROOT_ID}
        self._to_work: dict[int, int] = {VIRTUAL_ROOT_ID: VIRTUAL_ROOT_ID}
        for src, dst in self.mappings:
            self._to_dst[src] = dst
            self._to_work[dst] = src
        self._work = work
        self._src_in_order: set[int] = set()
        self._dst_in_order: set[int] = set()
        self._actions: list[EditAction] = []

        for x in self.destination.preorder():
            node = self.destination[x]
            y = VIRTUAL_ROOT_ID if node.parent is None else node.parent
            z = self._to_work[y]

            w = self._to_work.get(x)
            if w is None:
                k = self._find_pos(x)
                w = work.create(node.type, node.text)
                work.insert(w, z, k)
                self._to_dst[w] = x
                self._to_work[x] = w
                self._actions.append(
                    InsertAction(
                        node_id=x,
                        node_type=node.type,
                        text=node.text,
                        parent_id=y,
                        position=k,
                    )
                )
            else:
                old_text = work.texts[w]
                if old_text != node.text:
                    work.texts[w] = node.text
                    self._actions.append(
                        UpdateAction(node_id=w, dest_id=x, old_text=old_text, new_text=node.text)
                    )
                if work.parent(w) != z:
                    work.detach(w)
                    k = self._find_pos(x)
                    work.insert(w, z, k)
                    self._actions.append(MoveAction(node_id=w, dest_id=x, parent_id=y, position=k))

            self._src_in_order.add(w)
            self._dst_in_order.add(x)
            self._align_children(w, x)

        for w in work.postorder():
            if w not in self._to_dst:
                work.remove(w)
                self._actions.append(DeleteAction(node_id=w))

        logger.debug(
            "edit_script_complete",
            tree=self.source.name,
            actions=len(self._actions),
        )
        return self._actions

    def _dst_siblings(self, x: int) -> tuple[int, ...]:
        parent = self.destination.parent(x)
        if parent is None:
            return (x,)
        return self.destination.children(parent)

    def _find_pos(self, x: int) -> int:
        """Working-tree index right after the rightmost in-order left sibling of ``x``."""
        siblings = self._dst_siblings(x)
        for sibling in siblings:
            if sibling in self._dst_in_order:
                if sibling == x:
                    return 0
                break

        rightmost: Optional[int] = None
        for sibling in siblings:
            if sibling == x:
                break
            if sibling in self._dst_in_order:
                rightmost = sibling
        if rightmost is None:
            return 0
        return self._work.position(self._to_work[rightmost]) + 1

    def _align_children(self, w: int, x: int) -> None:
        work = self._work
        src_children = list(work.children[w])
        dst_children = self.destination.children(x)
        self._src_in_order.difference_update(src_children)
        self._dst_in_order.difference_update(dst_children)

        src_set = set(src_children)
        dst_set = set(dst_children)
        s1 = [c for c in src_children if self._to_dst.get(c) in dst_set]
        s2 = [c for c in dst_children if self._to_work.get(c) in src_set]
        if not s1:
            return

        in_order = _lcs(s1, s2, self._to_dst)
        for a, b in in_order:
            self._src_in_order.add(a)
            self._dst_in_order.add(b)

        stable = set(in_order)
        for b in s2:
            a = self._to_work[b]
            if (a, b) in stable:
                continue
            work.detach(a)
            k = self._find_pos(b)
            work.insert(a, w, k)
            self._actions.append(MoveAction(node_id=a, dest_id=b, parent_id=x, position=k))
            self._src_in_order.add(a)
            self._dst_in_order.add(b)


def _lcs(s1: list[int], s2: list[int], to_dst: dict[int, int]) -> list[tuple[int, int]]:
    """Longest common subsequence of two child lists under the mapping.

    The mapping is one-to-one, so ``s2`` is a permutation of the partners of
    ``s1`` and the subsequence is the longest increasing run of their
    destination positions (patience sorting, O(k log k)).
    """
    partners = [to_dst[a] for a in s1]
    if partners == s2:
        return list(zip(s1, s2))

    position = {b: j for j, b in enumerate(s2)}
    tails: list[int] = []  # smallest destination position ending a run of each length
    tail_at: list[int] = []  # index into s1 of that run's last element
    previous = [-1] * len(s1)
    for i, b in enumerate(partners):
        rank = position[b]
        k = bisect_left(tails, rank)
        if k == len(tails):
            tails.append(rank)
            tail_at.append(i)
        else:
            tails[k] = rank
            tail_at[k] = i
        previous[i] = tail_at[k - 1] if k else -1

    pairs: list[tuple[int, int]] = []
    i = tail_at[-1]
    while i != -1:
        pairs.append((s1[i], partners[i]))
        i = previous[i]
    pairs.reverse()
    return pairs


def generate_edit_script(
    source: Tree, destination: Tree, mappings: MappingStore
) -> list[EditAction]:
    """Ordered insert/delete/update/move actions turning ``source`` into ``destination``."""
    return EditScriptGenerator(source, destination, mappings).generate()
