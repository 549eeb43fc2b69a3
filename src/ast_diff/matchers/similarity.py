"""Pure similarity measures between nodes and subtrees."""

from functools import lru_cache

from ast_diff.mapping.store import MappingStore
from ast_diff.tree.tree import Tree


@lru_cache(maxsize=65536)
def levenshtein(s1: str, s2: str) -> int:
    """Edit distance with unit insert/delete/substitute costs."""
    if s1 == s2:
        return 0
    if len(s1) < len(s2):
        s1, s2 = s2, s1
    if not s2:
        return len(s1)

    previous_row = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        current_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        previous_row = current_row
    return previous_row[-1]


def text_similarity(a: str, b: str) -> float:
    """Normalized Levenshtein similarity in [0, 1].

    Two empty strings are identical (1.0); an empty and a non-empty
    string share nothing (0.0).
    """
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    return 1.0 - levenshtein(a, b) / max(len(a), len(b))


def node_similarity(source: Tree, src: int, destination: Tree, dst: int) -> float:
    """Content similarity of two single nodes.

    Type labels act as a hard gate: different labels score 0.0. Equal
    labels score between 0.5 and 1.0 depending on the text.
    """
    a = source[src]
    b = destination[dst]
    if a.type != b.type:
        return 0.0
    return 0.5 + 0.5 * text_similarity(a.text, b.text)


def isomorphic_similarity(
    source: Tree,
    src: int,
    destination: Tree,
    dst: int,
    threshold: float = 0.0,
) -> float:
    """Mean text similarity of preorder-aligned nodes of two subtrees.

    Intended for subtrees with equal structure hashes. Returns 0.0 when the
    shapes turn out to differ. Once ``threshold`` can no longer be reached
    the scan stops and the partial (too low) score is returned.
    """
    size = source.size(src)
    if size != destination.size(dst):
        return 0.0

    total = 0.0
    remaining = size
    needed = threshold * size
    for a_id, b_id in zip(source.preorder(src), destination.preorder(dst)):
        a = source[a_id]
        b = destination[b_id]
        if a.type != b.type or len(a.children) != len(b.children):
            return 0.0
        total += text_similarity(a.text, b.text)
        remaining -= 1
        if total + remaining < needed:
            return total / size
    return total / size


def common_descendants(
    source: Tree,
    src: int,
    destination: Tree,
    dst: int,
    mappings: MappingStore,
) -> int:
    """Descendants of ``src`` mapped to descendants of ``dst``."""
    common = 0
    for node_id in source.descendants(src):
        partner = mappings.get_destination(node_id)
        if partner is not None and destination.is_descendant(partner, dst):
            common += 1
    return common


def dice(
    source: Tree,
    src: int,
    destination: Tree,
    dst: int,
    mappings: MappingStore,
) -> float:
    """Dice coefficient over the mapped descendants of two containers."""
    denominator = (source.size(src) - 1) + (destination.size(dst) - 1)
    if denominator == 0:
        return 0.0
    return 2.0 * common_descendants(source, src, destination, dst, mappings) / denominator
