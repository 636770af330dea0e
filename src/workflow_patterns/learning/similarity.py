"""
Structural similarity between workflow signatures and learned patterns.

Two complementary measures are combined:
  - sequence similarity: LCS of the node type sequences over the longer length
    (sensitive to ordering, blind to branching)
  - connection similarity: Jaccard index of the (from type, to type) pairs
    (sensitive to branching topology, blind to ordering)
"""

from typing import AbstractSet, Hashable, Sequence, Union

from ..core.types import WorkflowPattern, WorkflowSignature

Signature = Union[WorkflowSignature, WorkflowPattern]


def lcs_length(a: Sequence[Hashable], b: Sequence[Hashable]) -> int:
    """Length of the longest common subsequence (two-row DP)."""
    if len(a) < len(b):
        a, b = b, a
    previous = [0] * (len(b) + 1)
    for item in a:
        current = [0]
        for j, other in enumerate(b, start=1):
            if item == other:
                current.append(previous[j - 1] + 1)
            else:
                current.append(max(previous[j], current[j - 1]))
        previous = current
    return previous[-1]


def sequence_similarity(a: Sequence[Hashable], b: Sequence[Hashable]) -> float:
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return lcs_length(a, b) / longest


def jaccard_similarity(a: AbstractSet[Hashable], b: AbstractSet[Hashable]) -> float:
    union = a | b
    if not union:
        return 1.0
    return len(a & b) / len(union)


def pattern_similarity(
    signature: Signature,
    other: Signature,
    sequence_weight: float = 0.5,
    connection_weight: float = 0.5,
) -> float:
    """
    Weighted similarity in [0, 1] between two signatures.

    Args:
        signature: Signature of the analyzed workflow
        other: Learned pattern (or another signature)
        sequence_weight: Weight of the sequence similarity
        connection_weight: Weight of the connection similarity

    Returns:
        Similarity, 1.0 for identical structure
    """
    total_weight = sequence_weight + connection_weight
    if total_weight <= 0:
        raise ValueError("similarity weights must have a positive sum")
    seq = sequence_similarity(signature.node_sequence, other.node_sequence)
    conn = jaccard_similarity(signature.connection_pairs(), other.connection_pairs())
    score = (sequence_weight * seq + connection_weight * conn) / total_weight
    return min(1.0, max(0.0, score))
