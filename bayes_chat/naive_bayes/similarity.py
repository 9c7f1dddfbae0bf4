"""Set and vector similarity primitives shared by scoring, synthesis and related documents."""

import math
from typing import Iterable, Mapping


def clamp(value: float, low: float, high: float) -> float:
    """Clamp a value to [low, high]."""
    if value < low:
        return low
    if value > high:
        return high
    return value


def jaccard_similarity(tokens_a: Iterable[str], tokens_b: Iterable[str]) -> float:
    """
    Jaccard similarity of two token collections, treated as sets.

    |A ∩ B| / |A ∪ B|; 1.0 when both are empty, 0.0 when exactly one is.

    Examples:
        >>> jaccard_similarity(["cat", "sleep"], ["cat", "pet"])
        0.3333333333333333
    """
    set_a = set(tokens_a)
    set_b = set(tokens_b)

    if not set_a and not set_b:
        return 1.0
    if not set_a or not set_b:
        return 0.0

    return len(set_a & set_b) / len(set_a | set_b)


def cosine_similarity(freq_a: Mapping[str, float], freq_b: Mapping[str, float]) -> float:
    """
    Cosine similarity between two sparse frequency vectors.

    Returns 0.0 if either vector has zero magnitude.

    Examples:
        >>> cosine_similarity({"cat": 3}, {"cat": 1})
        1.0
        >>> cosine_similarity({"cat": 1}, {"dog": 1})
        0.0
    """
    dot_product = 0.0
    for word in freq_a.keys() & freq_b.keys():
        dot_product += freq_a[word] * freq_b[word]

    norm_a = math.sqrt(sum(v * v for v in freq_a.values()))
    norm_b = math.sqrt(sum(v * v for v in freq_b.values()))

    if norm_a == 0 or norm_b == 0:
        return 0.0

    # Identical vectors can land a hair above 1.0
    return clamp(dot_product / (norm_a * norm_b), -1.0, 1.0)
