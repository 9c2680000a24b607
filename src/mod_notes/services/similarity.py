"""
Similarity Engine

Vector math for semantic ranking: cosine similarity and top-k selection
over an in-memory candidate set.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any, TypeVar

import numpy as np

from mod_notes.core.exceptions import DimensionMismatchError

T = TypeVar("T")


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine of the angle between ``a`` and ``b``, in [-1, 1].

    Inputs need not be normalized. A zero-magnitude vector has no
    direction, so any comparison involving one returns 0.0.

    Raises:
        DimensionMismatchError: If the vectors differ in length.
    """
    if len(a) != len(b):
        raise DimensionMismatchError(len(a), len(b))

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    similarity = float(np.dot(va, vb) / (norm_a * norm_b))
    # Rounding can push a self-comparison a hair past 1.0
    return max(-1.0, min(1.0, similarity))


def _is_vector(value: Any) -> bool:
    return isinstance(value, (Sequence, np.ndarray)) and not isinstance(value, (str, bytes))


def _candidate_vector(candidate: Any) -> Sequence[float] | None:
    """
    Vector of one candidate: ``{"embedding": ...}`` mappings, ``(item, vector)``
    pairs or objects exposing ``.embedding``. None means "not embedded yet".

    Raises:
        TypeError: If the candidate has none of these shapes.
    """
    if isinstance(candidate, Mapping):
        if "embedding" in candidate:
            return candidate["embedding"]
    elif isinstance(candidate, tuple):
        if len(candidate) == 2 and (candidate[1] is None or _is_vector(candidate[1])):
            return candidate[1]
    elif hasattr(candidate, "embedding"):
        return candidate.embedding
    raise TypeError(f"Unsupported similarity candidate: {type(candidate).__name__}")


def rank_by_similarity(
    query: Sequence[float],
    candidates: Iterable[T],
    k: int,
) -> list[tuple[T, float]]:
    """
    Rank ``candidates`` by cosine similarity to ``query``, best first.

    Args:
        query: Query vector.
        candidates: ``(item, vector)`` pairs, mappings with an ``embedding`` key
            or objects with an ``embedding`` attribute. Candidates whose vector is
            None are skipped.
        k: Maximum number of results; all candidates are returned when fewer exist.

    Returns:
        (candidate, score) pairs in descending score order. Ties keep the
        candidates' original order.

    Raises:
        DimensionMismatchError: If a candidate vector's length differs from the query's.
        TypeError: If a candidate has none of the accepted shapes.
    """
    if k <= 0:
        return []

    scored: list[tuple[T, float]] = []
    for candidate in candidates:
        vector = _candidate_vector(candidate)
        if vector is None:
            continue
        scored.append((candidate, cosine_similarity(query, vector)))

    # sorted() is stable, so equal scores preserve input order
    scored = sorted(scored, key=lambda pair: pair[1], reverse=True)
    return scored[:k]
