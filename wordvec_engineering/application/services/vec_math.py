from __future__ import annotations
from typing import Sequence, Union
import math

import numpy as np

from wordvec_engineering.application.services.outcome import Outcome

# Anything numpy can turn into a 1D float array: list, tuple, np.ndarray
VectorLike = Union[Sequence[float], np.ndarray]


def as_vector(values: VectorLike) -> np.ndarray:
    """Copy `values` into a flat float64 array."""
    return np.asarray(values, dtype=np.float64).reshape(-1).copy()


def norm(vec: VectorLike) -> float:
    # sqrt of the sum of squares
    return float(np.linalg.norm(np.asarray(vec, dtype=np.float64)))


def cosine_similarity(a: VectorLike, b: VectorLike) -> float:
    """
    dot(a, b) / (||a|| * ||b||).

    Returns nan when the lengths differ and 0.0 when either vector has
    zero length (norm).
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        return math.nan
    denom = np.linalg.norm(a) * np.linalg.norm(b)
    if denom == 0.0:
        return 0.0
    return float(np.dot(a, b) / denom)


def euclidean_distance(a: VectorLike, b: VectorLike) -> float:
    """sqrt(sum((a_i - b_i)^2)); nan when the lengths differ."""
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        return math.nan
    return float(np.linalg.norm(a - b))


def add(a: VectorLike, b: VectorLike) -> Outcome[np.ndarray]:
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        return Outcome.dimension_mismatch(a.size, b.size)
    return Outcome.found(a + b)


def subtract(minuend: VectorLike, subtrahend: VectorLike) -> Outcome[np.ndarray]:
    minuend = np.asarray(minuend, dtype=np.float64)
    subtrahend = np.asarray(subtrahend, dtype=np.float64)
    if minuend.shape != subtrahend.shape:
        return Outcome.dimension_mismatch(minuend.size, subtrahend.size)
    return Outcome.found(minuend - subtrahend)


def add_all(vecs: Sequence[VectorLike]) -> Outcome[np.ndarray]:
    """Element-wise sum of every vector in `vecs` (at least one)."""
    if len(vecs) == 0:
        return Outcome.not_found("vectors to add")
    total = as_vector(vecs[0])
    for vec in vecs[1:]:
        vec = np.asarray(vec, dtype=np.float64)
        if vec.shape != total.shape:
            return Outcome.dimension_mismatch(total.size, vec.size)
        total += vec
    return Outcome.found(total)


def average(*vecs: VectorLike) -> Outcome[np.ndarray]:
    """
    Element-wise mean.

    Accepts either several vectors (`average(a, b)`) or a single list of
    vectors (`average([a, b, c])`).
    """
    if len(vecs) == 1 and _is_vector_list(vecs[0]):
        vecs = tuple(vecs[0])  # type: ignore[assignment]
    summed = add_all(vecs)
    if not summed.ok:
        return summed
    return Outcome.found(summed.value / len(vecs))


def _is_vector_list(obj) -> bool:
    if isinstance(obj, np.ndarray):
        return obj.ndim == 2
    # an empty list counts as "no vectors", not as one empty vector
    return len(obj) == 0 or not np.isscalar(obj[0])
