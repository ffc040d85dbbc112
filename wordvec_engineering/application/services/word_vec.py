from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from loguru import logger
import numpy as np

from wordvec_engineering.application.services.vec_math import VectorLike


@dataclass(frozen=True, eq=False)
class WordVec:
    """A word and its vector. The vector is read-only."""
    word: str
    vector: np.ndarray

    @classmethod
    def create(cls, word: str, values: VectorLike) -> "WordVec":
        vec = np.array(values, dtype=np.float64).reshape(-1)
        vec.setflags(write=False)
        return cls(word, vec)

    def as_dict(self) -> dict:
        return {"word": self.word, "vector": self.vector.tolist()}


def retained_count(total: int, fraction: float) -> int:
    """Number of leading entries kept for a retention fraction (rounded, capped at 1.0)."""
    fraction = min(float(fraction), 1.0)
    if total <= 0 or fraction <= 0:
        return 0
    return int(total * fraction + 0.5)


def prepare_entries(
    pairs: Iterable[Tuple[str, VectorLike]],
    case_sensitive: bool = True,
    fraction: float = 1.0,
    dimension: Optional[int] = None,
) -> Tuple[int, List[WordVec]]:
    """
    Turn (word, vector) pairs into WordVecs of a single dimensionality.

    Only the leading `fraction` of `pairs` is kept. Without an explicit
    `dimension` the first pair decides it; pairs that don't match are
    dropped with a warning. Returns (dimension, entries); an unusable
    source gives (0, []).
    """
    pairs = list(pairs)
    keep = retained_count(len(pairs), fraction)
    if keep < len(pairs):
        logger.debug("Keeping {} of {} word vector(s) (fraction={})", keep, len(pairs), fraction)

    entries: List[WordVec] = []
    dim = dimension if dimension and dimension > 0 else None
    for word, values in pairs[:keep]:
        entry = WordVec.create(word if case_sensitive else word.lower(), values)
        if dim is None:
            dim = entry.vector.size
        if entry.vector.size != dim or dim < 1:
            logger.warning("'{}' has {} value(s), expected {}; skipped", word, entry.vector.size, dim)
            continue
        entries.append(entry)

    if not entries:
        return 0, []
    return int(dim), entries
