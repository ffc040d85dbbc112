from __future__ import annotations
from bisect import bisect_left
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple, Union
import math
import re

from loguru import logger
import numpy as np

from wordvec_engineering.application.settings import Settings
from wordvec_engineering.application.services.candidates import BoundedCandidates
from wordvec_engineering.application.services.loader import VectorSource, load_word_vectors
from wordvec_engineering.application.services.metric import Metric, resolve_metric
from wordvec_engineering.application.services.outcome import Outcome
from wordvec_engineering.application.services.vec_math import VectorLike
from wordvec_engineering.application.services.word_vec import WordVec, prepare_entries

WordFilter = Callable[[str], bool]
MetricMode = Union[str, Metric, None]


@dataclass(frozen=True)
class WordPair:
    first: str
    second: str
    score: float

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class TableInfo:
    dimension: int
    entries: int
    pairs: int
    case_sensitive: bool

    def as_dict(self) -> dict:
        return asdict(self)


class VecSimTable:
    """
    Word vectors kept in one array sorted by word, plus the cosine
    similarity and Euclidean distance of every unordered pair.

    Scores are stored triangularly: row i holds the pairs (i, i+1) ...
    (i, N-1), rows laid out one after another in flat arrays of
    N*(N-1)/2 cells. Meant for small, curated subsets; building costs
    O(N^2) time and memory, a pair lookup is O(log N).

    Duplicate words count towards `len()` and `info()`, but only the
    first loaded copy gets a row, so a word never shows up twice in a
    pair query.
    """

    def __init__(
        self,
        pairs: Iterable[Tuple[str, VectorLike]],
        case_sensitive: bool = True,
        fraction: float = 0.1,
        word_filter: Optional[WordFilter] = None,
    ):
        self.case_sensitive = case_sensitive
        dimension = pairs.dimension if isinstance(pairs, VectorSource) else None
        if word_filter is not None:
            pairs = [(word, vec) for word, vec in pairs if word_filter(word)]
            fraction = 1.0
        self.dimension, entries = prepare_entries(pairs, case_sensitive, fraction, dimension)
        if not entries:
            logger.error("VecSimTable got no usable word vectors; the table is empty")

        # stable sort keeps duplicates in load order; only the first copy is scored
        self._loaded = len(entries)
        self._entries: List[WordVec] = []
        for entry in sorted(entries, key=lambda e: e.word):
            if self._entries and self._entries[-1].word == entry.word:
                continue
            self._entries.append(entry)
        self._words: List[str] = [e.word for e in self._entries]
        self._compute_similarities()

        logger.info(
            "VecSimTable ready: {} vector(s), dim={}, {} pair(s), case {}",
            self._loaded,
            self.dimension,
            self.pair_count,
            "sensitive" if case_sensitive else "insensitive",
        )

    # ---------------- construction helpers ----------------

    @classmethod
    def with_pattern(cls, pairs: Iterable[Tuple[str, VectorLike]], pattern: Union[str, re.Pattern[str]]) -> "VecSimTable":
        """Keep only the words fully matching `pattern` (case sensitive)."""
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        return cls(pairs, case_sensitive=True, word_filter=lambda word: regex.fullmatch(word) is not None)

    @classmethod
    def from_file(
        cls,
        path: Union[str, Path],
        case_sensitive: bool = True,
        fraction: float = 0.1,
        pattern: Union[str, re.Pattern[str], None] = None,
    ) -> "VecSimTable":
        source = load_word_vectors(path)
        if pattern is not None:
            return cls.with_pattern(source, pattern)
        return cls(source, case_sensitive=case_sensitive, fraction=fraction)

    @classmethod
    def from_settings(cls, settings: Settings, source: Optional[VectorSource] = None) -> "VecSimTable":
        if source is None:
            source = load_word_vectors(settings.vector_file) if settings.vector_file else VectorSource()
        if settings.sim_table_pattern:
            return cls.with_pattern(source, settings.sim_table_pattern)
        return cls(source, case_sensitive=settings.case_sensitive, fraction=settings.sim_table_fraction)

    def _compute_similarities(self) -> None:
        n = len(self._entries)
        logger.debug("Calculating similarities for {} pair(s)", n * (n - 1) // 2)
        cos_rows: List[np.ndarray] = []
        eucl_rows: List[np.ndarray] = []
        if n:
            matrix = np.vstack([e.vector for e in self._entries])
            norms = np.linalg.norm(matrix, axis=1)
            for i in range(n - 1):
                rest = matrix[i + 1:]
                denom = norms[i + 1:] * norms[i]
                dots = rest @ matrix[i]
                # zero-length vectors get a cosine similarity of 0
                cos_rows.append(np.divide(dots, denom, out=np.zeros_like(dots), where=denom != 0))
                eucl_rows.append(np.linalg.norm(rest - matrix[i], axis=1))
        self._cosine = np.concatenate(cos_rows) if cos_rows else np.empty(0)
        self._euclidean = np.concatenate(eucl_rows) if eucl_rows else np.empty(0)

    # ---------------- triangular indexing ----------------

    @property
    def pair_count(self) -> int:
        n = len(self._entries)
        return n * (n - 1) // 2

    def pair_offset(self, i: int, j: int) -> int:
        """Flat triangular offset of the entry pair (i, j), i != j."""
        if i > j:
            i, j = j, i
        n = len(self._entries)
        return i * (2 * n - i - 1) // 2 + (j - i - 1)

    def offset_pair(self, offset: int) -> Tuple[int, int]:
        """Inverse of `pair_offset`: the (i, j) entry indices, i < j."""
        n = len(self._entries)
        i = n - 2 - (math.isqrt(4 * n * (n - 1) - 8 * offset - 7) - 1) // 2
        j = offset + i + 1 - n * (n - 1) // 2 + (n - i) * (n - i - 1) // 2
        return i, j

    def _scores(self, metric: Metric) -> np.ndarray:
        return self._euclidean if metric is Metric.EUCLIDEAN else self._cosine

    def _pair_at(self, offset: int, score: float) -> WordPair:
        i, j = self.offset_pair(offset)
        return WordPair(self._entries[i].word, self._entries[j].word, float(score))

    # ---------------- lookup ----------------

    def __len__(self) -> int:
        return self._loaded

    def __contains__(self, word: object) -> bool:
        return isinstance(word, str) and self._index(word) >= 0

    def _key(self, word: str) -> str:
        return word if self.case_sensitive else word.lower()

    def _index(self, word: str) -> int:
        """Position of `word` in the sorted array, -1 if it isn't stored."""
        key = self._key(word)
        pos = bisect_left(self._words, key)
        if pos < len(self._words) and self._words[pos] == key:
            return pos
        return -1

    def _indices(self, word0: str, word1: str, caller: str) -> Outcome[Tuple[int, int]]:
        for word in (word0, word1):
            if self._index(word) < 0:
                logger.warning("{}: '{}' couldn't be found in the VecSimTable", caller, word)
                return Outcome.not_found(word)
        return Outcome.found((self._index(word0), self._index(word1)))

    def get_vector(self, word: str) -> Outcome[np.ndarray]:
        idx = self._index(word)
        if idx < 0:
            logger.warning("'{}' couldn't be found in the VecSimTable", word)
            return Outcome.not_found(word)
        return Outcome.found(self._entries[idx].vector)

    def similarity(self, word0: str, word1: str, mode: MetricMode = "") -> Outcome[float]:
        """Precomputed score of a word pair under the selected metric."""
        metric = resolve_metric(mode)
        found = self._indices(word0, word1, "similarity")
        if not found.ok:
            return found
        i, j = found.value
        if i == j:
            return Outcome.found(0.0 if metric is Metric.EUCLIDEAN else 1.0)
        return Outcome.found(float(self._scores(metric)[self.pair_offset(i, j)]))

    def cosine(self, word0: str, word1: str) -> Outcome[float]:
        return self.similarity(word0, word1, Metric.COSINE)

    def euclidean(self, word0: str, word1: str) -> Outcome[float]:
        return self.similarity(word0, word1, Metric.EUCLIDEAN)

    # ---------------- pair queries ----------------

    def _anchor(self, word0: str, word1: str, metric: Metric, caller: str) -> Outcome[Tuple[int, float]]:
        """(offset, score) of the anchor pair; self pairs are rejected."""
        if self._key(word0) == self._key(word1):
            logger.warning("{}: no real word pair selected (both words were '{}')", caller, word0)
            return Outcome.degenerate(f"both words were '{word0}'")
        found = self._indices(word0, word1, caller)
        if not found.ok:
            return found
        offset = self.pair_offset(*found.value)
        return Outcome.found((offset, float(self._scores(metric)[offset])))

    def _in_range(self, metric: Metric, target: float, radius: float, skip: int) -> List[WordPair]:
        scores = self._scores(metric)
        hits = np.nonzero((scores >= target - radius) & (scores <= target + radius))[0]
        return [self._pair_at(offset, scores[offset]) for offset in hits.tolist() if offset != skip]

    def _top_k(self, metric: Metric, target: float, k: int, skip: int) -> List[WordPair]:
        scores = self._scores(metric)
        candidates: BoundedCandidates[int] = BoundedCandidates(k)
        for offset, score in enumerate(scores.tolist()):
            if offset == skip:
                continue
            candidates.try_insert(abs(target - score), offset)
        return [self._pair_at(offset, scores[offset]) for _, offset in candidates.best_first()]

    def similar_pairs(
        self,
        word0: Union[str, Tuple[str, str]],
        word1: Optional[str] = None,
        mode: MetricMode = "",
        radius: float = 0.1,
    ) -> Outcome[List[WordPair]]:
        """
        Every pair whose score lies within `radius` of the anchor pair's
        score (bounds included), the anchor pair itself left out.
        Accepts `similar_pairs("a", "b", ...)` or `similar_pairs(("a", "b"), mode=...)`.
        """
        word0, word1 = _split_pair(word0, word1)
        metric = resolve_metric(mode)
        anchor = self._anchor(word0, word1, metric, "similar_pairs")
        if not anchor.ok:
            return anchor
        offset, score = anchor.value
        return Outcome.found(self._in_range(metric, score, radius, skip=offset))

    def similar_pairs_near(self, value: float, mode: MetricMode = "", radius: float = 0.1) -> Outcome[List[WordPair]]:
        """Every pair whose score lies within `radius` of `value`."""
        return Outcome.found(self._in_range(resolve_metric(mode), float(value), radius, skip=-1))

    def most_similar_pairs(
        self,
        word0: Union[str, Tuple[str, str]],
        word1: Optional[str] = None,
        mode: MetricMode = "",
        k: int = 3,
    ) -> Outcome[List[WordPair]]:
        """The k pairs whose scores are closest to the anchor pair's score, best first."""
        word0, word1 = _split_pair(word0, word1)
        metric = resolve_metric(mode)
        anchor = self._anchor(word0, word1, metric, "most_similar_pairs")
        if not anchor.ok:
            return anchor
        offset, score = anchor.value
        return Outcome.found(self._top_k(metric, score, k, skip=offset))

    def most_similar_pairs_near(self, value: float, mode: MetricMode = "", k: int = 3) -> Outcome[List[WordPair]]:
        """The k pairs whose scores are closest to `value`, best first."""
        return Outcome.found(self._top_k(resolve_metric(mode), float(value), k, skip=-1))

    # ---------------- introspection ----------------

    def info(self) -> TableInfo:
        return TableInfo(
            dimension=self.dimension,
            entries=self._loaded,
            pairs=self.pair_count,
            case_sensitive=self.case_sensitive,
        )


def _split_pair(word0: Union[str, Tuple[str, str]], word1: Optional[str]) -> Tuple[str, str]:
    if isinstance(word0, tuple):
        return word0[0], word0[1]
    return word0, word1 if word1 is not None else ""
