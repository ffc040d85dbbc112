from __future__ import annotations
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from loguru import logger
import numpy as np

from wordvec_engineering.application.settings import Settings
from wordvec_engineering.application.services import vec_math
from wordvec_engineering.application.services.candidates import BoundedCandidates
from wordvec_engineering.application.services.loader import VectorSource, load_word_vectors
from wordvec_engineering.application.services.metric import Metric, resolve_metric
from wordvec_engineering.application.services.outcome import Outcome
from wordvec_engineering.application.services.vec_math import VectorLike
from wordvec_engineering.application.services.word_vec import WordVec, prepare_entries

# A query is a stored word, a WordVec, or a raw vector
Query = Union[str, WordVec, VectorLike]


@dataclass(frozen=True)
class StoreInfo:
    dimension: int
    entries: int
    buckets: int
    load_factor: float
    empty_buckets: int
    empty_bucket_pct: float
    longest_chain: int
    longest_chain_pct: float
    case_sensitive: bool

    def as_dict(self) -> dict:
        return asdict(self)


class VecStore:
    """
    Hash table of word vectors, built once, queried many times.

    Buckets are lists of indices into one entry arena; collisions are
    chained by appending, so a bucket is scanned in insertion order.
    Nearest/farthest searches scan every bucket (no spatial index).

    Duplicate words are all stored, but only the first inserted one is
    visible: `get` returns it and searches skip the later copies.
    """

    # cycled over the characters of a word by the hash function
    PRIMES: Tuple[int, ...] = (179, 181, 191, 193, 197, 199, 211, 223, 227, 229)

    def __init__(
        self,
        pairs: Iterable[Tuple[str, VectorLike]],
        case_sensitive: bool = True,
        fraction: float = 1.0,
        load_factor: int = 20,
    ):
        self.case_sensitive = case_sensitive
        dimension = pairs.dimension if isinstance(pairs, VectorSource) else None
        self.dimension, entries = prepare_entries(pairs, case_sensitive, fraction, dimension)
        if not entries:
            logger.error("VecStore got no usable word vectors; the store is empty")

        self.bucket_count = max(1, len(entries) // max(1, int(load_factor)))
        self._entries: List[WordVec] = []
        self._buckets: List[List[int]] = [[] for _ in range(self.bucket_count)]
        for entry in entries:
            self._buckets[self.bucket_index(entry.word, self.bucket_count)].append(len(self._entries))
            self._entries.append(entry)

        # search order = bucket order, then chain order; later duplicates are shadowed
        seen: set[str] = set()
        visible: List[int] = []
        for bucket in self._buckets:
            for idx in bucket:
                word = self._entries[idx].word
                if word in seen:
                    continue
                seen.add(word)
                visible.append(idx)
        self._visible = visible
        self._visible_words = np.array([self._entries[i].word for i in visible], dtype=object)
        if visible:
            self._matrix = np.vstack([self._entries[i].vector for i in visible])
        else:
            self._matrix = np.empty((0, self.dimension))

        logger.info(
            "VecStore ready: {} vector(s), dim={}, {} bucket(s), case {}",
            len(self._entries),
            self.dimension,
            self.bucket_count,
            "sensitive" if case_sensitive else "insensitive",
        )

    # ---------------- construction helpers ----------------

    @classmethod
    def from_file(
        cls,
        path: Union[str, Path],
        case_sensitive: bool = True,
        fraction: float = 1.0,
        load_factor: int = 20,
    ) -> "VecStore":
        return cls(load_word_vectors(path), case_sensitive=case_sensitive, fraction=fraction, load_factor=load_factor)

    @classmethod
    def from_settings(cls, settings: Settings, source: Optional[VectorSource] = None) -> "VecStore":
        if source is None:
            source = load_word_vectors(settings.vector_file) if settings.vector_file else VectorSource()
        return cls(
            source,
            case_sensitive=settings.case_sensitive,
            fraction=settings.retention_fraction,
            load_factor=settings.bucket_load_factor,
        )

    @classmethod
    def bucket_index(cls, key: str, bucket_count: int) -> int:
        """Order sensitive hash: sum of code point * prime, primes taken cyclically."""
        primes = cls.PRIMES
        h = 0
        for i, ch in enumerate(key):
            h += ord(ch) * primes[i % len(primes)]
        return h % bucket_count

    def _key(self, word: str) -> str:
        return word if self.case_sensitive else word.lower()

    # ---------------- lookup ----------------

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, word: object) -> bool:
        return isinstance(word, str) and self._lookup(word) is not None

    @property
    def valid(self) -> bool:
        return self.dimension >= 1 and len(self._entries) >= 1

    def _lookup(self, word: str) -> Optional[WordVec]:
        key = self._key(word)
        for idx in self._buckets[self.bucket_index(key, self.bucket_count)]:
            if self._entries[idx].word == key:
                return self._entries[idx]
        return None

    def entry(self, word: str) -> Outcome[WordVec]:
        found = self._lookup(word)
        if found is None:
            logger.warning("'{}' couldn't be found in the VecStore", word)
            return Outcome.not_found(word)
        return Outcome.found(found)

    def get(self, word: str) -> Outcome[np.ndarray]:
        """Vector of `word` (first inserted on duplicates) or NOT_FOUND."""
        found = self.entry(word)
        if not found.ok:
            return found
        return Outcome.found(found.value.vector)

    # ---------------- word arithmetic ----------------

    def _vectors_of(self, words: Sequence[str]) -> Outcome[List[np.ndarray]]:
        vecs = []
        for word in words:
            found = self.get(word)
            if not found.ok:
                return found
            vecs.append(found.value)
        return Outcome.found(vecs)

    def similarity(self, word0: str, word1: str, mode: Union[str, Metric, None] = "") -> Outcome[float]:
        """Cosine similarity (default) or Euclidean distance of two stored words."""
        vecs = self._vectors_of([word0, word1])
        if not vecs.ok:
            return vecs
        a, b = vecs.value
        if resolve_metric(mode) is Metric.EUCLIDEAN:
            return Outcome.found(vec_math.euclidean_distance(a, b))
        return Outcome.found(vec_math.cosine_similarity(a, b))

    def add(self, word0: str, word1: str) -> Outcome[np.ndarray]:
        vecs = self._vectors_of([word0, word1])
        if not vecs.ok:
            return vecs
        return vec_math.add(*vecs.value)

    def subtract(self, minuend_word: str, subtrahend_word: str) -> Outcome[np.ndarray]:
        vecs = self._vectors_of([minuend_word, subtrahend_word])
        if not vecs.ok:
            return vecs
        return vec_math.subtract(*vecs.value)

    def average(self, *words: str) -> Outcome[np.ndarray]:
        vecs = self._vectors_of(words)
        if not vecs.ok:
            return vecs
        return vec_math.average(vecs.value)

    # ---------------- search ----------------

    def _resolve(self, query: Query, exclude_word: str) -> Outcome[Tuple[np.ndarray, Tuple[str, ...]]]:
        """Turn a query into (vector, words to exclude)."""
        if not self._visible:
            return Outcome.not_found(query if isinstance(query, str) else None)
        extra = (self._key(exclude_word),) if exclude_word else ()
        if isinstance(query, str):
            found = self.get(query)
            if not found.ok:
                return found
            return Outcome.found((found.value, (self._key(query),) + extra))
        if isinstance(query, WordVec):
            vec, exclude = query.vector, (self._key(query.word),) + extra
        else:
            vec, exclude = vec_math.as_vector(query), extra
        if vec.size != self.dimension:
            logger.warning("Query vector has {} dimension(s), the VecStore {}", vec.size, self.dimension)
            return Outcome.dimension_mismatch(self.dimension, vec.size)
        return Outcome.found((vec, exclude))

    def _distances(self, vec: np.ndarray, exclude: Tuple[str, ...]) -> Tuple[np.ndarray, np.ndarray]:
        """(positions in search order, Euclidean distances), minus the excluded words."""
        keep = np.ones(len(self._visible), dtype=bool)
        for word in exclude:
            keep &= self._visible_words != word
        positions = np.nonzero(keep)[0]
        dists = np.linalg.norm(self._matrix[positions] - vec, axis=1)
        return positions, dists

    def _entry_at(self, position: int) -> WordVec:
        return self._entries[self._visible[int(position)]]

    def _extreme(self, query: Query, exclude_word: str, farthest: bool) -> Outcome[WordVec]:
        resolved = self._resolve(query, exclude_word)
        if not resolved.ok:
            return resolved
        positions, dists = self._distances(*resolved.value)
        if positions.size == 0:
            return Outcome.not_found()
        # argmin/argmax keep the first of equal values, i.e. search order
        best = int(np.argmax(dists)) if farthest else int(np.argmin(dists))
        return Outcome.found(self._entry_at(positions[best]))

    def closest(self, query: Query, exclude_word: str = "") -> Outcome[WordVec]:
        """Entry with the smallest Euclidean distance to `query`; a word query and `exclude_word` are both skipped."""
        return self._extreme(query, exclude_word, farthest=False)

    def farthest(self, query: Query, exclude_word: str = "") -> Outcome[WordVec]:
        """Entry with the largest Euclidean distance to `query`."""
        return self._extreme(query, exclude_word, farthest=True)

    def neighbors(
        self,
        query: Query,
        k: int = 3,
        exclude_word: str = "",
        farthest: bool = False,
    ) -> Outcome[List[Tuple[WordVec, float]]]:
        """
        k-bounded scan returning (entry, distance) pairs.

        Closest first by default; with `farthest=True` the most distant
        entry comes first.
        """
        resolved = self._resolve(query, exclude_word)
        if not resolved.ok:
            return resolved
        positions, dists = self._distances(*resolved.value)
        candidates: BoundedCandidates[int] = BoundedCandidates(k)
        for pos, dist in zip(positions.tolist(), dists.tolist()):
            candidates.try_insert(-dist if farthest else dist, pos)
        return Outcome.found([
            (self._entry_at(pos), -badness if farthest else badness)
            for badness, pos in candidates.best_first()
        ])

    def k_closest(self, query: Query, k: int = 3, exclude_word: str = "") -> Outcome[List[WordVec]]:
        found = self.neighbors(query, k, exclude_word)
        if not found.ok:
            return found
        return Outcome.found([entry for entry, _ in found.value])

    def k_farthest(self, query: Query, k: int = 3, exclude_word: str = "") -> Outcome[List[WordVec]]:
        found = self.neighbors(query, k, exclude_word, farthest=True)
        if not found.ok:
            return found
        return Outcome.found([entry for entry, _ in found.value])

    # ---------------- introspection ----------------

    def info(self) -> StoreInfo:
        chain_lengths = [len(bucket) for bucket in self._buckets]
        entries = len(self._entries)
        empty = sum(1 for n in chain_lengths if n == 0)
        longest = max(chain_lengths) if chain_lengths else 0
        return StoreInfo(
            dimension=self.dimension,
            entries=entries,
            buckets=self.bucket_count,
            load_factor=entries / self.bucket_count,
            empty_buckets=empty,
            empty_bucket_pct=100.0 * empty / self.bucket_count,
            longest_chain=longest,
            longest_chain_pct=100.0 * longest / entries if entries else 0.0,
            case_sensitive=self.case_sensitive,
        )
