from __future__ import annotations
from itertools import count
from typing import Generic, List, Tuple, TypeVar
import heapq

T = TypeVar("T")


class BoundedCandidates(Generic[T]):
    """
    Keeps the `capacity` best candidates seen in a single scan.

    Every candidate comes with a "badness" (distance from the target, lower
    is better). Once the structure is full, a new candidate only gets in if
    it is strictly better than the current worst one, which it then replaces.
    Internally this is a max-heap on badness, so the worst candidate is
    always the one checked next.

    Ties are broken by insertion order: the earlier candidate ranks first.
    """

    def __init__(self, capacity: int):
        self.capacity = max(0, int(capacity))
        # heap of (-badness, -seq, item); heap[0] is the worst candidate
        self._heap: List[Tuple[float, int, T]] = []
        self._seq = count()

    def __len__(self) -> int:
        return len(self._heap)

    @property
    def full(self) -> bool:
        return len(self._heap) >= self.capacity

    def worst_badness(self) -> float:
        return -self._heap[0][0]

    def try_insert(self, badness: float, item: T) -> bool:
        if self.capacity == 0:
            return False
        entry = (-badness, -next(self._seq), item)
        if not self.full:
            heapq.heappush(self._heap, entry)
            return True
        if badness < self.worst_badness():
            heapq.heapreplace(self._heap, entry)
            return True
        return False

    def best_first(self) -> List[Tuple[float, T]]:
        """(badness, item) pairs, best candidate first."""
        ordered = sorted(self._heap, key=lambda e: (-e[0], -e[1]))
        return [(-neg_badness, item) for neg_badness, _, item in ordered]
