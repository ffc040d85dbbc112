from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Tuple

from loguru import logger
import numpy as np


@dataclass
class VectorSource:
    """Parsed word vectors, in file order, all of one dimensionality."""
    dimension: int = 0
    pairs: List[Tuple[str, np.ndarray]] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return self.dimension >= 1 and len(self.pairs) >= 1

    def __iter__(self) -> Iterator[Tuple[str, np.ndarray]]:
        return iter(self.pairs)

    def __len__(self) -> int:
        return len(self.pairs)


def load_word_vectors(path: str | Path) -> VectorSource:
    """
    Read a word vector file: one `word v1 v2 ... vn` line per vector,
    whitespace separated.

    The dimensionality is taken from the first line; later lines with a
    different number of values (or values that aren't numbers) are skipped.
    A missing, unreadable or empty file gives an empty (invalid) source
    instead of an exception.
    """
    path = Path(path)
    logger.info("Loading word vectors from {}", path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.error("Opening '{}' failed ({}). Make sure the file exists and the path is correct.", path, e)
        return VectorSource()

    source = VectorSource()
    skipped = 0
    for line_no, line in enumerate(text.splitlines(), start=1):
        tokens = line.split()
        if not tokens:
            continue
        if source.dimension == 0:
            source.dimension = len(tokens) - 1
            logger.debug("Vector dimension is {} (from line {})", source.dimension, line_no)
            if source.dimension < 1:
                logger.error("First line of '{}' holds no vector values", path)
                return VectorSource()

        if len(tokens) - 1 != source.dimension:
            logger.warning("Line {}: expected {} values, got {}; skipped", line_no, source.dimension, len(tokens) - 1)
            skipped += 1
            continue
        try:
            vec = np.array(tokens[1:], dtype=np.float64)
        except ValueError:
            logger.warning("Line {}: non-numeric vector values; skipped", line_no)
            skipped += 1
            continue
        source.pairs.append((tokens[0], vec))

    if not source.valid:
        logger.error("No usable word vectors found in '{}'", path)
        return VectorSource()

    logger.info("Loaded {} word vector(s) of dimension {} ({} line(s) skipped)", len(source), source.dimension, skipped)
    return source
