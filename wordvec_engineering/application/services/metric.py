from __future__ import annotations
from enum import Enum
from typing import Union
import re

# "eucldist", "euclidean distance", "Eucl_Dist", "euclidean-dist", ...
_EUCLIDEAN_RE = re.compile(r"eucl(idean)?[ _-]?dist(ance)?")


class Metric(str, Enum):
    COSINE = "cosine_similarity"
    EUCLIDEAN = "euclidean_distance"


def resolve_metric(mode: Union[str, Metric, None]) -> Metric:
    """Anything spelled like "euclidean distance" selects EUCLIDEAN; the rest is COSINE."""
    if isinstance(mode, Metric):
        return mode
    if mode and _EUCLIDEAN_RE.fullmatch(mode.strip().lower()):
        return Metric.EUCLIDEAN
    return Metric.COSINE
