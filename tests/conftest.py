from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest


@pytest.fixture
def pets() -> list[tuple[str, list[float]]]:
    return [("cat", [1.0, 0.0]), ("dog", [0.9, 0.1]), ("car", [0.0, 1.0])]


@pytest.fixture
def random_pairs() -> list[tuple[str, np.ndarray]]:
    rng = np.random.default_rng(7)
    return [(f"w{i:03d}", rng.normal(size=4)) for i in range(60)]


@pytest.fixture
def vector_file(tmp_path: Path) -> Path:
    path = tmp_path / "word_vecs.txt"
    path.write_text(
        "Mann 0.5 0.1 0.2\n"
        "Frau 0.4 0.2 0.2\n"
        "Haus -0.3 0.8 0.1\n"
        "und 0.0 0.0 0.9\n"
        "grauenhaft 0.7 -0.2 0.1\n"
        "grauenhafte 0.68 -0.21 0.12\n"
        "schreckhaft 0.3 -0.5 0.4\n"
        "fabelhaft -0.6 0.1 0.3\n",
        encoding="utf-8",
    )
    return path
