from __future__ import annotations

import itertools
import math
from pathlib import Path

import pytest

from wordvec_engineering.application.services import vec_math
from wordvec_engineering.application.services.outcome import Status
from wordvec_engineering.application.services.vec_sim_table import VecSimTable, WordPair


@pytest.fixture
def table(pets) -> VecSimTable:
    return VecSimTable(pets, fraction=1.0)


@pytest.fixture
def random_table(random_pairs) -> VecSimTable:
    return VecSimTable(random_pairs[:20], fraction=1.0)


def _names(pairs: list[WordPair]) -> list[tuple[str, str]]:
    return [(p.first, p.second) for p in pairs]


def test_scenario_scores(table: VecSimTable) -> None:
    assert table.cosine("cat", "dog").unwrap() == pytest.approx(0.9939, abs=1e-3)
    assert table.euclidean("cat", "car").unwrap() == pytest.approx(math.sqrt(2))


def test_self_similarity(table: VecSimTable) -> None:
    for word in ("cat", "dog", "car"):
        assert table.cosine(word, word).unwrap() == 1.0
        assert table.euclidean(word, word).unwrap() == 0.0


def test_symmetry(random_table: VecSimTable, random_pairs) -> None:
    words = [w for w, _ in random_pairs[:20]]
    for a, b in itertools.combinations(words, 2):
        assert random_table.cosine(a, b).unwrap() == random_table.cosine(b, a).unwrap()
        assert random_table.euclidean(a, b).unwrap() == random_table.euclidean(b, a).unwrap()


def test_scores_match_the_primitives(random_table: VecSimTable, random_pairs) -> None:
    for (a, va), (b, vb) in itertools.combinations(random_pairs[:20], 2):
        assert random_table.cosine(a, b).unwrap() == pytest.approx(vec_math.cosine_similarity(va, vb))
        assert random_table.euclidean(a, b).unwrap() == pytest.approx(vec_math.euclidean_distance(va, vb))


def test_missing_word(table: VecSimTable) -> None:
    assert table.cosine("cat", "zzz").status is Status.NOT_FOUND
    assert table.euclidean("zzz", "cat").status is Status.NOT_FOUND
    assert table.cosine("zzz", "zzz").status is Status.NOT_FOUND
    assert table.get_vector("zzz").status is Status.NOT_FOUND
    assert table.similar_pairs("cat", "zzz", "cos", 0.1).status is Status.NOT_FOUND
    assert table.most_similar_pairs("zzz", "cat", "cos", 3).status is Status.NOT_FOUND


def test_get_vector_uses_sorted_array(table: VecSimTable) -> None:
    assert table.get_vector("dog").unwrap().tolist() == [0.9, 0.1]
    assert table.get_vector("car").unwrap().tolist() == [0.0, 1.0]


def test_triangular_indexing_is_a_bijection(random_pairs) -> None:
    table = VecSimTable(random_pairs[:6], fraction=1.0)
    assert table.pair_count == 15
    offsets = [table.pair_offset(i, j) for i, j in itertools.combinations(range(6), 2)]
    assert sorted(offsets) == list(range(15))
    for i, j in itertools.combinations(range(6), 2):
        assert table.pair_offset(j, i) == table.pair_offset(i, j)
        assert table.offset_pair(table.pair_offset(i, j)) == (i, j)


def test_similar_pairs_cosine(table: VecSimTable) -> None:
    # car/cat = 0.0, car/dog ~ 0.11, cat/dog ~ 0.99
    assert _names(table.similar_pairs("car", "cat", "cos_sim", 0.2).unwrap()) == [("car", "dog")]
    assert _names(table.similar_pairs("cat", "car", "cos_sim", 0.2).unwrap()) == [("car", "dog")]
    assert table.similar_pairs("car", "cat", "cos_sim", 0.05).unwrap() == []


def test_similar_pairs_euclidean(table: VecSimTable) -> None:
    # car/cat ~ 1.414, car/dog ~ 1.273, cat/dog ~ 0.141
    hits = table.similar_pairs(("cat", "car"), mode="eucl_dist", radius=0.2).unwrap()
    assert _names(hits) == [("car", "dog")]
    assert hits[0].score == pytest.approx(math.sqrt(1.62))


def test_similar_pairs_near_value(table: VecSimTable) -> None:
    assert _names(table.similar_pairs_near(1.0, "cosine", 0.01).unwrap()) == [("cat", "dog")]
    assert len(table.similar_pairs_near(0.5, "cosine", 0.5).unwrap()) == 3
    assert _names(table.similar_pairs_near(0.0, "cosine", 0.0).unwrap()) == [("car", "cat")]


def test_range_inclusion(random_table: VecSimTable, random_pairs) -> None:
    words = [w for w, _ in random_pairs[:20]]
    anchor = random_table.cosine("w001", "w002").unwrap()
    hits = random_table.similar_pairs("w001", "w002", "cos", 0.15).unwrap()
    assert ("w001", "w002") not in _names(hits)
    for pair in hits:
        assert anchor - 0.15 <= pair.score <= anchor + 0.15
    expected = [
        (a, b) for a, b in itertools.combinations(words, 2)
        if (a, b) != ("w001", "w002") and abs(random_table.cosine(a, b).unwrap() - anchor) <= 0.15
    ]
    assert sorted(_names(hits)) == sorted(expected)


def test_degenerate_pair(pets) -> None:
    table = VecSimTable(pets, fraction=1.0)
    assert table.similar_pairs("cat", "cat", "cos", 0.1).status is Status.DEGENERATE_QUERY
    assert table.most_similar_pairs("cat", "cat", "cos", 3).status is Status.DEGENERATE_QUERY
    folded = VecSimTable(pets, case_sensitive=False, fraction=1.0)
    assert folded.most_similar_pairs("Cat", "cAT", "cos", 3).status is Status.DEGENERATE_QUERY


def test_most_similar_pairs(table: VecSimTable) -> None:
    hits = table.most_similar_pairs("car", "cat", "cos", 2).unwrap()
    assert _names(hits) == [("car", "dog"), ("cat", "dog")]
    assert _names(table.most_similar_pairs("car", "cat", "cos", 1).unwrap()) == [("car", "dog")]
    assert _names(table.most_similar_pairs("dog", "cat", "eucldist", 5).unwrap()) == [("car", "dog"), ("car", "cat")]


def test_most_similar_pairs_near_value(table: VecSimTable) -> None:
    hits = table.most_similar_pairs_near(1.0, "cos", 3).unwrap()
    assert _names(hits) == [("cat", "dog"), ("car", "dog"), ("car", "cat")]
    assert _names(table.most_similar_pairs_near(0.0, "cos", 1).unwrap()) == [("car", "cat")]
    assert table.most_similar_pairs_near(0.0, "cos", 0).unwrap() == []


def test_top_k_bounds(random_table: VecSimTable, random_pairs) -> None:
    words = [w for w, _ in random_pairs[:20]]
    hits = random_table.most_similar_pairs_near(0.0, "cosine", 6).unwrap()
    assert len(hits) == 6
    gaps = [abs(p.score) for p in hits]
    assert gaps == sorted(gaps)
    returned = set(_names(hits))
    others = [
        abs(random_table.cosine(a, b).unwrap())
        for a, b in itertools.combinations(words, 2) if (a, b) not in returned
    ]
    assert max(gaps) <= min(others)


def test_anchor_pair_is_never_a_candidate(random_table: VecSimTable) -> None:
    hits = random_table.most_similar_pairs("w003", "w007", "eucl dist", 10).unwrap()
    assert ("w003", "w007") not in _names(hits)
    assert len(hits) == 10


def test_case_insensitive_table() -> None:
    table = VecSimTable([("Mann", [0.5, 0.1]), ("Frau", [0.4, 0.2])], case_sensitive=False, fraction=1.0)
    assert table.get_vector("mann").unwrap().tolist() == [0.5, 0.1]
    assert table.cosine("MANN", "frau").ok


def test_default_fraction(random_pairs) -> None:
    assert len(VecSimTable(random_pairs)) == 6
    assert VecSimTable(random_pairs).pair_count == 15


def test_with_pattern(vector_file: Path) -> None:
    table = VecSimTable.from_file(vector_file, pattern=r".+[^(sc)-]haft(e([mnrs])?)?")
    assert len(table) == 4
    assert "Mann" not in table
    assert table.cosine("grauenhaft", "grauenhafte").unwrap() > 0.99
    assert table.info().pairs == 6


def test_with_predicate(pets) -> None:
    table = VecSimTable(pets, word_filter=lambda word: word.startswith("c"))
    assert len(table) == 2
    assert table.euclidean("cat", "car").unwrap() == pytest.approx(math.sqrt(2))


def test_empty_table() -> None:
    table = VecSimTable([])
    assert table.info().entries == 0
    assert table.pair_count == 0
    assert table.cosine("a", "b").status is Status.NOT_FOUND
    assert table.similar_pairs_near(0.5, "cos", 1.0).unwrap() == []
    assert table.most_similar_pairs_near(0.5, "cos", 3).unwrap() == []


def test_info(table: VecSimTable) -> None:
    info = table.info()
    assert info.dimension == 2
    assert info.entries == 3
    assert info.pairs == 3
    assert info.case_sensitive is True


def test_duplicates_get_no_pairs_of_their_own() -> None:
    table = VecSimTable(
        [("Mann", [1.0, 0.0]), ("Frau", [0.9, 0.1]), ("mann", [0.2, 0.8]), ("Haus", [0.0, 1.0])],
        case_sensitive=False,
        fraction=1.0,
    )
    assert len(table) == 4
    assert table.info().entries == 4
    assert table.pair_count == 3

    hits = table.most_similar_pairs("mann", "frau", k=2).unwrap()
    assert _names(hits) == [("frau", "haus"), ("haus", "mann")]
    everything = table.similar_pairs_near(0.5, "cos", 1.0).unwrap()
    assert len(everything) == 3
    for pair in hits + everything:
        assert pair.first != pair.second
        assert pair.score == pytest.approx(table.cosine(pair.first, pair.second).unwrap())
