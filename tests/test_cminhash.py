"""C-MinHash tests: scatter, circulant shifts and signatures."""
from __future__ import annotations

import logging

import numpy as np
import pytest

from sigslasher.detector.cminhash import EMPTY_SLOT, CirculantMinHash, InvalidPermutationError
from sigslasher.detector.permutations import is_permutation
from sigslasher.detector.similarity import are_similar, estimate_jaccard


def _jaccard_similarity(v1, v2) -> float:
    a = np.asarray(v1, dtype=bool)
    b = np.asarray(v2, dtype=bool)
    return np.count_nonzero(a & b) / np.count_nonzero(a | b)


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------


def test_apply_permutation() -> None:
    cmh = CirculantMinHash([2, 0, 1], [], 0)  # pi is irrelevant here
    permuted = cmh.apply_permutation([True, False, True], cmh.sigma)
    assert permuted.tolist() == [False, True, True]


def test_circulant_shift() -> None:
    cmh = CirculantMinHash([], [1, 2, 0], 0)  # sigma is irrelevant here
    assert cmh.circulant_shift(1).tolist() == [0, 1, 2]


def test_circulant_shift_wraps_past_universe() -> None:
    cmh = CirculantMinHash([], [4, 0, 3, 1, 2], 0)
    assert cmh.circulant_shift(6).tolist() == cmh.circulant_shift(1).tolist()
    assert cmh.circulant_shift(5).tolist() == [4, 0, 3, 1, 2]


def test_circulant_shift_empty_pi() -> None:
    assert CirculantMinHash([], [], 0).circulant_shift(3).tolist() == []


@pytest.mark.parametrize(
    "sigma, data, expected",
    [
        ([5, 0, 1], [True, True, True], [True, True, False]),  # target out of range
        ([-1, 0], [True, True], [True, False]),  # negative target
        ([1], [True, False], [False, True]),  # sigma shorter than data
        ([1, 0, 2, 3], [True, False], [False, True]),  # sigma longer than data
        ([2**64 - 1, 0, 1], [True, True, True], [True, True, False]),  # beyond int64
        ([2**63, -5, 1], [True, True, True], [False, True, False]),  # both extremes
        (np.array([2**64 - 1, 0, 1], dtype=np.uint64), [True, True, False], [True, False, False]),
    ],
)
def test_apply_permutation_skips_invalid_positions(sigma, data, expected) -> None:
    cmh = CirculantMinHash(sigma, [], 0)
    assert cmh.apply_permutation(data, cmh.sigma).tolist() == expected


# ---------------------------------------------------------------------------
# Signatures
# ---------------------------------------------------------------------------


def test_compute_basic() -> None:
    cmh = CirculantMinHash([0, 2, 1], [1, 0, 2], 3)
    assert cmh.compute([True, False, True]) == [0, 1, 0]


def test_compute_is_deterministic() -> None:
    cmh = CirculantMinHash.from_seed(64, 16, seed=3)
    data = np.random.default_rng(0).random(64) < 0.3
    assert cmh.compute(data) == cmh.compute(data.copy())


def test_compute_matches_explicit_shifts() -> None:
    cmh = CirculantMinHash.from_seed(50, 70, seed=11)  # k > d and > one shift chunk
    data = np.random.default_rng(1).random(50) < 0.2
    permuted = cmh.apply_permutation(data, cmh.sigma)
    expected = [int(cmh.circulant_shift(j)[permuted].min()) for j in range(cmh.k)]
    assert cmh.compute(data) == expected


def test_compute_empty_set_uses_sentinel() -> None:
    cmh = CirculantMinHash([0, 1, 2], [2, 0, 1], 4)
    assert cmh.compute([False, False, False]) == [EMPTY_SLOT] * 4


def test_compute_zero_slots() -> None:
    assert CirculantMinHash([0, 1], [1, 0], 0).compute([True, True]) == []


def test_compute_ignores_positions_beyond_pi() -> None:
    cmh = CirculantMinHash([0, 1, 2], [0], 2)
    assert cmh.compute([False, False, True]) == [EMPTY_SLOT, EMPTY_SLOT]
    assert CirculantMinHash([0, 1], [], 3).compute([True, True]) == [EMPTY_SLOT] * 3


def test_huge_permutation_values_do_not_crash() -> None:
    cmh = CirculantMinHash([2**64 - 1, 0, 1], [1, 2, 0], 2)
    assert cmh.compute([True, True, True]) == [1, 0]

    # pi values are signature output and keep their full range
    cmh = CirculantMinHash([0, 1, 2], [2**64 - 1, 2**63, 5], 2)
    assert cmh.compute([True, True, False]) == [2**63, 5]
    cmh = CirculantMinHash([0, 1], [2**64 - 1, -1], 1)
    assert cmh.compute([True, True]) == [-1]


def test_compute_batch_matches_compute() -> None:
    cmh = CirculantMinHash.from_seed(32, 8, seed=5)
    rows = np.random.default_rng(2).random((4, 32)) < 0.5
    assert cmh.compute_batch(rows) == [cmh.compute(r) for r in rows]


def test_conformance_with_theoretical_expectations() -> None:
    cmh = CirculantMinHash([2, 0, 1, 3], [1, 3, 0, 2], 4)

    data1 = [True, False, True, False]
    data2 = [True, True, False, False]
    actual = _jaccard_similarity(data1, data2)
    estimated = estimate_jaccard(cmh.compute(data1), cmh.compute(data2))

    assert abs(actual - estimated) < 0.2


def test_deduplication_with_cminhash() -> None:
    cmh = CirculantMinHash([2, 0, 1, 3, 4], [1, 3, 0, 4, 2], 5)

    entry1 = [True, False, True, False, True]
    entry2 = list(entry1)  # duplicate of entry1
    entry3 = [True, True, False, False, True]  # near-duplicate
    entry4 = [False] * 5  # unrelated

    h1, h2, h3, h4 = (cmh.compute(e) for e in (entry1, entry2, entry3, entry4))

    assert estimate_jaccard(h1, h2) == 1.0
    assert are_similar(h1, h3, 0.4)
    assert not are_similar(h1, h4, 0.8)


def test_estimate_tracks_jaccard_on_random_sets() -> None:
    d = 2000
    cmh = CirculantMinHash.from_seed(d, 256, seed=42)
    rng = np.random.default_rng(7)

    base = np.zeros(d, dtype=bool)
    base[rng.choice(d, size=300, replace=False)] = True
    near = base.copy()
    flipped_off = rng.choice(np.flatnonzero(base), size=30, replace=False)
    flipped_on = rng.choice(np.flatnonzero(~base), size=30, replace=False)
    near[flipped_off] = False
    near[flipped_on] = True
    other = ~base

    sig_base = cmh.compute(base)
    assert estimate_jaccard(sig_base, cmh.compute(base.copy())) == 1.0
    near_est = estimate_jaccard(sig_base, cmh.compute(near))
    assert near_est > 0.4
    assert abs(near_est - _jaccard_similarity(base, near)) < 0.2
    assert estimate_jaccard(sig_base, cmh.compute(other)) < 0.8


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def test_from_seed_draws_valid_reproducible_permutations() -> None:
    a = CirculantMinHash.from_seed(100, 10, seed=9)
    b = CirculantMinHash.from_seed(100, 10, seed=9)
    assert a.universe_size == 100 and a.k == 10
    assert is_permutation(a.sigma) and is_permutation(a.pi)
    assert np.array_equal(a.sigma, b.sigma) and np.array_equal(a.pi, b.pi)


def test_negative_k_rejected() -> None:
    with pytest.raises(ValueError):
        CirculantMinHash([0], [0], -1)


@pytest.mark.parametrize(
    "sigma, pi",
    [
        ([0, 0, 1], [0, 1, 2]),  # sigma not bijective
        ([0, 1, 2], [0, 1, 3]),  # pi out of range
        ([0, 1], [0, 1, 2]),  # length mismatch
    ],
)
def test_strict_mode_rejects_malformed_permutations(sigma, pi) -> None:
    with pytest.raises(InvalidPermutationError):
        CirculantMinHash(sigma, pi, 3, strict=True)
    # lenient default keeps working
    CirculantMinHash(sigma, pi, 3).compute([True, False, True])


def test_strict_mode_accepts_bijections() -> None:
    cmh = CirculantMinHash([2, 0, 1], [1, 2, 0], 3, strict=True)
    assert len(cmh.compute([True, True, False])) == 3
    assert issubclass(InvalidPermutationError, ValueError)


def test_strict_failure_reported_by_exception_only(caplog) -> None:
    with caplog.at_level(logging.DEBUG, logger="sigslasher"):
        with pytest.raises(InvalidPermutationError, match="sigma is not a permutation"):
            CirculantMinHash([0, 0], [0, 1], 2, strict=True)
    assert caplog.records == []
