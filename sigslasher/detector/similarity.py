"""Signature comparison utilities.

Works on plain integer sequences so signatures from either
:class:`~sigslasher.detector.minhash.StreamingMinHash` (via ``digest()``) or
:class:`~sigslasher.detector.cminhash.CirculantMinHash` can be compared.
Signatures are only comparable when produced under identical configuration.
"""
from __future__ import annotations

from typing import List, Sequence

import numpy as np


def estimate_jaccard(sig_a: Sequence[int], sig_b: Sequence[int]) -> float:
    """Estimate Jaccard similarity as the fraction of equal components."""
    a = np.asarray(sig_a, dtype=np.uint64)
    b = np.asarray(sig_b, dtype=np.uint64)
    if a.shape != b.shape:
        raise ValueError("Signature lengths differ")
    if a.size == 0:
        return 1.0
    return float(np.count_nonzero(a == b)) / a.size


def are_similar(sig_a: Sequence[int], sig_b: Sequence[int], threshold: float) -> bool:
    """Return *True* if the match ratio reaches *threshold*."""
    return estimate_jaccard(sig_a, sig_b) >= threshold


def merge_signatures(sig_a: Sequence[int], sig_b: Sequence[int]) -> List[int]:
    """Component-wise minimum, i.e. the signature of the union of both sets.

    Only meaningful for streaming MinHash signatures built with the same
    seed and permutation family.
    """
    a = np.asarray(sig_a, dtype=np.uint64)
    b = np.asarray(sig_b, dtype=np.uint64)
    if a.shape != b.shape:
        raise ValueError("Signature lengths differ")
    return [int(v) for v in np.minimum(a, b)]
