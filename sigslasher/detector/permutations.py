"""Permutation families and random permutations for SigSlasher sketches.

A *permutation family* turns one 64-bit item hash into ``num_perm`` permuted
values, one per signature slot.  Families are plain callables so a stronger
scheme can replace the default without touching the MinHash update loop::

    family(hash_values, num_perm) -> np.ndarray[uint64]

``hash_values`` may be a scalar (result shape ``(num_perm,)``) or a 1-D array
of ``n`` hashes (result shape ``(n, num_perm)``).
"""
from __future__ import annotations

from typing import Callable, Sequence, Tuple, Union

import numpy as np

HashValues = Union[int, Sequence[int], np.ndarray]
PermutationFamily = Callable[[HashValues, int], np.ndarray]

_MERSENNE_PRIME = np.uint64((1 << 61) - 1)
_MAX_HASH_32 = np.uint64((1 << 32) - 1)


# -----------------------------------------------------------
# Families
# -----------------------------------------------------------


def additive_family(hash_values: HashValues, num_perm: int) -> np.ndarray:
    """Slot ``i`` sees ``(h + i) mod 2**64``.

    This is the default family and fixes signature compatibility across the
    system.  It is linearly correlated, so neighbouring slots tend to pick the
    same minimum item; use :class:`UniversalFamily` when estimate quality
    matters more than compatibility.
    """
    hv = np.asarray(hash_values, dtype=np.uint64)
    # uint64 array arithmetic wraps modulo 2**64
    return hv[..., np.newaxis] + np.arange(num_perm, dtype=np.uint64)


class UniversalFamily:
    """Seeded universal hashing ``(a_i * h + b_i) mod (2**61 - 1)``.

    Same construction as ``datasketch.MinHash``: hashes are truncated to 32
    bits and the result is masked back to 32 bits.
    """

    def __init__(self, num_perm: int, seed: int = 1) -> None:
        if num_perm <= 0:
            raise ValueError("num_perm must be > 0")
        self.num_perm = num_perm
        self.seed = seed
        gen = np.random.default_rng(seed)
        self.a = gen.integers(1, int(_MERSENNE_PRIME), size=num_perm, dtype=np.uint64)
        self.b = gen.integers(0, int(_MERSENNE_PRIME), size=num_perm, dtype=np.uint64)

    def __call__(self, hash_values: HashValues, num_perm: int) -> np.ndarray:
        if num_perm != self.num_perm:
            raise ValueError(
                f"family built for {self.num_perm} permutations, asked for {num_perm}"
            )
        hv = np.asarray(np.bitwise_and(np.asarray(hash_values, dtype=np.uint64), _MAX_HASH_32))
        phv = (hv[..., np.newaxis] * self.a + self.b) % _MERSENNE_PRIME
        return np.bitwise_and(phv, _MAX_HASH_32)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UniversalFamily):
            return NotImplemented
        return self.num_perm == other.num_perm and self.seed == other.seed

    def __hash__(self) -> int:
        return hash((UniversalFamily, self.num_perm, self.seed))

    def __repr__(self) -> str:
        return f"UniversalFamily(num_perm={self.num_perm}, seed={self.seed})"


# -----------------------------------------------------------
# Random permutations of a universe
# -----------------------------------------------------------


def random_permutation(d: int, seed: int | None = None) -> np.ndarray:
    """Return a uniformly drawn permutation of ``range(d)``."""
    if d < 0:
        raise ValueError("universe size must be >= 0")
    return np.random.default_rng(seed).permutation(d)


def random_permutation_pair(d: int, seed: int | None = None) -> Tuple[np.ndarray, np.ndarray]:
    """Draw the ``(sigma, pi)`` pair used by C-MinHash from one generator."""
    if d < 0:
        raise ValueError("universe size must be >= 0")
    gen = np.random.default_rng(seed)
    return gen.permutation(d), gen.permutation(d)


def is_permutation(perm: Sequence[int] | np.ndarray, d: int | None = None) -> bool:
    """Return *True* when *perm* is a bijection on ``{0, ..., d-1}``.

    *d* defaults to ``len(perm)``.
    """
    arr = np.asarray(perm)
    if d is None:
        d = arr.shape[0]
    if arr.ndim != 1 or arr.shape[0] != d:
        return False
    if d == 0:
        return True
    if not np.issubdtype(arr.dtype, np.integer):
        return False
    if arr.min() < 0 or arr.max() >= d:
        return False
    return bool(np.unique(arr).shape[0] == d)
