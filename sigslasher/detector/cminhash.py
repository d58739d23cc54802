"""C-MinHash: circulant MinHash over fixed-size membership vectors.

Only two permutations of the universe are needed.  ``sigma`` scatters the
input bits once, and the ``k`` hash functions are the ``k`` circulant shifts
of ``pi``, so the permutation cost is paid once per vector instead of once
per hash function.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

import numpy as np

from .permutations import is_permutation, random_permutation_pair

logger = logging.getLogger(__name__)

# Slot value when the permuted set is empty
EMPTY_SLOT = (1 << 64) - 1

# Shifts gathered per step in compute(); bounds the (shifts, set bits) block
_SHIFT_CHUNK = 64

_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1
_UINT64_MAX = (1 << 64) - 1


class InvalidPermutationError(ValueError):
    """Raised in strict mode when sigma or pi is not a bijection."""


def _scatter_targets(values: Sequence[int] | np.ndarray) -> np.ndarray:
    """Targets as int64; anything past the int64 range becomes negative and is skipped."""
    if isinstance(values, np.ndarray) and values.dtype.kind == "u":
        # astype wraps values >= 2**63 around to negatives
        return values.astype(np.int64).reshape(-1)
    try:
        return np.asarray(values, dtype=np.int64).reshape(-1)
    except OverflowError:
        return np.array(
            [v if _INT64_MIN <= v <= _INT64_MAX else -1 for v in (int(x) for x in values)],
            dtype=np.int64,
        )


def _base_permutation(values: Sequence[int] | np.ndarray) -> np.ndarray:
    """``pi`` values are signature output, so they are kept exactly, whatever their range."""
    if isinstance(values, np.ndarray):
        if values.dtype.kind == "u":
            return values.astype(np.uint64).reshape(-1)
        if values.dtype.kind == "i":
            return values.astype(np.int64).reshape(-1)
        values = values.reshape(-1).tolist()

    ints = [int(v) for v in values]
    lo, hi = min(ints, default=0), max(ints, default=0)
    if lo >= _INT64_MIN and hi <= _INT64_MAX:
        return np.array(ints, dtype=np.int64)
    if lo >= 0 and hi <= _UINT64_MAX:
        return np.array(ints, dtype=np.uint64)
    return np.array(ints, dtype=object)


class CirculantMinHash:
    """Signature generator for boolean membership vectors.

    Parameters
    ----------
    sigma : sequence of int
        Scatter permutation: the bit at position ``i`` moves to ``sigma[i]``.
    pi : sequence of int
        Base permutation; slot ``j`` uses ``pi`` circularly shifted by ``j``.
    k : int
        Signature length.
    strict : bool, optional
        Reject ``sigma``/``pi`` that are not bijections of the same length.
        Off by default: malformed permutations degrade the signature silently
        and never raise.
    """

    def __init__(
        self,
        sigma: Sequence[int] | np.ndarray,
        pi: Sequence[int] | np.ndarray,
        k: int,
        *,
        strict: bool = False,
    ) -> None:
        if k < 0:
            raise ValueError("k must be >= 0")
        self.sigma = _scatter_targets(sigma)
        self.pi = _base_permutation(pi)
        self._k = k

        if strict:
            self._validate()

    @classmethod
    def from_seed(
        cls, d: int, k: int, seed: Optional[int] = 42, *, strict: bool = False
    ) -> "CirculantMinHash":
        """Build from a ``(sigma, pi)`` pair drawn uniformly for universe size *d*."""
        sigma, pi = random_permutation_pair(d, seed)
        logger.debug("drew C-MinHash permutations: d=%d k=%d seed=%s", d, k, seed)
        return cls(sigma, pi, k, strict=strict)

    def _validate(self) -> None:
        d = self.pi.shape[0]
        for name, perm in (("sigma", self.sigma), ("pi", self.pi)):
            if not is_permutation(perm, d):
                raise InvalidPermutationError(f"{name} is not a permutation of range({d})")

    # --------------------------------------------------
    # Properties
    # --------------------------------------------------

    @property
    def k(self) -> int:
        return self._k

    @property
    def universe_size(self) -> int:
        return int(self.pi.shape[0])

    # --------------------------------------------------
    # Building blocks
    # --------------------------------------------------

    def apply_permutation(
        self,
        data: Sequence[bool] | np.ndarray,
        permutation: Sequence[int] | np.ndarray,
    ) -> np.ndarray:
        """Scatter *data* through *permutation*: ``out[permutation[i]] = data[i]``.

        Targets outside ``[0, len(data))`` and sources past the end of *data*
        are dropped; every untouched position stays *False*.
        """
        data = np.asarray(data, dtype=bool).reshape(-1)
        perm = _scatter_targets(permutation)
        n = data.shape[0]

        permuted = np.zeros(n, dtype=bool)
        targets = perm[: min(perm.shape[0], n)]
        valid = (targets >= 0) & (targets < n)
        permuted[targets[valid]] = data[: targets.shape[0]][valid]
        return permuted

    def circulant_shift(self, shift: int) -> np.ndarray:
        """Rotate ``pi`` right by *shift*: ``out[(i + shift) % d] = pi[i]``."""
        if self.pi.shape[0] == 0:
            return self.pi.copy()
        return np.roll(self.pi, shift)

    # --------------------------------------------------
    # Signatures
    # --------------------------------------------------

    def compute(self, data: Sequence[bool] | np.ndarray) -> List[int]:
        """Return the ``k``-slot signature of membership vector *data*.

        Slot ``j`` is the minimum of ``circulant_shift(j)`` over the positions
        set after scattering with ``sigma``, or :data:`EMPTY_SLOT` when none
        is set.  Set positions at or beyond ``len(pi)`` do not contribute.
        """
        d = self.universe_size
        permuted = self.apply_permutation(data, self.sigma)
        positions = np.flatnonzero(permuted[:d])

        if positions.shape[0] == 0:
            return [EMPTY_SLOT] * self._k

        signature: List[int] = []
        for start in range(0, self._k, _SHIFT_CHUNK):
            shifts = np.arange(start, min(start + _SHIFT_CHUNK, self._k))
            # circulant_shift(s)[i] == pi[(i - s) % d]
            block = self.pi[(positions[np.newaxis, :] - shifts[:, np.newaxis]) % d]
            signature.extend(int(v) for v in block.min(axis=1))
        return signature

    def compute_batch(self, rows: Iterable[Sequence[bool] | np.ndarray]) -> List[List[int]]:
        """Signatures for several membership vectors, in input order."""
        return [self.compute(row) for row in rows]

    def __repr__(self) -> str:
        return f"CirculantMinHash(d={self.universe_size}, k={self._k})"
