"""Streaming MinHash for SigSlasher.

Items are folded into the signature one at a time (or in batches) so the full
set never has to be materialised.  Each item is hashed once with seeded
64-bit xxHash and spread over ``num_perm`` slots by a pluggable
:mod:`permutation family <sigslasher.detector.permutations>`.
"""
from __future__ import annotations

import logging
import struct
from typing import Any, Hashable, Iterable, List, Optional

import numpy as np
import xxhash

from .permutations import PermutationFamily, additive_family

logger = logging.getLogger(__name__)

DEFAULT_SEED = 42
DEFAULT_NUM_PERM = 128

# Sentinel for "no minimum observed yet"
MAX_HASH = (1 << 64) - 1

_BATCH_ROWS = 4096

# -----------------------------------------------------------
# xxHash helpers
# -----------------------------------------------------------


def _length_prefixed(part: bytes) -> bytes:
    return len(part).to_bytes(8, byteorder="little") + part


def _item_bytes(item: Hashable) -> bytes:
    if isinstance(item, (bytes, bytearray)):
        return bytes(item)
    if isinstance(item, str):
        return item.encode("utf-8")
    if isinstance(item, int):
        if 0 <= item <= MAX_HASH:
            return item.to_bytes(8, byteorder="little")
        if -(1 << 63) <= item < 0:
            # 9 bytes so negatives never collide with the unsigned range
            return item.to_bytes(9, byteorder="little", signed=True)
        return str(item).encode("ascii")
    if isinstance(item, float):
        return b"d" + struct.pack("<d", item)
    if isinstance(item, tuple):
        return b"t" + b"".join(_length_prefixed(_item_bytes(part)) for part in item)
    if isinstance(item, frozenset):
        members = sorted(_item_bytes(member) for member in item)
        return b"f" + b"".join(_length_prefixed(m) for m in members)
    raise TypeError(f"cannot hash item of type {type(item).__name__!r}")


def hash_item(item: Hashable, seed: int = DEFAULT_SEED) -> int:
    """Seeded 64-bit xxHash of *item*.

    ``bytes`` are hashed as-is and ``str`` as UTF-8.  ``int`` uses 8
    little-endian bytes for ``[0, 2**64)``, 9 signed bytes for negatives down
    to ``-2**63`` and decimal text beyond that.  ``float``, ``tuple`` and
    ``frozenset`` get tagged encodings; ``frozenset`` members are sorted so
    equal sets hash alike regardless of insertion order.  Other types raise
    ``TypeError``.

    Encodings are unique within a type, but ``"a"`` and ``b"a"`` hash alike,
    as do ``1`` and ``True``.
    """
    return xxhash.xxh64_intdigest(_item_bytes(item), seed=seed)


def batch_xxhash64(items: Iterable[Hashable], seed: int = DEFAULT_SEED) -> List[int]:
    """64-bit hashes for every item in *items*."""
    return [hash_item(item, seed) for item in items]


# -----------------------------------------------------------
# StreamingMinHash
# -----------------------------------------------------------


class StreamingMinHash:
    """Incremental MinHash signature.

    Slot ``i`` holds the minimum of ``family(H(x), num_perm)[i]`` over every
    item ``x`` seen so far, where ``H`` is xxh64 under *seed*.  Slots start at
    ``2**64 - 1`` and never increase, so the final signature does not depend
    on update order and two sketches merge by component-wise minimum.

    Not thread-safe: serialise updates per instance, or sketch per thread
    and :meth:`merge` afterwards.
    """

    __slots__ = ("num_perm", "seed", "family", "hashvalues")

    def __init__(
        self,
        num_perm: int = DEFAULT_NUM_PERM,
        *,
        seed: int = DEFAULT_SEED,
        family: Optional[PermutationFamily] = None,
        hashvalues: Optional[Iterable[int]] = None,
    ) -> None:
        if num_perm <= 0:
            raise ValueError("num_perm must be > 0")
        self.num_perm = num_perm
        self.seed = seed
        self.family: PermutationFamily = family if family is not None else additive_family
        if hashvalues is None:
            self.hashvalues = np.full(num_perm, MAX_HASH, dtype=np.uint64)
        else:
            self.hashvalues = np.array(hashvalues, dtype=np.uint64)
            if self.hashvalues.shape != (num_perm,):
                raise ValueError(
                    f"expected {num_perm} hash values, got shape {self.hashvalues.shape}"
                )

    # --------------------------------------------------
    # Mutation
    # --------------------------------------------------

    def update(self, item: Hashable) -> None:
        """Fold a single *item* into the signature."""
        permuted = self.family(hash_item(item, self.seed), self.num_perm)
        np.minimum(self.hashvalues, permuted, out=self.hashvalues)

    def update_batch(self, items: Iterable[Hashable]) -> None:
        """Fold many items at once; same result as calling :meth:`update` per item."""
        self.update_hashes(batch_xxhash64(items, self.seed))

    def update_hashes(self, hashes: Iterable[int]) -> None:
        """Fold already-hashed 64-bit values, skipping the xxHash pass."""
        arr = np.array(list(hashes), dtype=np.uint64)
        # Bound the (rows, num_perm) intermediate
        for start in range(0, arr.shape[0], _BATCH_ROWS):
            permuted = self.family(arr[start : start + _BATCH_ROWS], self.num_perm)  # noqa: E203
            np.minimum(self.hashvalues, permuted.min(axis=0), out=self.hashvalues)

    def merge(self, other: "StreamingMinHash") -> None:
        """Union *other* into this sketch (component-wise minimum)."""
        self._check_compatible(other)
        np.minimum(self.hashvalues, other.hashvalues, out=self.hashvalues)

    # --------------------------------------------------
    # Queries
    # --------------------------------------------------

    def jaccard(self, other: "StreamingMinHash") -> float:
        """Estimated Jaccard similarity: fraction of equal slots."""
        self._check_compatible(other)
        return float(np.count_nonzero(self.hashvalues == other.hashvalues)) / self.num_perm

    def digest(self) -> tuple[int, ...]:
        return tuple(int(v) for v in self.hashvalues)

    def is_empty(self) -> bool:
        """*True* while no item has been folded in."""
        return bool(np.all(self.hashvalues == np.uint64(MAX_HASH)))

    def copy(self) -> "StreamingMinHash":
        return StreamingMinHash(
            self.num_perm, seed=self.seed, family=self.family, hashvalues=self.hashvalues
        )

    def to_datasketch(self):
        """Export as ``datasketch.LeanMinHash`` for datasketch LSH indexes."""
        from datasketch import LeanMinHash

        return LeanMinHash(seed=self.seed, hashvalues=self.hashvalues, scheme="legacy")

    def _check_compatible(self, other: "StreamingMinHash") -> None:
        if self.num_perm != other.num_perm:
            raise ValueError("num_perm mismatch")
        if self.seed != other.seed:
            raise ValueError("seed mismatch")
        if self.family != other.family:
            raise ValueError("permutation family mismatch")

    def __len__(self) -> int:
        return self.num_perm

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, StreamingMinHash):
            return NotImplemented
        return (
            self.seed == other.seed
            and self.family == other.family
            and np.array_equal(self.hashvalues, other.hashvalues)
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"StreamingMinHash(num_perm={self.num_perm}, seed={self.seed})"


# -----------------------------------------------------------
# Factories
# -----------------------------------------------------------


def compute_minhash(
    items: Iterable[Hashable],
    num_perm: int = DEFAULT_NUM_PERM,
    *,
    seed: int = DEFAULT_SEED,
    family: Optional[PermutationFamily] = None,
) -> StreamingMinHash:
    """Compute a :class:`StreamingMinHash` from an iterable of items."""
    mh = StreamingMinHash(num_perm, seed=seed, family=family)
    mh.update_batch(items)
    logger.debug("minhash over items: num_perm=%d seed=%d", num_perm, seed)
    return mh


def compute_minhash_from_hashes(
    hashes: Iterable[int],
    num_perm: int = DEFAULT_NUM_PERM,
    *,
    seed: int = DEFAULT_SEED,
    family: Optional[PermutationFamily] = None,
) -> StreamingMinHash:
    """Compute a sketch directly from pre-hashed 64-bit integers.

    *seed* is recorded on the sketch for compatibility checks only; the
    hashes are folded as given.
    """
    mh = StreamingMinHash(num_perm, seed=seed, family=family)
    mh.update_hashes(hashes)
    return mh
