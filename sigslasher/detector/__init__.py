"""SigSlasher detector package.

Core public API lives here so external users can::

    import sigslasher as ss
    mh = ss.StreamingMinHash(num_perm=128)
    cmh = ss.CirculantMinHash.from_seed(d=4096, k=128)

Two interchangeable signature strategies:
    from sigslasher.detector.minhash import StreamingMinHash     # item streams
    from sigslasher.detector.cminhash import CirculantMinHash    # bit vectors
"""

from importlib.metadata import version as _pkg_version


# Semantic version of the installed package
try:
    __version__: str = _pkg_version("sigslasher")
except Exception:  # pragma: no cover – local dev path
    __version__ = "0.1.0"


from .minhash import (
    MAX_HASH,
    StreamingMinHash,
    compute_minhash,
    compute_minhash_from_hashes,
    hash_item,
)
from .cminhash import EMPTY_SLOT, CirculantMinHash, InvalidPermutationError
from .permutations import (
    UniversalFamily,
    additive_family,
    is_permutation,
    random_permutation,
    random_permutation_pair,
)
from .similarity import are_similar, estimate_jaccard, merge_signatures
from .config import SketchConfig, load_config

__all__ = [
    "__version__",
    # streaming MinHash
    "MAX_HASH",
    "StreamingMinHash",
    "compute_minhash",
    "compute_minhash_from_hashes",
    "hash_item",
    # C-MinHash
    "EMPTY_SLOT",
    "CirculantMinHash",
    "InvalidPermutationError",
    # permutations
    "UniversalFamily",
    "additive_family",
    "is_permutation",
    "random_permutation",
    "random_permutation_pair",
    # comparison
    "are_similar",
    "estimate_jaccard",
    "merge_signatures",
    # config
    "SketchConfig",
    "load_config",
]
