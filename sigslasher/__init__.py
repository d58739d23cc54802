"""SigSlasher - MinHash signatures for near-duplicate detection.

Reduces each set to a small fixed-size signature whose fraction of matching
slots approximates Jaccard similarity:
- Streaming MinHash for sets that arrive one item at a time
- C-MinHash (circulant MinHash) for membership bit vectors

Quick Start:
    # CLI usage
    sigslasher estimate a.txt b.txt --config sketch.yml

    # Python API
    from sigslasher import StreamingMinHash
    mh = StreamingMinHash(num_perm=128)
    mh.update("token")
"""

from .detector import __version__

# Re-export main API
from .detector import (
    MAX_HASH,
    EMPTY_SLOT,
    StreamingMinHash,
    CirculantMinHash,
    InvalidPermutationError,
    UniversalFamily,
    additive_family,
    compute_minhash,
    compute_minhash_from_hashes,
    estimate_jaccard,
    are_similar,
    merge_signatures,
    random_permutation_pair,
    SketchConfig,
    load_config,
)

__all__ = [
    "__version__",
    "MAX_HASH",
    "EMPTY_SLOT",
    "StreamingMinHash",
    "CirculantMinHash",
    "InvalidPermutationError",
    "UniversalFamily",
    "additive_family",
    "compute_minhash",
    "compute_minhash_from_hashes",
    "estimate_jaccard",
    "are_similar",
    "merge_signatures",
    "random_permutation_pair",
    "SketchConfig",
    "load_config",
]
