"""YAML configuration for SigSlasher sketches.

Example ``sketch.yml``::

    method: circulant
    universe_size: 8192
    k: 256
    permutation_seed: 7
    threshold: 0.75
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml  # type: ignore

from .cminhash import CirculantMinHash
from .minhash import DEFAULT_NUM_PERM, DEFAULT_SEED, StreamingMinHash
from .permutations import PermutationFamily, UniversalFamily, additive_family

logger = logging.getLogger(__name__)

METHODS = ("streaming", "circulant")
FAMILIES = ("additive", "universal")


@dataclass(frozen=True)
class SketchConfig:
    """Settings shared by every signature of one corpus run."""

    method: str = "streaming"
    # streaming MinHash
    num_perm: int = DEFAULT_NUM_PERM
    seed: int = DEFAULT_SEED
    family: str = "additive"
    # C-MinHash
    universe_size: int = 4096
    k: int = 128
    permutation_seed: int = 42
    strict: bool = False
    # comparison
    threshold: float = 0.8

    def validate(self) -> "SketchConfig":
        for f in fields(self):
            value = getattr(self, f.name)
            expected = _FIELD_TYPES[f.name]
            # bool is an int subclass; only accept it where a bool is expected
            if isinstance(value, bool) and expected is not bool:
                raise ValueError(f"{f.name} must be {expected.__name__}, got {value!r}")
            if expected is float and isinstance(value, int):
                continue
            if not isinstance(value, expected):
                raise ValueError(f"{f.name} must be {expected.__name__}, got {value!r}")
        if self.method not in METHODS:
            raise ValueError(f"method must be one of {METHODS}, got {self.method!r}")
        if self.family not in FAMILIES:
            raise ValueError(f"family must be one of {FAMILIES}, got {self.family!r}")
        if self.num_perm <= 0:
            raise ValueError("num_perm must be > 0")
        if self.universe_size <= 0:
            raise ValueError("universe_size must be > 0")
        if self.k < 0:
            raise ValueError("k must be >= 0")
        if not 0.0 <= self.threshold <= 1.0:
            raise ValueError("threshold must be within [0, 1]")
        return self

    @property
    def signature_length(self) -> int:
        return self.num_perm if self.method == "streaming" else self.k

    # --------------------------------------------------
    # Builders
    # --------------------------------------------------

    def make_family(self) -> PermutationFamily:
        if self.family == "universal":
            return UniversalFamily(self.num_perm, seed=self.seed)
        return additive_family

    def make_streaming(self) -> StreamingMinHash:
        """Fresh, empty streaming sketch for one set."""
        return StreamingMinHash(self.num_perm, seed=self.seed, family=self.make_family())

    def make_circulant(self) -> CirculantMinHash:
        """C-MinHash generator shared by every vector of the run."""
        return CirculantMinHash.from_seed(
            self.universe_size, self.k, seed=self.permutation_seed, strict=self.strict
        )


_FIELD_TYPES = {
    "method": str,
    "num_perm": int,
    "seed": int,
    "family": str,
    "universe_size": int,
    "k": int,
    "permutation_seed": int,
    "strict": bool,
    "threshold": float,
}


def config_from_dict(values: Optional[Dict[str, Any]], **overrides: Any) -> SketchConfig:
    """Build a validated config from *values* plus non-``None`` *overrides*."""
    known = {f.name for f in fields(SketchConfig)}
    merged = dict(values or {})
    merged.update({key: val for key, val in overrides.items() if val is not None})

    unknown = sorted(set(merged) - known)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

    cfg = replace(SketchConfig(), **merged)
    return cfg.validate()


def load_config(path: Union[str, Path, None], **overrides: Any) -> SketchConfig:
    """Load a YAML config file; ``None`` yields the defaults (plus *overrides*)."""
    if path is None:
        return config_from_dict({}, **overrides)

    cfg_path = Path(path).expanduser().resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(cfg_path)
    with cfg_path.open() as f:
        values = yaml.safe_load(f) or {}
    if not isinstance(values, dict):
        raise ValueError(f"{cfg_path}: expected a mapping at top level")

    logger.debug("loaded config from %s: %s", cfg_path, values)
    return config_from_dict(values, **overrides)
