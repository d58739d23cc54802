"""SigSlasher command-line interface.

Usage
-----
$ sigslasher estimate a.txt b.txt
$ sigslasher estimate a.txt b.txt --config sketch.yml --method circulant
$ sigslasher signature doc.txt --num-perm 64

Files are split on whitespace and each distinct token is one set element.
The *estimate* command prints the estimated Jaccard similarity of two files
and whether it reaches the configured threshold.  The *signature* command
prints one file's signature as a JSON list on stdout.
"""
from __future__ import annotations

import argparse
import json
import logging
import re
from pathlib import Path
from typing import List, Set

import numpy as np

from .detector.config import METHODS, FAMILIES, SketchConfig, load_config
from .detector.cminhash import CirculantMinHash
from .detector.minhash import hash_item
from .detector.similarity import estimate_jaccard

logger = logging.getLogger("sigslasher")

_WHITESPACE_RE = re.compile(r"\s+")

# -----------------------------------------------------------
# Helpers
# -----------------------------------------------------------


def _read_tokens(path: Path) -> Set[str]:
    """Distinct whitespace tokens of the file at *path*."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)
    tokens: Set[str] = set()
    with path.open("r", encoding="utf-8", errors="ignore") as f:
        for line in f:
            tokens.update(tok for tok in _WHITESPACE_RE.split(line.strip()) if tok)
    logger.debug("%s: %d distinct tokens", path, len(tokens))
    return tokens


def _membership_vector(tokens: Set[str], cfg: SketchConfig) -> np.ndarray:
    """Map tokens into the universe by ``xxh64(token) mod universe_size``."""
    bits = np.zeros(cfg.universe_size, dtype=bool)
    for tok in tokens:
        bits[hash_item(tok, cfg.seed) % cfg.universe_size] = True
    return bits


def _signature(tokens: Set[str], cfg: SketchConfig, cmh: CirculantMinHash | None = None) -> List[int]:
    if cfg.method == "circulant":
        cmh = cmh or cfg.make_circulant()
        return cmh.compute(_membership_vector(tokens, cfg))
    mh = cfg.make_streaming()
    mh.update_batch(sorted(tokens))
    return list(mh.digest())


def _config_from_args(args: argparse.Namespace) -> SketchConfig:
    return load_config(
        args.config,
        method=args.method,
        num_perm=args.num_perm,
        seed=args.seed,
        family=args.family,
        universe_size=args.universe_size,
        k=args.k,
        permutation_seed=args.permutation_seed,
    )


# -----------------------------------------------------------
# Commands
# -----------------------------------------------------------


def _cmd_estimate(args: argparse.Namespace) -> None:
    cfg = _config_from_args(args)
    threshold = cfg.threshold if args.threshold is None else args.threshold

    cmh = cfg.make_circulant() if cfg.method == "circulant" else None
    sig_a = _signature(_read_tokens(args.a), cfg, cmh)
    sig_b = _signature(_read_tokens(args.b), cfg, cmh)

    similarity = estimate_jaccard(sig_a, sig_b)
    verdict = "near-duplicate" if similarity >= threshold else "distinct"
    print(f"method     : {cfg.method} ({cfg.signature_length} slots)")
    print(f"similarity : {similarity:.4f}")
    print(f"verdict    : {verdict} (threshold {threshold:.2f})")


def _cmd_signature(args: argparse.Namespace) -> None:
    cfg = _config_from_args(args)
    print(json.dumps(_signature(_read_tokens(args.path), cfg)))


# -----------------------------------------------------------
# Entrypoint
# -----------------------------------------------------------


def _add_sketch_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", type=Path, help="YAML sketch configuration")
    p.add_argument("--method", choices=METHODS, help="Signature strategy (default: streaming)")
    p.add_argument("--num-perm", type=int, help="Streaming signature length")
    p.add_argument("--seed", type=int, help="xxHash seed (default: 42)")
    p.add_argument("--family", choices=FAMILIES, help="Streaming permutation family")
    p.add_argument("--universe-size", type=int, help="C-MinHash universe size")
    p.add_argument("-k", type=int, help="C-MinHash signature length")
    p.add_argument("--permutation-seed", type=int, help="Seed for drawing sigma and pi")


def main(argv: List[str] | None = None) -> None:  # noqa: D401 – simple
    parser = argparse.ArgumentParser(
        prog="sigslasher",
        description="SigSlasher - MinHash / C-MinHash similarity signatures",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(required=True, dest="cmd")

    p_est = sub.add_parser("estimate", help="Estimate Jaccard similarity of two files")
    p_est.add_argument("a", type=Path, help="First file")
    p_est.add_argument("b", type=Path, help="Second file")
    p_est.add_argument("--threshold", type=float, help="Near-duplicate threshold (default: from config)")
    _add_sketch_args(p_est)
    p_est.set_defaults(func=_cmd_estimate)

    p_sig = sub.add_parser("signature", help="Print the signature of a file as JSON")
    p_sig.add_argument("path", type=Path, help="Input file")
    _add_sketch_args(p_sig)
    p_sig.set_defaults(func=_cmd_signature)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args.func(args)


if __name__ == "__main__":  # pragma: no cover
    main()
