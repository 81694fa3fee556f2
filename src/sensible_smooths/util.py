from __future__ import annotations

import hashlib
from typing import Any, Mapping, Optional, Sequence, Tuple

import numpy as np

# Spawn-key prefixes keep the coefficient, response and chain streams disjoint
# for the same user seed.
STREAM_COEFFICIENTS = 0
STREAM_RESPONSE = 1
STREAM_CHAINS = 2


def prod(shape: Tuple[int, ...]) -> int:
    n = 1
    for s in shape:
        n *= int(s)
    return int(n)


def is_sequence(x: Any) -> bool:
    return isinstance(x, (list, tuple))


def as_vector(x: Any, name: str) -> np.ndarray:
    """Return ``x`` as a 1-D float array or raise."""
    arr = np.asarray(x, dtype=float)
    if arr.ndim == 0:
        arr = arr.reshape(1)
    if arr.ndim != 1:
        raise ValueError(f"{name} must be one-dimensional; got shape {arr.shape}.")
    return arr


def as_square(x: Any, name: str) -> np.ndarray:
    arr = np.asarray(x, dtype=float)
    if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
        raise ValueError(f"{name} must be a square matrix; got shape {arr.shape}.")
    return arr


def readonly(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


def points_digest(columns: Mapping[str, np.ndarray], names: Sequence[str]) -> str:
    """Stable digest of the evaluation points for ``names`` (cache key)."""
    h = hashlib.sha1()
    for name in names:
        col = np.ascontiguousarray(columns[name])
        h.update(name.encode("utf-8"))
        h.update(str(col.dtype).encode("ascii"))
        h.update(str(col.shape).encode("ascii"))
        if col.dtype == object:
            h.update(repr(col.tolist()).encode("utf-8"))
        else:
            h.update(col.tobytes())
    return h.hexdigest()


def resolve_seed(seed: Optional[int]) -> int:
    """Return ``seed`` or fresh OS entropy so a run can be replayed."""
    if seed is None:
        return int(np.random.SeedSequence().entropy)
    seed = int(seed)
    if seed < 0:
        raise ValueError("seed must be a non-negative integer.")
    return seed


def substream(seed: int, stream: int, index: int) -> np.random.Generator:
    """Generator for draw/chain ``index`` of ``stream``.

    Depends only on (seed, stream, index), never on how many draws are made
    or which worker makes them.
    """
    ss = np.random.SeedSequence(int(seed), spawn_key=(int(stream), int(index)))
    return np.random.default_rng(ss)
