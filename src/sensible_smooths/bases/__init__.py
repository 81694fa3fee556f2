"""Basis kind implementations + registry."""

from __future__ import annotations

from typing import Dict

from ..errors import ModelIncompatible
from .common import BasisKind
from .cubic import CubicRegressionBasis, CyclicCubicBasis
from .pspline import PSplineBasis
from .simple import LinearBasis, RandomEffectBasis
from .thinplate import ThinPlateBasis

_BASES: Dict[str, BasisKind] = {
    "cr": CubicRegressionBasis(),
    "cc": CyclicCubicBasis(),
    "ps": PSplineBasis(),
    "tp": ThinPlateBasis(),
    "re": RandomEffectBasis(),
    "linear": LinearBasis(),
}


def get_basis_kind(name: str) -> BasisKind:
    """Return a basis kind implementation by its tag."""
    try:
        return _BASES[name]
    except KeyError as e:
        raise ModelIncompatible(
            f"Unknown basis kind {name!r}. Available: {tuple(_BASES.keys())}"
        ) from e


AVAILABLE_BASIS_KINDS = tuple(_BASES.keys())
