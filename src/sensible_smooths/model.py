"""Fitted-model handles and the read-only adapter the rest of the package uses.

The fitting engine is external: anything exposing ``coefficients()``,
``covariance(unconditional)``, ``smooth_terms(predictor)``, ``link(predictor)``
and ``family()`` can be wrapped in a :class:`ModelAdapter`. ``FittedModel`` is
a plain in-memory handle for results produced elsewhere.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union
from warnings import warn

import numpy as np

from .bases import get_basis_kind
from .errors import CovarianceWarning, DimensionMismatch
from .families import Family, get_family
from .links import Link, get_link
from .terms import SmoothTerm
from .util import as_square, as_vector, readonly

__all__ = ["PredictorSpec", "FittedModel", "ModelAdapter", "as_adapter", "place_terms"]


@dataclass(frozen=True)
class PredictorSpec:
    terms: Tuple[SmoothTerm, ...]
    link: str
    intercept: bool = True


def place_terms(
    groups: Sequence[Sequence[SmoothTerm]],
    intercept: Union[bool, Sequence[bool]] = True,
) -> Tuple[Tuple[Tuple[SmoothTerm, ...], ...], int]:
    """Assign coefficient offsets: per predictor an optional intercept, then
    each term's block in order. Returns the placed groups and p."""
    if isinstance(intercept, bool):
        intercept = [intercept] * len(groups)
    if len(intercept) != len(groups):
        raise ValueError("Need one intercept flag per predictor.")
    placed: List[Tuple[SmoothTerm, ...]] = []
    offset = 0
    for i, (terms, ic) in enumerate(zip(groups, intercept)):
        offset += 1 if ic else 0
        row = []
        for term in terms:
            row.append(term.placed(offset=offset, predictor=i))
            offset += term.rank
        placed.append(tuple(row))
    return tuple(placed), offset


@dataclass(frozen=True, eq=False)
class FittedModel:
    """Coefficients, covariance and term layout handed over by a fitting engine."""

    coef: np.ndarray
    vp: np.ndarray
    predictor_specs: Tuple[PredictorSpec, ...]
    family_name: str = "gaussian"
    vc: Optional[np.ndarray] = None  # covariance corrected for sp uncertainty
    dispersion: float = 1.0

    @staticmethod
    def from_terms(
        coef: Any,
        vp: Any,
        terms: Sequence[Any],
        *,
        family: str = "gaussian",
        links: Optional[Sequence[str]] = None,
        intercept: Union[bool, Sequence[bool]] = True,
        vc: Optional[Any] = None,
        dispersion: float = 1.0,
    ) -> "FittedModel":
        """Build a handle from unplaced terms.

        ``terms`` is a list of terms for a single-predictor model, or a list of
        lists (one per linear predictor) for distributional families.
        """
        if all(isinstance(t, SmoothTerm) for t in terms):
            groups: Sequence[Sequence[SmoothTerm]] = [list(terms)]
        else:
            groups = [list(g) for g in terms]
        fam = get_family(family)
        if links is None:
            links = fam.links
        if len(links) != len(groups):
            raise ValueError(f"Need one link per predictor; got {len(links)} for {len(groups)}.")
        placed, _ = place_terms(groups, intercept)
        flags = [intercept] * len(groups) if isinstance(intercept, bool) else list(intercept)
        specs = tuple(
            PredictorSpec(terms=t, link=str(lk), intercept=bool(ic))
            for t, lk, ic in zip(placed, links, flags)
        )
        return FittedModel(
            coef=np.asarray(coef, dtype=float),
            vp=np.asarray(vp, dtype=float),
            predictor_specs=specs,
            family_name=family,
            vc=None if vc is None else np.asarray(vc, dtype=float),
            dispersion=float(dispersion),
        )

    # ---- handle contract ----
    def coefficients(self) -> np.ndarray:
        return self.coef

    def covariance(self, unconditional: bool = False) -> Optional[np.ndarray]:
        return self.vc if unconditional else self.vp

    def smooth_terms(self, predictor: int = 0) -> Tuple[SmoothTerm, ...]:
        return self.predictor_specs[predictor].terms

    def link(self, predictor: int = 0) -> str:
        return self.predictor_specs[predictor].link

    def family(self) -> str:
        return self.family_name

    def has_intercept(self, predictor: int = 0) -> bool:
        return self.predictor_specs[predictor].intercept

    def scale(self) -> float:
        return self.dispersion


class ModelAdapter:
    """Validated, read-only view over a fitted-model handle.

    Every check happens here, at construction: unknown family/link/basis kind
    raises :class:`ModelIncompatible`, a term layout that does not tile the
    coefficient vector raises :class:`DimensionMismatch`.
    """

    def __init__(self, handle: Any) -> None:
        self._handle = handle
        self._family: Family = get_family(handle.family())
        n = self._family.n_predictors

        self._beta = readonly(as_vector(handle.coefficients(), "coefficients").copy())
        p = self._beta.size

        self._links: Tuple[Link, ...] = tuple(get_link(handle.link(i)) for i in range(n))
        self._terms: Tuple[Tuple[SmoothTerm, ...], ...] = tuple(
            tuple(handle.smooth_terms(i)) for i in range(n)
        )
        has_ic = getattr(handle, "has_intercept", None)
        self._intercepts: Tuple[bool, ...] = tuple(
            True if has_ic is None else bool(has_ic(i)) for i in range(n)
        )
        self._blocks = self._check_layout(p)

        vp = as_square(handle.covariance(False), "covariance")
        self._check_cov(vp, "covariance")
        self._vp = readonly(vp.copy())

        labels = [t.label for t in self.terms()]
        dup = sorted({x for x in labels if labels.count(x) > 1})
        if dup:
            raise ValueError(f"Term labels must be unique across predictors; repeated: {dup}")
        self._by_label: Dict[str, SmoothTerm] = {t.label: t for t in self.terms()}

        scale_fn = getattr(handle, "scale", None)
        self._scale = 1.0 if scale_fn is None else float(scale_fn())

    def _check_layout(self, p: int) -> Tuple[slice, ...]:
        blocks = []
        start = 0
        for i, terms in enumerate(self._terms):
            expected = start + (1 if self._intercepts[i] else 0)
            for term in terms:
                get_basis_kind(term.kind)
                if term.predictor != i:
                    raise ValueError(
                        f"Term {term.label!r} is tagged for predictor {term.predictor} "
                        f"but listed under predictor {i}."
                    )
                if term.offset != expected:
                    raise DimensionMismatch(
                        f"Term {term.label!r} starts at coefficient {term.offset}; "
                        f"expected {expected}."
                    )
                if term.penalty is not None and term.penalty.shape != (term.rank, term.rank):
                    raise DimensionMismatch(
                        f"Penalty of {term.label!r} is {term.penalty.shape}; "
                        f"term rank is {term.rank}."
                    )
                expected += term.rank
            blocks.append(slice(start, expected))
            start = expected
        if start != p:
            raise DimensionMismatch(
                f"Term ranks plus intercepts account for {start} coefficients; "
                f"the model has {p}."
            )
        return tuple(blocks)

    def _check_cov(self, V: np.ndarray, name: str) -> None:
        p = self._beta.size
        if V.shape != (p, p):
            raise DimensionMismatch(f"{name} is {V.shape}; expected ({p}, {p}).")

    # ---- contract ----
    @property
    def has_unconditional(self) -> bool:
        """Whether the handle carries a smoothing-parameter corrected covariance."""
        return self._handle.covariance(True) is not None

    def coefficients(self) -> np.ndarray:
        return self._beta

    def covariance(self, unconditional: bool = False) -> np.ndarray:
        """Coefficient covariance, optionally the smoothing-parameter corrected one.

        The corrected matrix comes from the handle; when it has none the
        conditional matrix is returned with a :class:`CovarianceWarning`.
        """
        if not unconditional:
            return self._vp
        V = self._handle.covariance(True)
        if V is None:
            warn(
                "Covariance corrected for smoothing parameter uncertainty is not "
                "available; using the conditional covariance.",
                CovarianceWarning,
                stacklevel=2,
            )
            return self._vp
        V = as_square(V, "unconditional covariance")
        self._check_cov(V, "unconditional covariance")
        return readonly(V.copy())

    def smooth_terms(self, predictor: int = 0) -> Tuple[SmoothTerm, ...]:
        return self._terms[self._predictor_index(predictor)]

    def link(self, predictor: int = 0) -> Link:
        return self._links[self._predictor_index(predictor)]

    def inverse_link(self, predictor: int = 0) -> Callable[[np.ndarray], np.ndarray]:
        return self.link(predictor).inverse

    def family(self) -> Family:
        return self._family

    # ---- conveniences ----
    @property
    def n_predictors(self) -> int:
        return self._family.n_predictors

    @property
    def n_coefficients(self) -> int:
        return int(self._beta.size)

    @property
    def predictor_names(self) -> Tuple[str, ...]:
        return self._family.parameters

    def _predictor_index(self, predictor: Union[int, str]) -> int:
        if isinstance(predictor, str):
            try:
                return self.predictor_names.index(predictor)
            except ValueError as e:
                raise KeyError(
                    f"Unknown predictor {predictor!r}; have {self.predictor_names}."
                ) from e
        i = int(predictor)
        if not 0 <= i < self.n_predictors:
            raise IndexError(f"predictor must be in [0, {self.n_predictors}); got {i}.")
        return i

    def has_intercept(self, predictor: int = 0) -> bool:
        return self._intercepts[self._predictor_index(predictor)]

    def coefficient_block(self, predictor: int = 0) -> slice:
        return self._blocks[self._predictor_index(predictor)]

    def terms(self) -> Tuple[SmoothTerm, ...]:
        return tuple(t for group in self._terms for t in group)

    def term(self, label: str) -> SmoothTerm:
        try:
            return self._by_label[label]
        except KeyError as e:
            raise KeyError(
                f"Unknown term {label!r}. Available: {tuple(self._by_label.keys())}"
            ) from e

    def coefficient_names(self) -> Tuple[str, ...]:
        names: List[str] = []
        for i, terms in enumerate(self._terms):
            if self._intercepts[i]:
                names.append("(Intercept)" if i == 0 else f"(Intercept).{i}")
            for term in terms:
                if term.rank == 1:
                    names.append(term.label)
                else:
                    names.extend(f"{term.label}.{j + 1}" for j in range(term.rank))
        return tuple(names)

    def typical_values(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for term in self.terms():
            for name, value in term.typical.items():
                out.setdefault(name, value)
        return out

    def scale(self) -> float:
        return self._scale


def as_adapter(model: Any) -> ModelAdapter:
    """Wrap ``model`` unless it already is an adapter."""
    if isinstance(model, ModelAdapter):
        return model
    return ModelAdapter(model)
