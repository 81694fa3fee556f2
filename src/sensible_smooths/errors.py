"""Error kinds and warning categories raised by sensible_smooths."""
from __future__ import annotations

__all__ = [
    "ModelIncompatible",
    "DimensionMismatch",
    "UnsupportedDerivative",
    "SamplingCancelled",
    "CovarianceWarning",
    "ConvergenceWarning",
]


class ModelIncompatible(ValueError):
    """The fitted model uses a family, link or basis kind with no evaluator."""


class DimensionMismatch(ValueError):
    """Coefficients, covariance and bases disagree about their sizes."""


class UnsupportedDerivative(ValueError):
    """Requested derivative order is not available for a basis kind."""


class SamplingCancelled(RuntimeError):
    """The caller's cancellation callback fired between draws or steps."""


class CovarianceWarning(UserWarning):
    """Covariance needed repair (clamped eigenvalues) or a fallback was used."""


class ConvergenceWarning(UserWarning):
    """Metropolis-Hastings acceptance rate fell outside the advisory band."""
