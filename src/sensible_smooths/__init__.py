"""sensible_smooths public API."""
from .aggregate import SampleAggregator, SampleRecord
from .basis import Basis, BasisEvaluator, evaluate_basis
from .config import SamplingConfig
from .data import DataSlice, data_slice, evenly
from .errors import (
    ConvergenceWarning,
    CovarianceWarning,
    DimensionMismatch,
    ModelIncompatible,
    SamplingCancelled,
    UnsupportedDerivative,
)
from .inference import build_log_posterior
from .model import FittedModel, ModelAdapter
from .penalty import PenaltyAccessor, PenaltyMatrix
from .posterior import (
    basis_table,
    coefficient_samples,
    draw_coefficients,
    fitted_samples,
    penalty_table,
    predicted_samples,
    smooth_samples,
    term_grid,
)
from .projection import FittedValueProjector, ProjectedValues
from .samplers import (
    GaussianSampler,
    MetropolisHastingsSampler,
    PosteriorDraws,
    get_sampler,
)
from .terms import SmoothTerm, construct_smooth

GaussianPosteriorSampler = GaussianSampler

__all__ = [
    "Basis",
    "BasisEvaluator",
    "ConvergenceWarning",
    "CovarianceWarning",
    "DataSlice",
    "DimensionMismatch",
    "FittedModel",
    "FittedValueProjector",
    "GaussianPosteriorSampler",
    "GaussianSampler",
    "MetropolisHastingsSampler",
    "ModelAdapter",
    "ModelIncompatible",
    "PenaltyAccessor",
    "PenaltyMatrix",
    "PosteriorDraws",
    "ProjectedValues",
    "SampleAggregator",
    "SampleRecord",
    "SamplingCancelled",
    "SamplingConfig",
    "SmoothTerm",
    "UnsupportedDerivative",
    "basis_table",
    "build_log_posterior",
    "coefficient_samples",
    "construct_smooth",
    "data_slice",
    "draw_coefficients",
    "evaluate_basis",
    "evenly",
    "fitted_samples",
    "get_sampler",
    "penalty_table",
    "predicted_samples",
    "smooth_samples",
    "term_grid",
]
