"""
perfbayes: Bayesian comparison of model performance across resamples.

Fits a hierarchical model to per-resample performance statistics (one column
per candidate model, one row per cross-validation fold or bootstrap sample)
and answers comparison questions from the posterior: which model is better,
by how much, and whether the difference is practically meaningful.
"""

from .core import InputProcessor, PerformanceTable, normalize_table
from .core.transforms import register_transform
from .errors import (
    ConvergenceWarning,
    DomainError,
    IncompatibleDrawsError,
    PerfBayesError,
    SamplingError,
    SchemaError,
    UnsupportedFamilyError,
)
from .models.config import DominancePolicy, PriorConfig, SamplerConfig

# Import main API functions
from .api import best_model, contrast, fit, rank_models, summarize, summary_frame

# Import results classes
from .contrast import ContrastResult, ContrastResults
from .posterior import ModelDraws, PosteriorDraws, combine_draws

from . import stats

__version__ = "0.1.0"

__all__ = [
    # Core components
    "InputProcessor",
    "PerformanceTable",
    "normalize_table",
    "register_transform",
    # Configuration classes
    "PriorConfig",
    "SamplerConfig",
    "DominancePolicy",
    # Main API functions
    "fit",
    "summarize",
    "summary_frame",
    "contrast",
    "rank_models",
    "best_model",
    "combine_draws",
    # Results classes
    "PosteriorDraws",
    "ModelDraws",
    "ContrastResult",
    "ContrastResults",
    # Errors and warnings
    "PerfBayesError",
    "SchemaError",
    "DomainError",
    "UnsupportedFamilyError",
    "SamplingError",
    "IncompatibleDrawsError",
    "ConvergenceWarning",
    # Other modules
    "stats",
]
