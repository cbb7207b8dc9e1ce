"""
Posterior sampling for perfbayes.

``Sampler`` is the interface to a hierarchical-model sampling backend;
``NumPyroSampler`` runs NUTS and attaches convergence diagnostics to the
returned ``RawDraws``.
"""

from ._diagnostics import check_convergence, count_divergences, site_diagnostics
from .inference_engine import MCMCInferenceEngine, NumPyroSampler, Sampler
from .results import RawDraws

__all__ = [
    "Sampler",
    "NumPyroSampler",
    "MCMCInferenceEngine",
    "RawDraws",
    "check_convergence",
    "count_divergences",
    "site_diagnostics",
]
