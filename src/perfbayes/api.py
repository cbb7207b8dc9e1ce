"""
Simplified API for perfbayes.

This module provides the entry points most users need:

- ``fit()`` turns a wide per-resample performance table into tidy posterior
  draws of every model's mean performance.
- ``summarize()`` gives posterior means and credible intervals.
- ``contrast()`` compares models pairwise with a practical-equivalence
  threshold.
- ``rank_models()`` / ``best_model()`` order the models and apply a
  configurable dominance rule.

Examples
--------
>>> import perfbayes
>>> # One row per resample, one column per model's RMSE
>>> draws = perfbayes.fit(rmse_table, family="gaussian", seed=1)
>>> perfbayes.summarize(draws)
>>> perfbayes.contrast(draws, rope_threshold=0.05).summary()
>>>
>>> # Log-transform a strictly positive metric
>>> draws = perfbayes.fit(rmse_table, transform="log", seed=1)
>>>
>>> # Accuracy as a proportion of 250 assessment rows per fold
>>> draws = perfbayes.fit(
...     accuracy_table,
...     family="binomial",
...     family_options={"n_trials": 250},
... )
"""

import logging
import warnings
from typing import Any, Dict, Optional, Sequence, Union

import pandas as pd

from .contrast import best_model, contrast, rank_models
from .core.input_processor import PerformanceTable, normalize_table
from .core.transforms import Transform
from .errors import SamplingError
from .mcmc.inference_engine import NumPyroSampler, Sampler
from .models.builder import build_model_spec
from .models.config.groups import PriorConfig, SamplerConfig
from .models.families import Link, OutcomeFamily
from .posterior.draws import PosteriorDraws
from .posterior.tidy import tidy_draws
from .stats.summary import summarize, summary_frame

logger = logging.getLogger(__name__)

# ==============================================================================
# Main API function
# ==============================================================================


def fit(
    table: Union[pd.DataFrame, PerformanceTable],
    family: Union[str, OutcomeFamily] = "gaussian",
    link: Union[str, Link, None] = None,
    transform: Union[str, Transform, None] = "identity",
    seed: int = 42,
    # Table options
    id_columns: Optional[Sequence[str]] = None,
    metric: Optional[str] = None,
    # Model options
    reference: Optional[str] = None,
    hetero_var: bool = False,
    family_options: Optional[Dict[str, Any]] = None,
    priors: Optional[PriorConfig] = None,
    # Sampling options
    sampler_config: Optional[SamplerConfig] = None,
    sampler: Optional[Sampler] = None,
) -> PosteriorDraws:
    """
    Fit the hierarchical performance model and return tidy posterior draws.

    All validation (table schema, transform and family domains, family and
    link support) happens before any sampling work.

    Parameters
    ----------
    table : pd.DataFrame or PerformanceTable
        Wide table with resample key columns (``id``, ``id2``, ... by
        default) and one numeric column per model, or an already normalized
        ``PerformanceTable``.
    family : str or OutcomeFamily, default="gaussian"
        Outcome family: ``"gaussian"``, ``"gamma"``, ``"binomial"`` or
        ``"beta"``.
    link : str or Link, optional
        Link function; defaults to the family's canonical link.
    transform : str or Transform, default="identity"
        Outcome transform: ``"identity"``, ``"log"``, ``"logit"``,
        ``"fisher_z"`` or any registered transform.
    seed : int, default=42
        Sampler seed; the same seed and inputs give the same draws.
    id_columns : sequence of str, optional
        Resample key columns (outer first); auto-detected when omitted.
    metric : str, optional
        Metric suffix to strip from model columns (e.g. ``"RMSE"``).
    reference : str, optional
        Reference model for the treatment coding; defaults to the first
        model alphabetically.
    hetero_var : bool, default=False
        Per-model residual scale (Gaussian only).
    family_options : dict, optional
        Family constructor options, e.g. ``{"n_trials": 250}``.
    priors : PriorConfig, optional
        Prior scale multipliers.
    sampler_config : SamplerConfig, optional
        NUTS settings; defaults to ``SamplerConfig()``.
    sampler : Sampler, optional
        Sampling backend; defaults to ``NumPyroSampler()``.

    Returns
    -------
    PosteriorDraws
        Draws of each model's mean performance on the original scale, with
        any convergence warnings attached.

    Raises
    ------
    SchemaError
        Malformed table.
    DomainError
        Statistics outside the transform's or family's domain.
    UnsupportedFamilyError
        Unknown family or unsupported link.
    SamplingError
        The sampler produced no usable draws.
    """
    if isinstance(table, PerformanceTable):
        performance = table
    else:
        performance = normalize_table(table, id_columns=id_columns, metric=metric)

    spec = build_model_spec(
        performance,
        family=family,
        link=link,
        transform=transform,
        reference=reference,
        hetero_var=hetero_var,
        priors=priors,
        family_options=family_options,
    )
    logger.info("Fitting %s", spec.describe())

    sampler_config = sampler_config or SamplerConfig()
    sampler = sampler or NumPyroSampler()

    try:
        raw = sampler.sample(spec, sampler_config, seed)
    except SamplingError:
        raise
    except Exception as exc:
        raise SamplingError(f"Posterior sampler failed: {exc}") from exc

    draws = tidy_draws(raw, spec)

    for issue in draws.convergence_warnings:
        warnings.warn(issue, stacklevel=2)

    return draws


__all__ = [
    "fit",
    "summarize",
    "summary_frame",
    "contrast",
    "rank_models",
    "best_model",
]
