"""Posterior contrasts between models, rankings and dominance decisions.

This module defines:

- ``ContrastResult``: posterior draws of ``estimate_a - estimate_b`` for one
  model pair, with lazily computed scalar summaries.
- ``ContrastResults``: the ordered collection returned by :func:`contrast`,
  indexable by position or by ``(model_a, model_b)``.
- ``contrast()``: the pairwise contrast engine.
- ``rank_models()`` and ``best_model()``: ordering of models by posterior
  mean and the configurable rule for declaring a single best model.

Design decisions
----------------
- Differences are always draw-index aligned and only allowed within one fit;
  pairing columns from two fits raises ``IncompatibleDrawsError``.
- Summaries are cached per result after first access. The underlying draws
  are read-only, so the cache can never go stale.
- Ranking sorts by posterior mean; exact ties go to the narrower credible
  interval, and remaining ties keep model order.
"""

import logging
from collections import abc
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..models.config.enums import IntervalMethod
from ..models.config.groups import DominancePolicy
from ..posterior.draws import PosteriorDraws, combine_draws
from ..stats.summary import credible_interval
from ._empirical import contrast_statistics, difference
from ._pairs import ModelSubset, enumerate_pairs

logger = logging.getLogger(__name__)

DrawsInput = Union[PosteriorDraws, Sequence[PosteriorDraws]]

# ------------------------------------------------------------------------------
# Single contrast
# ------------------------------------------------------------------------------


@dataclass(eq=False)
class ContrastResult:
    """Posterior contrast ``model_a - model_b``.

    Parameters
    ----------
    model_a, model_b : str
        Models being compared; the difference is ``model_a - model_b``.
    difference : np.ndarray, shape ``(n_draws,)``
        Draw-aligned posterior differences.
    rope_threshold : float, default=0.0
        Half-width of the region of practical equivalence.
    interval_width : float, default=0.90
        Width of the credible interval of the difference.
    fit_id : str, optional
        Fit the draws come from.
    effect_size : np.ndarray, optional
        ``difference`` divided by the pooled standard deviation of the two
        models' observed statistics.
    """

    model_a: str
    model_b: str
    difference: np.ndarray
    rope_threshold: float = 0.0
    interval_width: float = 0.90
    fit_id: Optional[str] = None
    effect_size: Optional[np.ndarray] = field(default=None, repr=False)

    _stats: Optional[Dict[str, float]] = field(
        default=None, repr=False, init=False
    )

    def __post_init__(self):
        self.difference = np.array(self.difference, dtype=float)
        self.difference.setflags(write=False)

    # ------------------------------------------------------------------
    # Lazily computed summaries
    # ------------------------------------------------------------------

    @property
    def statistics(self) -> Dict[str, float]:
        """All scalar summaries as a dict (computed once)."""
        if self._stats is None:
            self._stats = contrast_statistics(
                self.difference,
                rope_threshold=self.rope_threshold,
                interval_width=self.interval_width,
            )
        return dict(self._stats)

    @property
    def pair(self) -> Tuple[str, str]:
        return (self.model_a, self.model_b)

    @property
    def label(self) -> str:
        return f"{self.model_a} vs {self.model_b}"

    @property
    def n_draws(self) -> int:
        return int(self.difference.shape[0])

    @property
    def mean_diff(self) -> float:
        return self.statistics["mean_diff"]

    @property
    def lower(self) -> float:
        return self.statistics["lower"]

    @property
    def upper(self) -> float:
        return self.statistics["upper"]

    @property
    def prob_gt_0(self) -> float:
        """Posterior probability that ``model_a`` exceeds ``model_b``."""
        return self.statistics["prob_gt_0"]

    @property
    def prob_practically_equivalent(self) -> float:
        """Posterior probability that ``|difference| < rope_threshold``."""
        return self.statistics["prob_practically_equivalent"]

    @property
    def prob_practically_negative(self) -> float:
        return self.statistics["prob_practically_negative"]

    @property
    def prob_practically_positive(self) -> float:
        return self.statistics["prob_practically_positive"]

    def to_dict(self) -> Dict[str, object]:
        """Flat record used by :meth:`ContrastResults.summary`."""
        record = {
            "contrast": self.label,
            "model_a": self.model_a,
            "model_b": self.model_b,
        }
        record.update(self.statistics)
        record["rope_threshold"] = self.rope_threshold
        if self.effect_size is not None:
            record["effect_size"] = float(np.mean(self.effect_size))
        return record

    def __repr__(self):
        return (
            f"ContrastResult({self.model_a!r} - {self.model_b!r}, "
            f"mean_diff={self.mean_diff:.4g}, prob_gt_0={self.prob_gt_0:.3f}, "
            f"prob_practically_equivalent="
            f"{self.prob_practically_equivalent:.3f})"
        )


# ------------------------------------------------------------------------------
# Collection of contrasts
# ------------------------------------------------------------------------------


class ContrastResults(abc.Sequence):
    """Ordered collection of ``ContrastResult``.

    Indexable by position or by a ``(model_a, model_b)`` tuple.

    Examples
    --------
    >>> results = contrast(draws, rope_threshold=0.02)
    >>> results[0].prob_gt_0
    >>> results["glm", "rf"].mean_diff
    >>> results.summary()
    """

    def __init__(self, results: Sequence[ContrastResult]):
        self._results: List[ContrastResult] = list(results)
        self._by_pair = {r.pair: r for r in self._results}

    def __len__(self) -> int:
        return len(self._results)

    def __iter__(self) -> Iterator[ContrastResult]:
        return iter(self._results)

    def __getitem__(self, key):
        if isinstance(key, tuple):
            if key not in self._by_pair:
                raise KeyError(f"No contrast for pair {key}")
            return self._by_pair[key]
        return self._results[key]

    @property
    def pairs(self) -> List[Tuple[str, str]]:
        return [r.pair for r in self._results]

    def summary(self) -> pd.DataFrame:
        """One row per contrast with all scalar summaries."""
        columns = [
            "contrast",
            "model_a",
            "model_b",
            "mean_diff",
            "lower",
            "upper",
            "prob_gt_0",
            "prob_practically_negative",
            "prob_practically_equivalent",
            "prob_practically_positive",
            "rope_threshold",
        ]
        records = [r.to_dict() for r in self._results]
        if any("effect_size" in rec for rec in records):
            columns.append("effect_size")
        return pd.DataFrame.from_records(records, columns=columns)

    def __repr__(self):
        return f"ContrastResults({self.pairs})"


# ------------------------------------------------------------------------------
# Contrast engine
# ------------------------------------------------------------------------------


def _pooled_scale(draws: PosteriorDraws, model_a: str, model_b: str) -> float:
    """Pooled SD of the observed statistics of two models."""
    spec = draws.spec
    if spec is None:
        raise ValueError(
            "effect_size requires draws that carry their model specification"
        )
    frame = spec.table.data
    variances = [
        float(frame.loc[frame["model_id"] == m, "statistic"].var(ddof=1))
        for m in (model_a, model_b)
    ]
    scale = float(np.sqrt(np.nanmean(variances)))
    if not np.isfinite(scale) or scale <= 0:
        raise ValueError(
            f"Cannot normalize {model_a!r} vs {model_b!r}: the pooled "
            "standard deviation of their statistics is zero or undefined"
        )
    return scale


def contrast(
    draws: DrawsInput,
    subset_a: ModelSubset = None,
    subset_b: ModelSubset = None,
    rope_threshold: float = 0.0,
    interval_width: float = 0.90,
    effect_size: bool = False,
) -> ContrastResults:
    """
    Pairwise posterior contrasts between models.

    Parameters
    ----------
    draws : PosteriorDraws or sequence of PosteriorDraws
        Tidy draws; a sequence is merged and must come from one fit.
    subset_a, subset_b : str or iterable of str, optional
        Restrict the pairs; see
        :func:`perfbayes.contrast._pairs.enumerate_pairs`. By default every
        unordered pair is compared.
    rope_threshold : float, default=0.0
        Practical effect size: differences with ``|delta| < rope_threshold``
        count as practically equivalent. ``0`` disables the ROPE.
    interval_width : float, default=0.90
        Width of the credible interval of each difference.
    effect_size : bool, default=False
        Also compute the difference divided by the pooled standard deviation
        of the two models' observed statistics.

    Returns
    -------
    ContrastResults
        One ``ContrastResult`` per pair, in pair order.

    Raises
    ------
    IncompatibleDrawsError
        If the draws come from more than one fit.
    KeyError
        If a subset names an unknown model.
    ValueError
        If the subsets overlap or ``rope_threshold`` is negative.
    """
    if rope_threshold < 0:
        raise ValueError(
            f"rope_threshold must be non-negative, got {rope_threshold}"
        )
    draws = combine_draws(draws)
    pairs = enumerate_pairs(draws.model_ids, subset_a, subset_b)

    results = []
    for model_a, model_b in pairs:
        delta = difference(draws[model_a], draws[model_b])
        normalized = None
        if effect_size:
            normalized = delta / _pooled_scale(draws, model_a, model_b)
        results.append(
            ContrastResult(
                model_a=model_a,
                model_b=model_b,
                difference=delta,
                rope_threshold=float(rope_threshold),
                interval_width=interval_width,
                fit_id=draws.fit_id,
                effect_size=normalized,
            )
        )
    logger.debug("Computed %d contrasts for fit %s", len(results), draws.fit_id)
    return ContrastResults(results)


# ------------------------------------------------------------------------------
# Ranking
# ------------------------------------------------------------------------------


def rank_models(
    draws: DrawsInput,
    interval_width: float = 0.90,
    higher_is_better: bool = True,
    method: Union[str, IntervalMethod] = IntervalMethod.EQUAL_TAILED,
) -> pd.DataFrame:
    """
    Order models by posterior mean performance.

    Parameters
    ----------
    draws : PosteriorDraws or sequence of PosteriorDraws
        Tidy draws from one fit.
    interval_width : float, default=0.90
        Width of the credible interval used for tie-breaking.
    higher_is_better : bool, default=True
        ``False`` for error metrics such as RMSE.
    method : str or IntervalMethod, default="equal_tailed"
        Credible interval construction.

    Returns
    -------
    pd.DataFrame
        Columns ``rank``, ``model``, ``mean``, ``lower``, ``upper``,
        ``width``; best model first. Models with equal means are ordered by
        narrower interval.
    """
    draws = combine_draws(draws)
    if draws.n_models == 0 or draws.n_draws == 0:
        raise ValueError("Cannot rank empty posterior draws")

    rows = []
    for j, model_id in enumerate(draws.model_ids):
        column = draws.values[:, j]
        lower, upper = credible_interval(column, interval_width, method)
        rows.append(
            {
                "model": model_id,
                "mean": float(np.mean(column)),
                "lower": lower,
                "upper": upper,
                "width": upper - lower,
            }
        )

    sign = -1.0 if higher_is_better else 1.0
    rows.sort(key=lambda row: (sign * row["mean"], row["width"]))
    frame = pd.DataFrame(
        rows, columns=["model", "mean", "lower", "upper", "width"]
    )
    frame.insert(0, "rank", np.arange(1, len(rows) + 1))
    return frame


def best_model(
    draws: DrawsInput, policy: Optional[DominancePolicy] = None
) -> Optional[str]:
    """
    Declare a single best model, if the posterior supports it.

    The top-ranked model wins when, against every other model, the posterior
    probability that it is better by more than ``policy.rope_threshold`` is
    at least ``policy.prob_threshold``.

    Parameters
    ----------
    draws : PosteriorDraws or sequence of PosteriorDraws
        Tidy draws from one fit.
    policy : DominancePolicy, optional
        Decision rule; defaults to ``DominancePolicy()``.

    Returns
    -------
    str or None
        The dominant model, or ``None`` when no model dominates.
    """
    policy = policy or DominancePolicy()
    draws = combine_draws(draws)
    ranking = rank_models(
        draws,
        interval_width=policy.interval_width,
        higher_is_better=policy.higher_is_better,
    )
    top = ranking["model"].iloc[0]

    for other in ranking["model"].iloc[1:]:
        if policy.higher_is_better:
            delta = difference(draws[top], draws[other])
        else:
            delta = difference(draws[other], draws[top])
        prob_better = float(np.mean(delta > policy.rope_threshold))
        if prob_better < policy.prob_threshold:
            logger.info(
                "%r does not dominate %r (P(better) = %.3f < %.3f)",
                top,
                other,
                prob_better,
                policy.prob_threshold,
            )
            return None
    return top
