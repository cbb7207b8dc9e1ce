"""Contrast statistics computed by counting over paired posterior draws.

Both models of a pair must come from the same fitted posterior so that draw
``i`` of model A and draw ``i`` of model B are one joint sample. Under that
pairing every probability is a plain Monte Carlo frequency:

- ``prob_gt_0 = mean(delta > 0)``
- ``prob_practically_negative = mean(delta < -tau)``
- ``prob_practically_equivalent = mean(|delta| < tau)``
- ``prob_practically_positive = mean(delta > tau)``

where ``delta = draws_A - draws_B`` and ``tau`` is the half-width of the
region of practical equivalence (ROPE). The inequalities are strict, so
``tau = 0`` gives a zero-width region and a practical-equivalence
probability of exactly zero.
"""

from typing import Dict

import numpy as np

from ..posterior.draws import ModelDraws, check_same_fit
from ..stats.summary import equal_tailed_interval


def difference(draws_a: ModelDraws, draws_b: ModelDraws) -> np.ndarray:
    """
    Draw-aligned difference ``draws_a - draws_b``.

    Raises
    ------
    IncompatibleDrawsError
        If the two columns come from different fits.
    """
    check_same_fit(draws_a, draws_b)
    return np.asarray(draws_a.values, dtype=float) - np.asarray(
        draws_b.values, dtype=float
    )


def contrast_statistics(
    delta: np.ndarray,
    rope_threshold: float = 0.0,
    interval_width: float = 0.90,
) -> Dict[str, float]:
    """
    Scalar summaries of a vector of posterior differences.

    Parameters
    ----------
    delta : np.ndarray, shape ``(n_draws,)``
        Posterior draws of the difference.
    rope_threshold : float, default=0.0
        ROPE half-width ``tau``; must be non-negative.
    interval_width : float, default=0.90
        Width of the equal-tailed credible interval.

    Returns
    -------
    dict
        ``mean_diff``, ``lower``, ``upper``, ``prob_gt_0``,
        ``prob_practically_negative``, ``prob_practically_equivalent``,
        ``prob_practically_positive``.
    """
    if rope_threshold < 0:
        raise ValueError(
            f"rope_threshold must be non-negative, got {rope_threshold}"
        )
    delta = np.asarray(delta, dtype=float)
    if delta.size == 0:
        raise ValueError("Cannot summarize an empty vector of differences")

    lower, upper = equal_tailed_interval(delta, interval_width)
    return {
        "mean_diff": float(np.mean(delta)),
        "lower": float(lower),
        "upper": float(upper),
        "prob_gt_0": float(np.mean(delta > 0)),
        "prob_practically_negative": float(np.mean(delta < -rope_threshold)),
        "prob_practically_equivalent": float(
            np.mean(np.abs(delta) < rope_threshold)
        ),
        "prob_practically_positive": float(np.mean(delta > rope_threshold)),
    }
