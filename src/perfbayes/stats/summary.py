"""Point and interval summaries of posterior draws."""

from typing import Dict, Tuple, Union

import numpy as np
import pandas as pd

from ..models.config.enums import IntervalMethod
from ..posterior.draws import PosteriorDraws

# ==============================================================================
# Interval functions
# ==============================================================================


def _check_width(interval_width: float) -> None:
    if not 0.0 < interval_width < 1.0:
        raise ValueError(
            "interval_width must lie strictly between 0 and 1, "
            f"got {interval_width}"
        )


def equal_tailed_interval(
    values, interval_width: float = 0.90, axis: int = 0
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Equal-tailed credible interval along ``axis``.

    For ``interval_width=0.9`` the bounds are the 5% and 95% quantiles.
    """
    _check_width(interval_width)
    tail = (1.0 - interval_width) / 2.0
    values = np.asarray(values, dtype=float)
    lower = np.quantile(values, tail, axis=axis)
    upper = np.quantile(values, 1.0 - tail, axis=axis)
    return lower, upper


def highest_density_interval(
    values, interval_width: float = 0.90
) -> Tuple[float, float]:
    """
    Narrowest interval containing ``interval_width`` of the 1-D draws.

    Parameters
    ----------
    values : array-like, shape ``(n_draws,)``
        Posterior draws.
    interval_width : float, default=0.90
        Probability mass inside the interval.

    Returns
    -------
    tuple of float
        ``(lower, upper)``.
    """
    _check_width(interval_width)
    ordered = np.sort(np.asarray(values, dtype=float).ravel())
    n = ordered.shape[0]
    if n == 0:
        raise ValueError("Cannot compute an interval from zero draws")
    n_inside = max(int(np.ceil(interval_width * n)), 1)
    if n_inside >= n:
        return float(ordered[0]), float(ordered[-1])
    widths = ordered[n_inside - 1 :] - ordered[: n - n_inside + 1]
    start = int(np.argmin(widths))
    return float(ordered[start]), float(ordered[start + n_inside - 1])


def credible_interval(
    values,
    interval_width: float = 0.90,
    method: Union[str, IntervalMethod] = IntervalMethod.EQUAL_TAILED,
) -> Tuple[float, float]:
    """Credible interval of 1-D draws with the requested method."""
    method = IntervalMethod(method)
    if method is IntervalMethod.HDI:
        return highest_density_interval(values, interval_width)
    lower, upper = equal_tailed_interval(
        np.asarray(values, dtype=float).ravel(), interval_width
    )
    return float(lower), float(upper)


# ==============================================================================
# Per-model summaries
# ==============================================================================


def summarize(
    draws: PosteriorDraws,
    interval_width: float = 0.90,
    method: Union[str, IntervalMethod] = IntervalMethod.EQUAL_TAILED,
) -> Dict[str, Dict[str, float]]:
    """
    Posterior mean and credible interval of every model.

    Parameters
    ----------
    draws : PosteriorDraws
        Tidy posterior draws.
    interval_width : float, default=0.90
        Probability mass of the credible interval.
    method : str or IntervalMethod, default="equal_tailed"
        ``"equal_tailed"`` (quantiles) or ``"hdi"`` (highest density).

    Returns
    -------
    dict
        ``{model_id: {"mean": float, "lower": float, "upper": float}}`` in
        model order.

    Raises
    ------
    ValueError
        If there are no models or no draws.

    Examples
    --------
    >>> summarize(draws, interval_width=0.9)["rf"]
    {'mean': 0.81, 'lower': 0.79, 'upper': 0.83}
    """
    if draws.n_models == 0 or draws.n_draws == 0:
        raise ValueError("Cannot summarize empty posterior draws")
    _check_width(interval_width)

    out = {}
    for j, model_id in enumerate(draws.model_ids):
        column = draws.values[:, j]
        lower, upper = credible_interval(column, interval_width, method)
        out[model_id] = {
            "mean": float(np.mean(column)),
            "lower": lower,
            "upper": upper,
        }
    return out


def summary_frame(
    draws: PosteriorDraws,
    interval_width: float = 0.90,
    method: Union[str, IntervalMethod] = IntervalMethod.EQUAL_TAILED,
) -> pd.DataFrame:
    """:func:`summarize` as a DataFrame with a ``model`` column."""
    summary = summarize(draws, interval_width=interval_width, method=method)
    frame = pd.DataFrame.from_dict(summary, orient="index")
    frame.index.name = "model"
    return frame.reset_index()[["model", "mean", "lower", "upper"]]
