"""
Convergence diagnostics for NUTS runs.

Turns divergent transitions, split r-hat and effective sample size into
``ConvergenceWarning`` instances. The warnings are returned, never raised,
so the caller decides how to surface them.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from numpyro.diagnostics import effective_sample_size, split_gelman_rubin

from ..errors import ConvergenceWarning

logger = logging.getLogger(__name__)

# Split r-hat needs at least two halves of two draws each
_MIN_DRAWS_FOR_RHAT = 4


def count_divergences(extra_fields: Optional[Dict[str, Any]]) -> int:
    """Number of divergent transitions recorded by the sampler."""
    if not extra_fields or "diverging" not in extra_fields:
        return 0
    return int(np.asarray(extra_fields["diverging"]).sum())


def site_diagnostics(
    samples_by_chain: Dict[str, Any],
) -> Dict[str, Dict[str, float]]:
    """
    Worst split r-hat and smallest effective sample size per site.

    Parameters
    ----------
    samples_by_chain : dict
        Site name to draws of shape ``(n_chains, n_samples, ...)``.

    Returns
    -------
    dict
        ``{site: {"r_hat": float, "n_eff": float}}``; values are ``nan``
        when the site has too few draws.
    """
    out = {}
    for name, values in samples_by_chain.items():
        values = np.asarray(values, dtype=float)
        if values.ndim < 2 or values.shape[1] < _MIN_DRAWS_FOR_RHAT:
            out[name] = {"r_hat": float("nan"), "n_eff": float("nan")}
            continue
        r_hat = np.asarray(split_gelman_rubin(values), dtype=float)
        n_eff = np.asarray(effective_sample_size(values), dtype=float)
        out[name] = {
            "r_hat": _finite_extreme(r_hat, np.max),
            "n_eff": _finite_extreme(n_eff, np.min),
        }
    return out


def _finite_extreme(values: np.ndarray, reducer) -> float:
    """Reduce the finite entries of ``values``; ``nan`` if there are none."""
    finite = values[np.isfinite(values)]
    return float(reducer(finite)) if finite.size else float("nan")


def check_convergence(
    samples_by_chain: Dict[str, Any],
    extra_fields: Optional[Dict[str, Any]] = None,
    max_rhat: float = 1.05,
    min_ess: float = 100.0,
) -> Tuple[List[ConvergenceWarning], Dict[str, Any]]:
    """
    Collect convergence warnings for a finished run.

    Parameters
    ----------
    samples_by_chain : dict
        Site name to draws of shape ``(n_chains, n_samples, ...)``.
    extra_fields : dict, optional
        Sampler extra fields; ``"diverging"`` is used when present.
    max_rhat : float, default=1.05
        Largest acceptable split r-hat.
    min_ess : float, default=100.0
        Smallest acceptable effective sample size.

    Returns
    -------
    warnings : list of ConvergenceWarning
    diagnostics : dict
        ``{"n_divergences": int, "sites": {...}}``
    """
    found: List[ConvergenceWarning] = []

    n_divergent = count_divergences(extra_fields)
    if n_divergent:
        found.append(
            ConvergenceWarning(
                f"{n_divergent} divergent transition(s) after warmup; "
                "consider raising target_accept_prob",
                kind="divergences",
                value=float(n_divergent),
            )
        )

    sites = site_diagnostics(samples_by_chain)
    for name, stats in sites.items():
        r_hat, n_eff = stats["r_hat"], stats["n_eff"]
        if np.isfinite(r_hat) and r_hat > max_rhat:
            found.append(
                ConvergenceWarning(
                    f"Split r-hat of {name!r} is {r_hat:.3f} (> {max_rhat})",
                    kind="rhat",
                    parameter=name,
                    value=r_hat,
                )
            )
        if np.isfinite(n_eff) and n_eff < min_ess:
            found.append(
                ConvergenceWarning(
                    f"Effective sample size of {name!r} is {n_eff:.0f} "
                    f"(< {min_ess:.0f})",
                    kind="ess",
                    parameter=name,
                    value=n_eff,
                )
            )

    for warning in found:
        logger.warning("Convergence issue: %s", warning.message)

    return found, {"n_divergences": n_divergent, "sites": sites}
