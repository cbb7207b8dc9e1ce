"""Conversion of raw coefficient draws into tidy per-model draws.

Raw draws are link-scale coefficients coded against a reference model. For
every draw the tidy layer

1. adds the intercept and each model's offset (``0`` for the reference) to
   get the link-scale mean of every model,
2. applies the inverse link and clips the mean into the family's
   support the same way the likelihood does, and
3. applies the inverse outcome transform.

The order is fixed: the link acts on the scale the model was fitted on, the
transform on the statistic's original units, so the link must be undone
first. The resample random effect has mean zero and does not enter, so the
result is each model's average performance over the resampling scheme.
"""

import logging
import uuid
from typing import Optional

import numpy as np

from ..errors import SamplingError
from ..mcmc.results import RawDraws
from ..models.builder import ModelSpec
from .draws import PosteriorDraws

logger = logging.getLogger(__name__)


def link_scale_means(raw: RawDraws, spec: ModelSpec) -> np.ndarray:
    """
    Per-model link-scale means, shape ``(n_draws, n_models)``.

    Raises
    ------
    SamplingError
        If the coefficient columns do not match the specification.
    """
    if tuple(raw.coefficient_names) != tuple(spec.coefficient_names):
        raise SamplingError(
            f"Coefficient columns {list(raw.coefficient_names)} do not match "
            f"the model specification {list(spec.coefficient_names)}"
        )
    return raw.coefficients @ spec.contrast_matrix()


def tidy_draws(
    raw: RawDraws, spec: ModelSpec, fit_id: Optional[str] = None
) -> PosteriorDraws:
    """
    Back-transform raw coefficient draws to per-model mean performance.

    Parameters
    ----------
    raw : RawDraws
        Link-scale coefficient draws.
    spec : ModelSpec
        Specification the draws were sampled from.
    fit_id : str, optional
        Identifier to stamp on the result; a fresh one is generated when
        omitted.

    Returns
    -------
    PosteriorDraws
        Draws on the original scale of the input statistic, one column per
        model in ``spec.model_ids`` order.

    Raises
    ------
    SamplingError
        If the back-transformed draws are not finite.
    """
    eta = link_scale_means(raw, spec)
    with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
        mean = spec.family.clip_mean(spec.link.inverse(eta))
        values = spec.transform.invert(mean)

    if not np.all(np.isfinite(values)):
        n_bad = int((~np.isfinite(values)).sum())
        raise SamplingError(
            f"{n_bad} posterior draw(s) are not finite after undoing the "
            f"{spec.link.name!r} link and the {spec.transform.name!r} transform"
        )

    fit_id = fit_id or uuid.uuid4().hex
    logger.debug("Tidied %d draws for fit %s", raw.n_draws, fit_id)
    return PosteriorDraws(
        values=values,
        model_ids=spec.model_ids,
        fit_id=fit_id,
        spec=spec,
        raw=raw,
        convergence_warnings=tuple(raw.warnings),
    )
