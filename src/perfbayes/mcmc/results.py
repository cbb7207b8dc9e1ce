"""
Raw posterior draws returned by a sampler.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

import numpy as np

from ..errors import ConvergenceWarning, SamplingError
from ..models.builder import ModelSpec
from ..models.hierarchical import (
    INTERCEPT_SITE,
    OFFSET_SITE,
    RESAMPLE_EFFECT_SITE,
)

# ------------------------------------------------------------------------------
# Raw draws container
# ------------------------------------------------------------------------------


@dataclass(eq=False)
class RawDraws:
    """Link-scale coefficient draws plus sampler diagnostics.

    Parameters
    ----------
    coefficients : np.ndarray, shape ``(n_draws, n_coefficients)``
        Column ``0`` is the intercept (reference model); the remaining
        columns are the non-reference offsets in ``coefficient_names`` order.
    coefficient_names : tuple of str
        Names of the coefficient columns.
    aux : dict of str to np.ndarray
        Draws of every other sampled site (random-effect scale, residual
        scale, shape, precision), keyed by site name; the leading axis is
        the draw axis.
    warnings : list of ConvergenceWarning
        Reliability concerns reported by the sampler.
    diagnostics : dict
        Raw diagnostic values (divergences, r-hat, effective sample size).
    seed : int
        Seed the sampler was run with.
    n_chains : int
        Number of chains the draws were pooled from.
    """

    coefficients: np.ndarray
    coefficient_names: Tuple[str, ...]
    aux: Dict[str, np.ndarray] = field(default_factory=dict)
    warnings: List[ConvergenceWarning] = field(default_factory=list)
    diagnostics: Dict[str, Any] = field(default_factory=dict)
    seed: int = 0
    n_chains: int = 1

    def __post_init__(self):
        self.coefficients = np.asarray(self.coefficients, dtype=float)
        if self.coefficients.ndim != 2 or self.coefficients.shape[0] == 0:
            raise SamplingError(
                "The sampler returned no coefficient draws "
                f"(shape {self.coefficients.shape})"
            )
        if self.coefficients.shape[1] != len(self.coefficient_names):
            raise SamplingError(
                f"Expected {len(self.coefficient_names)} coefficient columns, "
                f"got {self.coefficients.shape[1]}"
            )
        if not np.all(np.isfinite(self.coefficients)):
            raise SamplingError("The sampler returned non-finite coefficient draws")

    @property
    def n_draws(self) -> int:
        return int(self.coefficients.shape[0])

    @property
    def intercept(self) -> np.ndarray:
        return self.coefficients[:, 0]

    @property
    def offsets(self) -> np.ndarray:
        return self.coefficients[:, 1:]

    # --------------------------------------------------------------------------

    @classmethod
    def from_samples(
        cls,
        samples: Dict[str, Any],
        spec: ModelSpec,
        **kwargs,
    ) -> "RawDraws":
        """
        Assemble raw draws from a dict of sampled sites.

        Parameters
        ----------
        samples : dict
            Site name to draws, pooled over chains (leading axis = draws).
            Must contain the intercept and offset sites.
        spec : ModelSpec
            Specification the samples were drawn for.
        **kwargs
            Forwarded to the constructor (``warnings``, ``diagnostics``,
            ``seed``, ``n_chains``).

        Raises
        ------
        SamplingError
            If the coefficient sites are missing or empty.
        """
        missing = [s for s in (INTERCEPT_SITE, OFFSET_SITE) if s not in samples]
        if missing:
            raise SamplingError(f"Sampler output is missing sites {missing}")

        intercept = np.asarray(samples[INTERCEPT_SITE], dtype=float).reshape(-1, 1)
        offsets = np.asarray(samples[OFFSET_SITE], dtype=float)
        offsets = offsets.reshape(intercept.shape[0], -1)

        aux = {
            name: np.asarray(values)
            for name, values in samples.items()
            if name not in (INTERCEPT_SITE, OFFSET_SITE, RESAMPLE_EFFECT_SITE)
        }
        return cls(
            coefficients=np.concatenate([intercept, offsets], axis=1),
            coefficient_names=spec.coefficient_names,
            aux=aux,
            **kwargs,
        )
