"""Builder for the declarative hierarchical model specification.

The specification describes a generalized linear mixed model with

- one fixed effect per model, coded as treatment contrasts: the reference
  model is the intercept and every other model gets an offset coefficient,
- one random intercept per resample, shared by all models evaluated on that
  resample,
- an outcome family and link function, and
- an outcome transform applied to the raw statistic before modeling.

No sampling happens here; :class:`ModelSpec` is consumed by a sampler
(see :mod:`perfbayes.mcmc`) and later by the tidy layer to undo the coding,
the link and the transform.

Coefficient coding
------------------
Coefficient column ``0`` is ``"(Intercept)"`` and belongs to the reference
model. Columns ``1..M-1`` hold the offsets of the non-reference models in
model order. The link-scale mean of model ``m`` in one draw is therefore::

    eta_m = intercept + (0 if m is the reference else offset_m)
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np

from ..core.input_processor import PerformanceTable
from ..core.transforms import Transform, get_transform
from ..errors import SchemaError, UnsupportedFamilyError
from .config.groups import PriorConfig
from .families import Link, OutcomeFamily, get_family, resolve_link

logger = logging.getLogger(__name__)

INTERCEPT_NAME = "(Intercept)"

# ------------------------------------------------------------------------------
# Model specification
# ------------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class ModelSpec:
    """Declarative specification of the model-effect + resample-effect GLMM.

    Parameters
    ----------
    table : PerformanceTable
        Normalized input table.
    family : OutcomeFamily
        Outcome family.
    link : Link
        Link function.
    transform : Transform
        Outcome transform (already applied to ``y``).
    reference : str
        Reference model coded as the intercept.
    design_matrix : np.ndarray, shape ``(n_obs, n_models)``
        Intercept column followed by one treatment dummy per non-reference
        model.
    coefficient_names : tuple of str
        Names of the design-matrix columns.
    model_index : np.ndarray, shape ``(n_obs,)``
        Position of each row's model in ``model_ids``.
    resample_index : np.ndarray, shape ``(n_obs,)``
        Position of each row's resample in ``resample_ids``.
    y : np.ndarray, shape ``(n_obs,)``
        Transformed outcome statistic.
    observations : np.ndarray, shape ``(n_obs,)``
        ``y`` converted to the likelihood's observation space.
    priors : dict
        Data-scaled prior hyperparameters.
    hetero_var : bool
        Whether each model has its own residual scale.
    """

    table: PerformanceTable
    family: OutcomeFamily
    link: Link
    transform: Transform
    reference: str
    design_matrix: np.ndarray
    coefficient_names: Tuple[str, ...]
    model_index: np.ndarray
    resample_index: np.ndarray
    y: np.ndarray
    observations: np.ndarray
    priors: Dict[str, Any] = field(default_factory=dict)
    hetero_var: bool = False

    # --------------------------------------------------------------------------

    @property
    def model_ids(self) -> Tuple[str, ...]:
        return self.table.model_ids

    @property
    def resample_ids(self) -> Tuple[str, ...]:
        return self.table.resample_ids

    @property
    def n_models(self) -> int:
        return self.table.n_models

    @property
    def n_resamples(self) -> int:
        return self.table.n_resamples

    @property
    def n_obs(self) -> int:
        return int(self.y.shape[0])

    @property
    def n_coefficients(self) -> int:
        return len(self.coefficient_names)

    @property
    def reference_index(self) -> int:
        """Position of the reference model in ``model_ids``."""
        return self.model_ids.index(self.reference)

    def coefficient_column(self, model_id: str) -> Optional[int]:
        """
        Coefficient column holding ``model_id``'s offset.

        Returns ``None`` for the reference model, whose mean is the intercept.
        """
        if model_id not in self.model_ids:
            raise KeyError(f"Unknown model {model_id!r}")
        if model_id == self.reference:
            return None
        return self.coefficient_names.index(model_id)

    def contrast_matrix(self) -> np.ndarray:
        """
        Matrix ``L`` of shape ``(n_coefficients, n_models)`` such that
        ``coefficients @ L`` gives every model's link-scale mean.
        """
        L = np.zeros((self.n_coefficients, self.n_models))
        L[0, :] = 1.0
        for j, model_id in enumerate(self.model_ids):
            column = self.coefficient_column(model_id)
            if column is not None:
                L[column, j] = 1.0
        return L

    def describe(self) -> Dict[str, Any]:
        """Plain-dict summary of the specification, handy for logging."""
        return {
            "family": self.family.name,
            "link": self.link.name,
            "transform": self.transform.name,
            "reference": self.reference,
            "models": list(self.model_ids),
            "n_resamples": self.n_resamples,
            "n_obs": self.n_obs,
            "hetero_var": self.hetero_var,
        }


# ------------------------------------------------------------------------------
# Builder
# ------------------------------------------------------------------------------


def build_model_spec(
    table: PerformanceTable,
    family: Union[str, OutcomeFamily] = "gaussian",
    link: Union[str, Link, None] = None,
    transform: Union[str, Transform, None] = "identity",
    reference: Optional[str] = None,
    hetero_var: bool = False,
    priors: Optional[PriorConfig] = None,
    family_options: Optional[Dict[str, Any]] = None,
) -> ModelSpec:
    """
    Build the hierarchical model specification for a performance table.

    Validation happens in a fixed order so that every configuration error is
    raised before any sampling work: family and link resolution, reference
    model, transform domain on the raw statistic, family domain on the
    transformed statistic.

    Parameters
    ----------
    table : PerformanceTable
        Normalized long table.
    family : str or OutcomeFamily, default="gaussian"
        Outcome family.
    link : str or Link, optional
        Link function; defaults to the family's canonical link.
    transform : str or Transform, default="identity"
        Outcome transform.
    reference : str, optional
        Reference model; defaults to the first model alphabetically.
    hetero_var : bool, default=False
        Give every model its own residual scale (Gaussian only).
    priors : PriorConfig, optional
        Prior scale multipliers.
    family_options : dict, optional
        Options forwarded to the family constructor (e.g. ``n_trials``).

    Returns
    -------
    ModelSpec

    Raises
    ------
    UnsupportedFamilyError
        Unknown family, disallowed link, or ``hetero_var`` with a family that
        has no per-model residual scale.
    SchemaError
        Unknown reference model.
    DomainError
        Statistic outside the transform's or the family's domain.
    """
    priors = priors or PriorConfig()
    family = get_family(family, **(family_options or {}))
    link = resolve_link(family, link)
    transform = get_transform(transform)

    if hetero_var and not family.supports_hetero_var:
        raise UnsupportedFamilyError(
            f"hetero_var is not available for the {family.name!r} family"
        )

    model_ids = table.model_ids
    if reference is None:
        reference = model_ids[0]
    else:
        reference = str(reference).strip().lower()
        if reference not in model_ids:
            raise SchemaError(
                f"Reference model {reference!r} is not one of {list(model_ids)}"
            )

    raw = table.statistic
    y = transform.apply(raw)
    family.check_domain(y)

    model_index = table.model_index
    resample_index = table.resample_index

    # Treatment coding against the reference model
    non_reference = [m for m in model_ids if m != reference]
    coefficient_names = (INTERCEPT_NAME,) + tuple(non_reference)
    design = np.zeros((len(y), len(coefficient_names)))
    design[:, 0] = 1.0
    for column, model_id in enumerate(non_reference, start=1):
        design[model_index == model_ids.index(model_id), column] = 1.0

    spec = ModelSpec(
        table=table,
        family=family,
        link=link,
        transform=transform,
        reference=reference,
        design_matrix=design,
        coefficient_names=coefficient_names,
        model_index=model_index,
        resample_index=resample_index,
        y=y,
        observations=family.prepare_observations(y),
        priors=_scaled_priors(y, family, link, priors),
        hetero_var=hetero_var,
    )
    logger.debug("Built model specification: %s", spec.describe())
    return spec


def _scaled_priors(
    y: np.ndarray, family: OutcomeFamily, link: Link, priors: PriorConfig
) -> Dict[str, Any]:
    """Weakly-informative prior hyperparameters scaled to the outcome."""
    with np.errstate(divide="ignore", invalid="ignore"):
        eta = np.asarray(link.link(family.clip_for_link(y)), dtype=float)
    eta = eta[np.isfinite(eta)]

    if eta.size == 0:
        loc, spread = 0.0, 1.0
    else:
        loc = float(np.mean(eta))
        spread = float(np.std(eta)) if eta.size > 1 else 1.0
    spread = max(spread, priors.min_scale)

    return {
        "intercept_loc": loc,
        "intercept_scale": priors.intercept_scale * spread,
        "coef_scale": priors.coef_scale * spread,
        "resample_scale": priors.resample_scale * spread,
        "aux": family.aux_prior(y, priors.aux_scale),
    }
