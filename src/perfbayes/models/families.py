"""Outcome families and link functions for the hierarchical model.

Each outcome family is an explicit variant (a subclass of
:class:`OutcomeFamily`) that carries:

- its canonical link and the set of links it accepts,
- the domain its (transformed) outcome must lie in,
- the priors of its auxiliary parameters (residual scale, shape, precision),
- the numpyro likelihood for a vector of means.

Families register themselves through the :func:`register_family` decorator
and are resolved by name with :func:`get_family`. Links are resolved against
a family with :func:`resolve_link`; a link the family does not accept raises
``UnsupportedFamilyError``.

Families
--------
====================  ==============  =============================  ==========
family                canonical link  other links                    outcome
====================  ==============  =============================  ==========
``gaussian``          identity        log, inverse                   real
``gamma``             inverse         log, identity                  > 0
``binomial``          logit           probit                         [0, 1]
``beta``              logit           probit                         (0, 1)
====================  ==============  =============================  ==========

The binomial family models proportions of ``n_trials`` Bernoulli outcomes:
each statistic ``y`` is converted to ``round(y * n_trials)`` successes.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple, Type, Union

import jax.numpy as jnp
import jax.scipy.special as jsp
import numpy as np
import numpyro
import numpyro.distributions as dist
from scipy import special

from ..errors import DomainError, UnsupportedFamilyError
from .config.enums import FamilyType, LinkType

# Means are kept this far away from the edge of a family's support
_EPS = 1e-6

# ------------------------------------------------------------------------------
# Link functions
# ------------------------------------------------------------------------------


@dataclass(frozen=True)
class Link:
    """Link function with numpy and jax implementations.

    Parameters
    ----------
    name : str
        Link name.
    link : callable
        Mean scale to linear-predictor scale (numpy).
    inverse : callable
        Linear-predictor scale to mean scale (numpy).
    inverse_jax : callable
        Same as ``inverse`` for use inside the numpyro model.
    """

    name: str
    link: Callable[[np.ndarray], np.ndarray]
    inverse: Callable[[np.ndarray], np.ndarray]
    inverse_jax: Callable


_LINKS: Dict[str, Link] = {
    LinkType.IDENTITY.value: Link(
        "identity", lambda x: x, lambda x: x, lambda x: x
    ),
    LinkType.LOG.value: Link("log", np.log, np.exp, jnp.exp),
    LinkType.INVERSE.value: Link(
        "inverse", lambda x: 1.0 / x, lambda x: 1.0 / x, lambda x: 1.0 / x
    ),
    LinkType.LOGIT.value: Link(
        "logit", special.logit, special.expit, jsp.expit
    ),
    LinkType.PROBIT.value: Link(
        "probit", special.ndtri, special.ndtr, jsp.ndtr
    ),
}


def get_link(link: Union[str, LinkType, Link]) -> Link:
    """Return the ``Link`` registered under ``link``."""
    if isinstance(link, Link):
        return link
    key = link.value if isinstance(link, LinkType) else str(link).lower()
    if key not in _LINKS:
        raise UnsupportedFamilyError(
            f"Unknown link {link!r}; supported links are {sorted(_LINKS)}"
        )
    return _LINKS[key]


# ------------------------------------------------------------------------------
# Family registry
# ------------------------------------------------------------------------------

_FAMILY_REGISTRY: Dict[str, Type["OutcomeFamily"]] = {}


def register_family(name: Union[str, FamilyType]):
    """
    Decorator registering an ``OutcomeFamily`` subclass under ``name``.

    Examples
    --------
    >>> @register_family("gaussian")
    ... class Gaussian(OutcomeFamily):
    ...     ...
    """
    key = name.value if isinstance(name, FamilyType) else str(name).lower()

    def decorator(cls):
        if not issubclass(cls, OutcomeFamily):
            raise TypeError(
                f"{cls.__name__} must subclass OutcomeFamily to be registered"
            )
        _FAMILY_REGISTRY[key] = cls
        return cls

    return decorator


def get_family(
    family: Union[str, FamilyType, "OutcomeFamily"], **kwargs
) -> "OutcomeFamily":
    """
    Resolve an outcome family.

    Parameters
    ----------
    family : str, FamilyType or OutcomeFamily
        Family name, enum member, or an already constructed family (returned
        unchanged).
    **kwargs
        Family options (e.g. ``n_trials`` for the binomial family).

    Raises
    ------
    UnsupportedFamilyError
        If the family is not registered.
    """
    if isinstance(family, OutcomeFamily):
        return family
    key = family.value if isinstance(family, FamilyType) else str(family).lower()
    if key not in _FAMILY_REGISTRY:
        raise UnsupportedFamilyError(
            f"Unsupported outcome family {family!r}; supported families are "
            f"{sorted(_FAMILY_REGISTRY)}"
        )
    return _FAMILY_REGISTRY[key](**kwargs)


def resolve_link(
    family: "OutcomeFamily", link: Union[str, LinkType, Link, None] = None
) -> Link:
    """
    Resolve the link for ``family``; ``None`` gives the canonical link.

    Raises
    ------
    UnsupportedFamilyError
        If the family does not accept the link.
    """
    if link is None:
        return get_link(family.canonical_link)
    resolved = get_link(link)
    if resolved.name not in family.allowed_links:
        raise UnsupportedFamilyError(
            f"The {family.name!r} family does not support the "
            f"{resolved.name!r} link; allowed links are "
            f"{sorted(family.allowed_links)}"
        )
    return resolved


# ------------------------------------------------------------------------------
# Families
# ------------------------------------------------------------------------------


class OutcomeFamily:
    """Base class for outcome families.

    Subclasses set ``name``, ``canonical_link``, ``allowed_links`` and
    ``domain_description``, and implement :meth:`in_domain`,
    :meth:`sample_aux` and :meth:`likelihood`.
    """

    name: str = ""
    canonical_link: str = LinkType.IDENTITY.value
    allowed_links: Tuple[str, ...] = ()
    domain_description: str = "all real numbers"
    supports_hetero_var: bool = False
    mean_bounds: Tuple[Optional[float], Optional[float]] = (None, None)

    def in_domain(self, y: np.ndarray) -> np.ndarray:
        return np.isfinite(y)

    def check_domain(self, y) -> None:
        """Raise ``DomainError`` if any outcome lies outside the support."""
        y = np.asarray(y, dtype=float)
        bad = ~self.in_domain(y)
        if bad.any():
            raise DomainError(
                f"The {self.name!r} family requires {self.domain_description}; "
                f"{int(bad.sum())} modeled statistic(s) fall outside it "
                f"(e.g. {np.unique(y[bad])[:5].tolist()})"
            )

    def clip_for_link(self, y: np.ndarray) -> np.ndarray:
        """Move outcomes into the open interior where every link is finite."""
        return np.asarray(y, dtype=float)

    def clip_mean(self, mean) -> np.ndarray:
        """Clip means into ``mean_bounds``, as the likelihood does."""
        mean = np.asarray(mean, dtype=float)
        lower, upper = self.mean_bounds
        if lower is None and upper is None:
            return mean
        return np.clip(mean, lower, upper)

    def aux_prior(self, y: np.ndarray, aux_scale: float) -> Dict[str, float]:
        """Data-scaled hyperparameters for the auxiliary parameters."""
        return {}

    def sample_aux(
        self, aux_prior: Dict[str, float], n_models: int, hetero_var: bool
    ):
        """Draw auxiliary parameters inside the numpyro model."""
        return None

    def likelihood(self, mean, aux, model_index):
        """Return the numpyro distribution of the observations."""
        raise NotImplementedError

    def prepare_observations(self, y: np.ndarray) -> np.ndarray:
        """Convert modeled statistics to the likelihood's observation space."""
        return np.asarray(y, dtype=float)

    def __eq__(self, other):
        return type(self) is type(other) and vars(self) == vars(other)

    def __hash__(self):
        return hash((type(self).__name__, tuple(sorted(vars(self).items()))))

    def __repr__(self):
        options = ", ".join(f"{k}={v!r}" for k, v in vars(self).items())
        return f"{type(self).__name__}({options})"


# ------------------------------------------------------------------------------


@register_family(FamilyType.GAUSSIAN)
class Gaussian(OutcomeFamily):
    """Normal outcome with a residual standard deviation ``sigma``.

    With ``hetero_var`` every model gets its own ``sigma``.
    """

    name = FamilyType.GAUSSIAN.value
    canonical_link = LinkType.IDENTITY.value
    allowed_links = ("identity", "log", "inverse")
    supports_hetero_var = True

    def aux_prior(self, y, aux_scale):
        spread = float(np.std(y)) if len(y) > 1 else 1.0
        return {"sigma_scale": aux_scale * max(spread, 1e-3)}

    def sample_aux(self, aux_prior, n_models, hetero_var):
        scale = aux_prior["sigma_scale"]
        if hetero_var:
            with numpyro.plate("models_sigma", n_models):
                return numpyro.sample("sigma", dist.HalfNormal(scale))
        return numpyro.sample("sigma", dist.HalfNormal(scale))

    def likelihood(self, mean, aux, model_index):
        sigma = aux[model_index] if jnp.ndim(aux) > 0 else aux
        return dist.Normal(mean, sigma)


# ------------------------------------------------------------------------------


@register_family(FamilyType.GAMMA)
class Gamma(OutcomeFamily):
    """Gamma outcome parameterized by its mean and a shape parameter."""

    name = FamilyType.GAMMA.value
    canonical_link = LinkType.INVERSE.value
    allowed_links = ("inverse", "log", "identity")
    domain_description = "strictly positive statistics"
    mean_bounds = (_EPS, None)

    def in_domain(self, y):
        return np.isfinite(y) & (y > 0)

    def aux_prior(self, y, aux_scale):
        # Shape of a Gamma is 1 / CV^2; centre the prior there
        mean = float(np.mean(y))
        var = float(np.var(y)) if len(y) > 1 else mean**2
        cv2 = max(var / max(mean**2, _EPS), _EPS)
        return {
            "shape_loc": float(np.log(1.0 / cv2)),
            "shape_scale": 2.0 * aux_scale,
        }

    def sample_aux(self, aux_prior, n_models, hetero_var):
        return numpyro.sample(
            "shape",
            dist.LogNormal(aux_prior["shape_loc"], aux_prior["shape_scale"]),
        )

    def likelihood(self, mean, aux, model_index):
        mean = jnp.clip(mean, *self.mean_bounds)
        return dist.Gamma(concentration=aux, rate=aux / mean)


# ------------------------------------------------------------------------------


@register_family(FamilyType.BINOMIAL)
class Binomial(OutcomeFamily):
    """Proportion of successes out of ``n_trials`` per resample.

    Parameters
    ----------
    n_trials : int, default=100
        Number of trials behind every proportion (e.g. the assessment set
        size of each fold).
    """

    name = FamilyType.BINOMIAL.value
    canonical_link = LinkType.LOGIT.value
    allowed_links = ("logit", "probit")
    domain_description = "proportions between 0 and 1"
    mean_bounds = (_EPS, 1.0 - _EPS)

    def __init__(self, n_trials: int = 100):
        if int(n_trials) != n_trials or n_trials < 1:
            raise UnsupportedFamilyError(
                f"n_trials must be a positive integer, got {n_trials!r}"
            )
        self.n_trials = int(n_trials)

    def in_domain(self, y):
        return np.isfinite(y) & (y >= 0) & (y <= 1)

    def clip_for_link(self, y):
        half = 0.5 / self.n_trials
        return np.clip(np.asarray(y, dtype=float), half, 1.0 - half)

    def prepare_observations(self, y):
        return np.round(np.asarray(y, dtype=float) * self.n_trials)

    def likelihood(self, mean, aux, model_index):
        probs = jnp.clip(mean, *self.mean_bounds)
        return dist.Binomial(total_count=self.n_trials, probs=probs)


# ------------------------------------------------------------------------------


@register_family(FamilyType.BETA)
class Beta(OutcomeFamily):
    """Beta outcome parameterized by its mean and a precision ``phi``."""

    name = FamilyType.BETA.value
    canonical_link = LinkType.LOGIT.value
    allowed_links = ("logit", "probit")
    domain_description = "statistics strictly between 0 and 1"
    mean_bounds = (_EPS, 1.0 - _EPS)

    def in_domain(self, y):
        return np.isfinite(y) & (y > 0) & (y < 1)

    def aux_prior(self, y, aux_scale):
        # Method-of-moments precision: mean * (1 - mean) / var - 1
        mean = float(np.mean(y))
        var = max(float(np.var(y)) if len(y) > 1 else 0.0, _EPS)
        phi_hat = max(mean * (1.0 - mean) / var - 1.0, 1.0)
        return {"phi_loc": float(np.log(phi_hat)), "phi_scale": 2.0 * aux_scale}

    def sample_aux(self, aux_prior, n_models, hetero_var):
        return numpyro.sample(
            "phi", dist.LogNormal(aux_prior["phi_loc"], aux_prior["phi_scale"])
        )

    def likelihood(self, mean, aux, model_index):
        mean = jnp.clip(mean, *self.mean_bounds)
        return dist.Beta(mean * aux, (1.0 - mean) * aux)


def available_families():
    """Sorted list of registered family names."""
    return sorted(_FAMILY_REGISTRY)
