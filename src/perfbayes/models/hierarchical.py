"""
NumPyro model for the model-effect + resample-effect hierarchy.

The linear predictor of observation ``i`` (model ``m[i]``, resample ``r[i]``)
is::

    eta_i = X_i @ [intercept, offsets] + sigma_resample * z[r[i]]

with a non-centred resample random intercept ``z ~ Normal(0, 1)``. The mean
``inverse_link(eta_i)`` enters the family likelihood.

Sampled sites
-------------
- ``intercept``: scalar, the reference model on the link scale.
- ``beta``: ``(n_models - 1,)`` offsets of the non-reference models.
- ``sigma_resample``: scale of the resample random intercept.
- ``z_resample``: ``(n_resamples,)`` standardized resample effects.
- family auxiliary sites (``sigma``, ``shape`` or ``phi``).
"""

import jax.numpy as jnp
import numpyro
import numpyro.distributions as dist

from .builder import ModelSpec

# Site names of the coefficient draws, in coefficient-column order
INTERCEPT_SITE = "intercept"
OFFSET_SITE = "beta"
RESAMPLE_SCALE_SITE = "sigma_resample"
RESAMPLE_EFFECT_SITE = "z_resample"


def perf_model(spec: ModelSpec, observations=None):
    """
    Hierarchical GLMM over per-resample performance statistics.

    Parameters
    ----------
    spec : ModelSpec
        Model specification produced by
        :func:`perfbayes.models.builder.build_model_spec`.
    observations : array-like, optional
        Observed outcomes in the likelihood's observation space. ``None``
        samples from the prior predictive.
    """
    priors = spec.priors
    design = jnp.asarray(spec.design_matrix)
    resample_index = jnp.asarray(spec.resample_index)
    model_index = jnp.asarray(spec.model_index)

    intercept = numpyro.sample(
        INTERCEPT_SITE,
        dist.Normal(priors["intercept_loc"], priors["intercept_scale"]),
    )
    with numpyro.plate("offsets", spec.n_models - 1):
        beta = numpyro.sample(OFFSET_SITE, dist.Normal(0.0, priors["coef_scale"]))

    sigma_resample = numpyro.sample(
        RESAMPLE_SCALE_SITE, dist.HalfNormal(priors["resample_scale"])
    )
    with numpyro.plate("resamples", spec.n_resamples):
        z = numpyro.sample(RESAMPLE_EFFECT_SITE, dist.Normal(0.0, 1.0))

    coefficients = jnp.concatenate([jnp.atleast_1d(intercept), beta])
    eta = design @ coefficients + sigma_resample * z[resample_index]
    mean = spec.link.inverse_jax(eta)

    aux = spec.family.sample_aux(priors["aux"], spec.n_models, spec.hetero_var)

    if observations is not None:
        observations = jnp.asarray(observations)
    with numpyro.plate("obs", spec.n_obs):
        numpyro.sample(
            "y",
            spec.family.likelihood(mean, aux, model_index),
            obs=observations,
        )
