"""
Parameter group definitions for perfbayes configuration using Pydantic for type
safety and validation.

Each group collects a logically related set of options:

    - ``PriorConfig``: scale multipliers for the weakly-informative,
      data-scaled priors of the hierarchical model.
    - ``SamplerConfig``: NUTS settings and the thresholds used to turn sampler
      diagnostics into convergence warnings.
    - ``DominancePolicy``: the decision rule used to declare a single model
      better than all of its competitors.

All groups are frozen and reject unknown fields, so a configuration object
cannot drift after it has been handed to a fit.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ==============================================================================
# Prior Configuration Group
# ==============================================================================


class PriorConfig(BaseModel):
    """Prior scale multipliers (relative to the link-scale outcome spread).

    The model builder measures the standard deviation of the outcome on the
    link scale and multiplies it by these factors to obtain the prior scales.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    intercept_scale: float = Field(
        2.5, gt=0, description="Normal prior scale for the intercept"
    )
    coef_scale: float = Field(
        2.5, gt=0, description="Normal prior scale for model offsets"
    )
    resample_scale: float = Field(
        1.0,
        gt=0,
        description="Half-normal prior scale for the resample random effect",
    )
    aux_scale: float = Field(
        1.0,
        gt=0,
        description=(
            "Scale multiplier for the family auxiliary prior: half-normal "
            "residual SD (gaussian), log-normal shape (gamma) or "
            "precision (beta)"
        ),
    )
    min_scale: float = Field(
        1e-3,
        gt=0,
        description="Floor applied to the measured outcome spread",
    )


# ==============================================================================
# Sampler Configuration Group
# ==============================================================================


class SamplerConfig(BaseModel):
    """Configuration for the NUTS posterior sampler."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    n_samples: int = Field(2_000, gt=0, description="Number of MCMC samples")
    n_warmup: int = Field(1_000, gt=0, description="Number of warmup samples")
    n_chains: int = Field(1, gt=0, description="Number of parallel chains")
    chain_method: str = Field(
        "sequential",
        description="How numpyro runs chains: sequential, parallel or vectorized",
    )
    kernel_kwargs: Optional[Dict[str, Any]] = Field(
        None,
        description="Additional keyword arguments for the NUTS kernel",
    )
    progress_bar: bool = Field(False, description="Show the numpyro progress bar")
    max_rhat: float = Field(
        1.05, gt=1.0, description="Largest acceptable split r-hat"
    )
    min_ess: float = Field(
        100.0, gt=0, description="Smallest acceptable effective sample size"
    )

    # --------------------------------------------------------------------------
    # Validation Methods
    # --------------------------------------------------------------------------

    @field_validator("chain_method")
    @classmethod
    def validate_chain_method(cls, v: str) -> str:
        """Validate the numpyro chain method."""
        allowed = {"sequential", "parallel", "vectorized"}
        if v not in allowed:
            raise ValueError(
                f"chain_method must be one of {sorted(allowed)}, got {v!r}"
            )
        return v

    # --------------------------------------------------------------------------

    @property
    def n_draws(self) -> int:
        """Total number of posterior draws across all chains."""
        return self.n_samples * self.n_chains


# ==============================================================================
# Dominance Policy Group
# ==============================================================================


class DominancePolicy(BaseModel):
    """Decision rule for declaring one model better than all others.

    The top-ranked model is declared best when, against every competitor, the
    posterior probability that it is better by more than ``rope_threshold``
    reaches ``prob_threshold``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    prob_threshold: float = Field(
        0.95, gt=0.0, le=1.0, description="Required posterior probability"
    )
    rope_threshold: float = Field(
        0.0, ge=0.0, description="Practical-equivalence half-width"
    )
    higher_is_better: bool = Field(
        True, description="Whether larger statistics mean better performance"
    )
    interval_width: float = Field(
        0.90, gt=0.0, lt=1.0, description="Credible interval width for ranking"
    )
