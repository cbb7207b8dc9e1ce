"""
Inference engine for MCMC.

This module is the boundary to the posterior sampler. ``Sampler`` is the
interface the rest of perfbayes depends on: a specification and a seed go in,
``RawDraws`` (coefficient draws plus convergence warnings) come out.
``NumPyroSampler`` is the default implementation and runs NUTS through
``MCMCInferenceEngine``.
"""

import logging
from typing import Any, Dict, Optional, Protocol

from jax import random
from numpyro.infer import MCMC, NUTS, init_to_median

from ..errors import SamplingError
from ..models.builder import ModelSpec
from ..models.config.groups import SamplerConfig
from ..models.hierarchical import perf_model
from ._diagnostics import check_convergence
from .results import RawDraws

logger = logging.getLogger(__name__)


class Sampler(Protocol):
    """Posterior sampling backend.

    Implementations must be reproducible: the same specification, config
    and seed give the same draws. Failures to produce any draws raise
    ``SamplingError``; reliability concerns are attached to the returned
    ``RawDraws.warnings``.
    """

    def sample(
        self, spec: ModelSpec, config: SamplerConfig, seed: int
    ) -> RawDraws:
        ...


# ==============================================================================
# NUTS execution
# ==============================================================================


class MCMCInferenceEngine:
    """Handles MCMC inference execution."""

    @staticmethod
    def run_inference(
        spec: ModelSpec,
        n_samples: int = 2_000,
        n_warmup: int = 1_000,
        n_chains: int = 1,
        seed: int = 42,
        chain_method: str = "sequential",
        kernel_kwargs: Optional[dict] = None,
        progress_bar: bool = False,
    ) -> MCMC:
        """Execute MCMC inference using NUTS.

        Parameters
        ----------
        spec : ModelSpec
            Model specification.
        n_samples : int, default=2_000
            Number of MCMC samples per chain.
        n_warmup : int, default=1_000
            Number of warmup samples per chain.
        n_chains : int, default=1
            Number of chains.
        seed : int, default=42
            Random seed for reproducibility.
        chain_method : str, default="sequential"
            How numpyro runs multiple chains.
        kernel_kwargs : Optional[dict], default=None
            Keyword arguments for the NUTS kernel (e.g.
            ``target_accept_prob``, ``max_tree_depth``). Unless an
            ``init_strategy`` is given, chains start at the prior median.
        progress_bar : bool, default=False
            Show the numpyro progress bar.

        Returns
        -------
        numpyro.infer.MCMC
            Finished MCMC run with the ``diverging`` extra field collected.
        """
        effective_kwargs: Dict[str, Any] = dict(kernel_kwargs or {})
        effective_kwargs.setdefault("init_strategy", init_to_median)

        nuts_kernel = NUTS(perf_model, **effective_kwargs)

        mcmc = MCMC(
            nuts_kernel,
            num_samples=n_samples,
            num_warmup=n_warmup,
            num_chains=n_chains,
            chain_method=chain_method,
            progress_bar=progress_bar,
        )

        rng_key = random.PRNGKey(seed)

        mcmc.run(
            rng_key,
            spec=spec,
            observations=spec.observations,
            extra_fields=("diverging",),
        )

        return mcmc


# ==============================================================================
# Default sampler
# ==============================================================================


class NumPyroSampler:
    """``Sampler`` backed by numpyro's NUTS."""

    def __init__(self, engine=MCMCInferenceEngine):
        self.engine = engine

    def sample(
        self, spec: ModelSpec, config: SamplerConfig, seed: int
    ) -> RawDraws:
        """
        Draw from the posterior of ``spec``.

        Parameters
        ----------
        spec : ModelSpec
            Model specification.
        config : SamplerConfig
            Sampler settings and diagnostic thresholds.
        seed : int
            Random seed.

        Returns
        -------
        RawDraws
            Pooled draws with convergence warnings attached.

        Raises
        ------
        SamplingError
            If NUTS fails or returns no usable coefficient draws.
        """
        logger.info(
            "Running NUTS: %d chain(s) x %d draws (%d warmup), seed=%d",
            config.n_chains,
            config.n_samples,
            config.n_warmup,
            seed,
        )
        try:
            mcmc = self.engine.run_inference(
                spec,
                n_samples=config.n_samples,
                n_warmup=config.n_warmup,
                n_chains=config.n_chains,
                seed=seed,
                chain_method=config.chain_method,
                kernel_kwargs=config.kernel_kwargs,
                progress_bar=config.progress_bar,
            )
            samples = mcmc.get_samples()
            samples_by_chain = mcmc.get_samples(group_by_chain=True)
            extra_fields = mcmc.get_extra_fields()
        except Exception as exc:
            raise SamplingError(f"NUTS sampling failed: {exc}") from exc

        found, diagnostics = check_convergence(
            samples_by_chain,
            extra_fields,
            max_rhat=config.max_rhat,
            min_ess=config.min_ess,
        )

        draws = RawDraws.from_samples(
            samples,
            spec,
            warnings=found,
            diagnostics=diagnostics,
            seed=seed,
            n_chains=config.n_chains,
        )
        logger.info(
            "Collected %d posterior draws (%d convergence warning(s))",
            draws.n_draws,
            len(found),
        )
        return draws
