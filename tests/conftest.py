"""
Shared test fixtures and configuration for perfbayes tests.
"""

import os

import numpy as np
import pandas as pd
import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--device",
        default="cpu",
        choices=["cpu", "gpu"],
        help="Device to run tests on: cpu or gpu",
    )


def pytest_configure(config):
    """Configure JAX device before any imports happen."""
    device = config.getoption("--device")
    if device == "cpu":
        os.environ["JAX_PLATFORM_NAME"] = "cpu"
    else:
        # Remove the environment variable to allow JAX to use GPU
        if "JAX_PLATFORM_NAME" in os.environ:
            del os.environ["JAX_PLATFORM_NAME"]


@pytest.fixture(scope="session")
def device_type(request):
    return request.config.getoption("--device")


# --------------------------------------------------------------------------
# Performance tables
# --------------------------------------------------------------------------


def make_wide_table(means=None, n_resamples=10, fold_sd=0.02, noise_sd=0.005,
                    seed=0):
    """Wide accuracy-like table: one ``id`` column plus one column per model.

    Every model shares the same per-fold shift, so the table has a genuine
    resample effect.
    """
    means = means or {"glm": 0.80, "knn": 0.75, "rf": 0.85}
    rng = np.random.default_rng(seed)
    fold = rng.normal(0.0, fold_sd, n_resamples)
    table = {"id": [f"Fold{i:02d}" for i in range(1, n_resamples + 1)]}
    for name, mean in means.items():
        table[name] = mean + fold + rng.normal(0.0, noise_sd, n_resamples)
    return pd.DataFrame(table)


@pytest.fixture
def make_table():
    """Factory for wide tables with custom model means."""
    return make_wide_table


@pytest.fixture
def wide_table():
    """Ten folds, three models with well-separated means."""
    return make_wide_table()


@pytest.fixture
def repeated_cv_table():
    """Two repeats of three folds keyed by ``id`` (repeat) and ``id2``."""
    return pd.DataFrame(
        {
            "id": ["Repeat1"] * 3 + ["Repeat2"] * 3,
            "id2": ["Fold1", "Fold2", "Fold3"] * 2,
            "lm_RMSE": [2.1, 2.3, 2.0, 2.2, 2.4, 2.1],
            "cart_RMSE": [2.6, 2.9, 2.5, 2.7, 2.8, 2.6],
        }
    )


@pytest.fixture
def performance_table(wide_table):
    from perfbayes.core import normalize_table

    return normalize_table(wide_table)


# --------------------------------------------------------------------------
# Deterministic sampler
# --------------------------------------------------------------------------


class FakeSampler:
    """``Sampler`` stand-in that draws coefficients around the observed means.

    The coefficients are the link-scale empirical means of every model,
    coded against the reference, plus seeded Gaussian jitter. Every call is
    recorded so tests can assert that validation failed before sampling.
    """

    def __init__(self, warnings=(), noise=0.01, error=None):
        self.warnings = list(warnings)
        self.noise = noise
        self.error = error
        self.calls = []

    def sample(self, spec, config, seed):
        from perfbayes.mcmc import RawDraws

        self.calls.append({"spec": spec, "config": config, "seed": seed})
        if self.error is not None:
            raise self.error

        rng = np.random.default_rng(seed)
        means = np.array(
            [spec.y[spec.model_index == m].mean() for m in range(spec.n_models)]
        )
        eta = np.asarray(spec.link.link(spec.family.clip_for_link(means)))
        reference = eta[spec.reference_index]
        centre = [reference] + [
            eta[spec.model_ids.index(name)] - reference
            for name in spec.coefficient_names[1:]
        ]
        coefficients = np.asarray(centre) + self.noise * rng.standard_normal(
            (config.n_samples, spec.n_coefficients)
        )
        return RawDraws(
            coefficients=coefficients,
            coefficient_names=spec.coefficient_names,
            warnings=list(self.warnings),
            seed=seed,
        )


@pytest.fixture
def fake_sampler():
    return FakeSampler()


@pytest.fixture
def make_fake_sampler():
    """Factory for ``FakeSampler`` instances with custom behavior."""
    return FakeSampler


@pytest.fixture
def small_sampler_config():
    from perfbayes.models.config import SamplerConfig

    return SamplerConfig(n_samples=200, n_warmup=10)


# --------------------------------------------------------------------------
# Posterior draws
# --------------------------------------------------------------------------


@pytest.fixture
def make_draws():
    """Factory building ``PosteriorDraws`` from per-model normal draws."""
    from perfbayes.posterior import PosteriorDraws

    def _make(means, sds=None, n_draws=4_000, seed=0, fit_id="fit-a"):
        rng = np.random.default_rng(seed)
        names = list(means)
        sds = sds or {name: 0.01 for name in names}
        values = np.column_stack(
            [
                means[name] + sds[name] * rng.standard_normal(n_draws)
                for name in names
            ]
        )
        return PosteriorDraws(
            values=values, model_ids=tuple(names), fit_id=fit_id
        )

    return _make
