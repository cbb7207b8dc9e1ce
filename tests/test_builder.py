"""Tests for the model specification builder and the numpyro model."""

import numpy as np
import pytest
from numpyro import handlers

from perfbayes.core import normalize_table
from perfbayes.errors import DomainError, SchemaError, UnsupportedFamilyError
from perfbayes.models import INTERCEPT_NAME, build_model_spec, perf_model
from perfbayes.models.config import PriorConfig


# --------------------------------------------------------------------------
# Treatment coding
# --------------------------------------------------------------------------


class TestCoding:
    def test_default_reference(self, performance_table):
        spec = build_model_spec(performance_table)
        assert spec.reference == "glm"
        assert spec.reference_index == 0
        assert spec.coefficient_names == (INTERCEPT_NAME, "knn", "rf")
        assert spec.n_coefficients == 3
        assert spec.design_matrix.shape == (30, 3)

    def test_design_rows(self, performance_table):
        spec = build_model_spec(performance_table)
        design = spec.design_matrix
        glm = spec.model_index == 0
        rf = spec.model_index == 2
        np.testing.assert_array_equal(design[glm], [[1.0, 0.0, 0.0]] * glm.sum())
        np.testing.assert_array_equal(design[rf], [[1.0, 0.0, 1.0]] * rf.sum())

    def test_contrast_matrix(self, performance_table):
        spec = build_model_spec(performance_table)
        np.testing.assert_array_equal(
            spec.contrast_matrix(),
            [[1.0, 1.0, 1.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]],
        )

    def test_explicit_reference(self, performance_table):
        spec = build_model_spec(performance_table, reference="RF")
        assert spec.reference == "rf"
        assert spec.coefficient_names == (INTERCEPT_NAME, "glm", "knn")
        assert spec.coefficient_column("rf") is None
        assert spec.coefficient_column("knn") == 2
        np.testing.assert_array_equal(
            spec.contrast_matrix(),
            [[1.0, 1.0, 1.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]],
        )

    def test_unknown_reference(self, performance_table):
        with pytest.raises(SchemaError, match="Reference model"):
            build_model_spec(performance_table, reference="svm")

    def test_unknown_model_column(self, performance_table):
        spec = build_model_spec(performance_table)
        with pytest.raises(KeyError):
            spec.coefficient_column("svm")

    def test_describe(self, performance_table):
        summary = build_model_spec(performance_table, transform="logit").describe()
        assert summary["family"] == "gaussian"
        assert summary["link"] == "identity"
        assert summary["transform"] == "logit"
        assert summary["models"] == ["glm", "knn", "rf"]
        assert summary["n_obs"] == 30


# --------------------------------------------------------------------------
# Outcomes and priors
# --------------------------------------------------------------------------


class TestOutcomes:
    def test_transform_is_applied(self, performance_table):
        spec = build_model_spec(performance_table, transform="log")
        np.testing.assert_allclose(spec.y, np.log(performance_table.statistic))

    def test_binomial_observations(self, performance_table):
        spec = build_model_spec(
            performance_table, family="binomial", family_options={"n_trials": 200}
        )
        np.testing.assert_array_equal(
            spec.observations, np.round(performance_table.statistic * 200)
        )
        assert spec.link.name == "logit"

    def test_priors_follow_the_data(self, performance_table):
        spec = build_model_spec(performance_table)
        y = performance_table.statistic
        assert spec.priors["intercept_loc"] == pytest.approx(y.mean())
        assert spec.priors["coef_scale"] == pytest.approx(2.5 * y.std())
        assert spec.priors["aux"]["sigma_scale"] > 0

    def test_prior_multipliers(self, performance_table):
        spec = build_model_spec(
            performance_table, priors=PriorConfig(coef_scale=1.0)
        )
        y = performance_table.statistic
        assert spec.priors["coef_scale"] == pytest.approx(y.std())

    @pytest.mark.parametrize(
        "family, key",
        [
            ("gaussian", "sigma_scale"),
            ("gamma", "shape_scale"),
            ("beta", "phi_scale"),
        ],
    )
    def test_aux_scale_multiplies_every_family(self, performance_table, family, key):
        base = build_model_spec(performance_table, family=family)
        doubled = build_model_spec(
            performance_table, family=family, priors=PriorConfig(aux_scale=2.0)
        )
        assert doubled.priors["aux"][key] == pytest.approx(
            2.0 * base.priors["aux"][key]
        )

    def test_logit_link_priors_are_finite(self, performance_table):
        spec = build_model_spec(performance_table, family="beta")
        assert np.isfinite(spec.priors["intercept_loc"])
        assert set(spec.priors["aux"]) == {"phi_loc", "phi_scale"}


class TestValidation:
    def test_transform_domain(self, make_table):
        table = make_table({"a": 0.0, "b": 1.0}, fold_sd=0.0, noise_sd=0.0)
        with pytest.raises(DomainError, match="'log' transform"):
            build_model_spec(normalize_table(table), transform="log")

    def test_family_domain_after_transform(self, make_table):
        # log of values below one is negative, outside the gamma support
        table = make_table({"a": 0.5, "b": 0.6})
        with pytest.raises(DomainError, match="'gamma' family"):
            build_model_spec(normalize_table(table), family="gamma", transform="log")

    def test_link_is_checked_before_domain(self, make_table):
        table = make_table({"a": 0.0, "b": 1.0}, fold_sd=0.0, noise_sd=0.0)
        with pytest.raises(UnsupportedFamilyError):
            build_model_spec(
                normalize_table(table), link="logit", transform="log"
            )

    def test_unsupported_family(self, performance_table):
        with pytest.raises(UnsupportedFamilyError):
            build_model_spec(performance_table, family="tweedie")

    def test_hetero_var_requires_gaussian(self, performance_table):
        with pytest.raises(UnsupportedFamilyError, match="hetero_var"):
            build_model_spec(performance_table, family="beta", hetero_var=True)


# --------------------------------------------------------------------------
# NumPyro model
# --------------------------------------------------------------------------


def _trace(spec):
    seeded = handlers.seed(perf_model, rng_seed=0)
    return handlers.trace(seeded).get_trace(spec, observations=spec.observations)


class TestPerfModel:
    def test_sites(self, performance_table):
        spec = build_model_spec(performance_table)
        trace = _trace(spec)
        assert trace["intercept"]["value"].shape == ()
        assert trace["beta"]["value"].shape == (2,)
        assert trace["z_resample"]["value"].shape == (10,)
        assert trace["sigma"]["value"].shape == ()
        assert trace["y"]["is_observed"]
        assert trace["y"]["value"].shape == (30,)

    def test_hetero_var_sigma(self, performance_table):
        spec = build_model_spec(performance_table, hetero_var=True)
        assert _trace(spec)["sigma"]["value"].shape == (3,)

    @pytest.mark.parametrize(
        "family, aux_site", [("gamma", "shape"), ("beta", "phi")]
    )
    def test_aux_sites(self, performance_table, family, aux_site):
        spec = build_model_spec(performance_table, family=family)
        assert aux_site in _trace(spec)

    def test_binomial_has_no_aux_site(self, performance_table):
        spec = build_model_spec(performance_table, family="binomial")
        trace = _trace(spec)
        assert {"sigma", "shape", "phi"}.isdisjoint(trace)
        assert np.isfinite(trace["y"]["fn"].log_prob(trace["y"]["value"]).sum())
