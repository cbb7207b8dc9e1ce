"""Tests for pairwise contrasts, ranking and the dominance rule."""

import numpy as np
import pandas as pd
import pytest

from perfbayes.contrast import (
    ContrastResults,
    best_model,
    contrast,
    contrast_statistics,
    difference,
    enumerate_pairs,
    rank_models,
)
from perfbayes.errors import IncompatibleDrawsError
from perfbayes.models.config import DominancePolicy
from perfbayes.posterior import PosteriorDraws


MODELS = ("glm", "knn", "rf")


@pytest.fixture
def draws(make_draws):
    return make_draws(
        {"glm": 0.80, "knn": 0.75, "rf": 0.85},
        sds={"glm": 0.01, "knn": 0.01, "rf": 0.01},
    )


# --------------------------------------------------------------------------
# Pair enumeration
# --------------------------------------------------------------------------


class TestEnumeratePairs:
    def test_all_pairs(self):
        assert enumerate_pairs(MODELS) == [
            ("glm", "knn"),
            ("glm", "rf"),
            ("knn", "rf"),
        ]

    def test_cross_product(self):
        assert enumerate_pairs(MODELS, ["rf"], ["glm", "knn"]) == [
            ("rf", "glm"),
            ("rf", "knn"),
        ]

    def test_subset_against_the_rest(self):
        assert enumerate_pairs(MODELS, "KNN") == [("knn", "glm"), ("knn", "rf")]

    def test_overlap(self):
        with pytest.raises(ValueError, match="disjoint"):
            enumerate_pairs(MODELS, ["rf", "glm"], ["glm"])

    def test_unknown_model(self):
        with pytest.raises(KeyError, match="svm"):
            enumerate_pairs(MODELS, ["svm"], ["glm"])

    def test_only_subset_b(self):
        with pytest.raises(ValueError, match="requires subset_a"):
            enumerate_pairs(MODELS, subset_b=["glm"])

    def test_empty_subset(self):
        with pytest.raises(ValueError, match="at least one"):
            enumerate_pairs(MODELS, [], ["glm"])

    def test_upper_case_ids_match_exactly(self):
        assert enumerate_pairs(("A", "B", "C"), ["A"], ["B", "C"]) == [
            ("A", "B"),
            ("A", "C"),
        ]

    def test_case_insensitive_match_keeps_stored_id(self):
        assert enumerate_pairs(("A", "B", "C"), "a", ["c"]) == [("A", "C")]

    def test_ambiguous_case_requires_exact_id(self):
        ids = ("rf", "RF", "glm")
        assert enumerate_pairs(ids, "RF", "glm") == [("RF", "glm")]
        with pytest.raises(KeyError, match="Rf"):
            enumerate_pairs(ids, "Rf", "glm")


# --------------------------------------------------------------------------
# Contrast statistics
# --------------------------------------------------------------------------


class TestContrastStatistics:
    def test_counting(self):
        delta = np.array([-0.3, -0.05, 0.02, 0.2, 0.4])
        stats = contrast_statistics(delta, rope_threshold=0.1)
        assert stats["prob_gt_0"] == pytest.approx(0.6)
        assert stats["prob_practically_negative"] == pytest.approx(0.2)
        assert stats["prob_practically_equivalent"] == pytest.approx(0.4)
        assert stats["prob_practically_positive"] == pytest.approx(0.4)
        assert stats["mean_diff"] == pytest.approx(delta.mean())

    def test_zero_rope_gives_zero_equivalence(self):
        stats = contrast_statistics(np.array([-1.0, 0.0, 1.0]), rope_threshold=0)
        assert stats["prob_practically_equivalent"] == 0.0

    def test_negative_rope(self):
        with pytest.raises(ValueError, match="non-negative"):
            contrast_statistics(np.ones(3), rope_threshold=-0.1)

    def test_empty(self):
        with pytest.raises(ValueError, match="empty"):
            contrast_statistics(np.array([]))


# --------------------------------------------------------------------------
# Contrast engine
# --------------------------------------------------------------------------


class TestContrast:
    def test_all_pairs(self, draws):
        results = contrast(draws)
        assert isinstance(results, ContrastResults)
        assert len(results) == 3
        assert results.pairs == enumerate_pairs(MODELS)

    def test_difference_is_draw_aligned(self, draws):
        result = contrast(draws, ["rf"], ["glm"])[0]
        np.testing.assert_array_equal(
            result.difference, draws["rf"].values - draws["glm"].values
        )
        assert result.fit_id == draws.fit_id
        assert result.n_draws == draws.n_draws

    def test_antisymmetry(self, draws):
        ab = contrast(draws, ["glm"], ["rf"])[0]
        ba = contrast(draws, ["rf"], ["glm"])[0]
        assert ab.mean_diff == pytest.approx(-ba.mean_diff)
        assert ab.prob_gt_0 + ba.prob_gt_0 == pytest.approx(1.0)
        assert ab.lower == pytest.approx(-ba.upper)

    def test_clear_winner(self, draws):
        result = contrast(draws, ["rf"], ["glm"])[0]
        assert result.prob_gt_0 > 0.99
        assert result.mean_diff == pytest.approx(0.05, abs=0.005)
        assert result.lower < 0.05 < result.upper

    def test_subsets(self, draws):
        results = contrast(draws, subset_a=["rf"], subset_b=["glm", "knn"])
        assert results.pairs == [("rf", "glm"), ("rf", "knn")]
        assert results["rf", "knn"].mean_diff == pytest.approx(0.10, abs=0.005)
        with pytest.raises(KeyError):
            results["glm", "knn"]

    def test_zero_rope(self, draws):
        for result in contrast(draws, rope_threshold=0.0):
            assert result.prob_practically_equivalent == 0.0

    def test_wide_rope(self, draws):
        result = contrast(draws, ["rf"], ["glm"], rope_threshold=1.0)[0]
        assert result.prob_practically_equivalent == pytest.approx(1.0)
        assert result.prob_practically_positive == 0.0

    def test_rope_partition(self, draws):
        for result in contrast(draws, rope_threshold=0.05):
            total = (
                result.prob_practically_negative
                + result.prob_practically_equivalent
                + result.prob_practically_positive
            )
            assert total <= 1.0 + 1e-12

    def test_negative_rope(self, draws):
        with pytest.raises(ValueError, match="non-negative"):
            contrast(draws, rope_threshold=-1.0)

    def test_two_fits_are_incompatible(self, make_draws):
        first = make_draws({"a": 1.0, "b": 2.0}, fit_id="one")
        second = make_draws({"a": 1.0, "b": 2.0}, fit_id="two")
        with pytest.raises(IncompatibleDrawsError):
            contrast([first.select(["a"]), second.select(["b"])])
        with pytest.raises(IncompatibleDrawsError):
            difference(first["a"], second["b"])

    def test_subsets_with_upper_case_model_ids(self):
        rng = np.random.default_rng(4)
        draws = PosteriorDraws(
            rng.normal(size=(100, 3)), ("A", "B", "C"), fit_id="x"
        )
        results = contrast(draws, subset_a=["A"], subset_b=["B", "C"])
        assert results.pairs == [("A", "B"), ("A", "C")]
        np.testing.assert_array_equal(
            results["A", "C"].difference, draws["A"].values - draws["C"].values
        )

    def test_sequence_from_one_fit(self, draws):
        results = contrast([draws.select(["rf"]), draws.select(["glm"])])
        assert results.pairs == [("rf", "glm")]

    def test_summary(self, draws):
        frame = contrast(draws, rope_threshold=0.02).summary()
        assert isinstance(frame, pd.DataFrame)
        assert len(frame) == 3
        assert list(frame["contrast"]) == [
            "glm vs knn",
            "glm vs rf",
            "knn vs rf",
        ]
        assert "effect_size" not in frame.columns
        assert (frame["rope_threshold"] == 0.02).all()

    def test_effect_size_requires_spec(self, draws):
        with pytest.raises(ValueError, match="specification"):
            contrast(draws, effect_size=True)

    def test_repr(self, draws):
        result = contrast(draws, ["rf"], ["glm"])[0]
        assert "rf" in repr(result) and "glm" in repr(result)

    def test_results_are_read_only(self, draws):
        result = contrast(draws)[0]
        with pytest.raises(ValueError):
            result.difference[0] = 0.0


# --------------------------------------------------------------------------
# Ranking and dominance
# --------------------------------------------------------------------------


class TestRanking:
    def test_higher_is_better(self, draws):
        ranking = rank_models(draws)
        assert list(ranking["model"]) == ["rf", "glm", "knn"]
        assert list(ranking["rank"]) == [1, 2, 3]
        assert list(ranking.columns) == [
            "rank",
            "model",
            "mean",
            "lower",
            "upper",
            "width",
        ]

    def test_lower_is_better(self, draws):
        ranking = rank_models(draws, higher_is_better=False)
        assert list(ranking["model"]) == ["knn", "glm", "rf"]

    def test_ties_go_to_narrower_interval(self):
        # Equal means by construction; "zz" is tighter than "aa"
        values = np.column_stack(
            [
                np.tile([0.5, 1.5], 50),
                np.tile([0.75, 1.25], 50),
                np.tile([0.0, 0.5], 50),
            ]
        )
        draws = PosteriorDraws(values, ("aa", "zz", "low"), fit_id="x")
        ranking = rank_models(draws)
        assert list(ranking["model"]) == ["zz", "aa", "low"]
        assert ranking["mean"].iloc[0] == ranking["mean"].iloc[1]


class TestBestModel:
    def test_clear_winner(self, draws):
        assert best_model(draws) == "rf"

    def test_error_metric(self, draws):
        policy = DominancePolicy(higher_is_better=False)
        assert best_model(draws, policy) == "knn"

    def test_no_dominant_model(self, make_draws):
        draws = make_draws({"a": 1.0, "b": 1.001}, sds={"a": 0.1, "b": 0.1})
        assert best_model(draws) is None

    def test_rope_blocks_small_wins(self, draws):
        policy = DominancePolicy(rope_threshold=0.2)
        assert best_model(draws, policy) is None

    def test_policy_validation(self):
        with pytest.raises(ValueError):
            DominancePolicy(prob_threshold=1.5)
        with pytest.raises(ValueError):
            DominancePolicy(rope_threshold=-0.1)
