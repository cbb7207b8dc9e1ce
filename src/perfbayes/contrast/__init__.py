"""Pairwise posterior contrasts between models.

Quick start
-----------

>>> from perfbayes.contrast import contrast, rank_models
>>> results = contrast(draws, rope_threshold=0.01)
>>> results.summary()                 # one row per pair
>>> contrast(draws, subset_a=["rf"], subset_b=["glm", "knn"])
>>> rank_models(draws, higher_is_better=False)

Functions
---------
- ``contrast()``: draw-aligned differences with ROPE probabilities.
- ``rank_models()``: order by posterior mean, ties to the narrower interval.
- ``best_model()``: configurable dominance rule.
- ``difference()`` / ``contrast_statistics()``: low-level building blocks.
"""

from ._empirical import contrast_statistics, difference
from ._pairs import enumerate_pairs
from .results import (
    ContrastResult,
    ContrastResults,
    best_model,
    contrast,
    rank_models,
)

__all__ = [
    "contrast",
    "rank_models",
    "best_model",
    "ContrastResult",
    "ContrastResults",
    "difference",
    "contrast_statistics",
    "enumerate_pairs",
]
