"""
Tidy posterior draws on the original outcome scale.
"""

from .draws import ModelDraws, PosteriorDraws, check_same_fit, combine_draws
from .tidy import link_scale_means, tidy_draws

__all__ = [
    "PosteriorDraws",
    "ModelDraws",
    "check_same_fit",
    "combine_draws",
    "link_scale_means",
    "tidy_draws",
]
