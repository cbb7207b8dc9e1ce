"""
Summary statistics of posterior draws.
"""

from .summary import (
    credible_interval,
    equal_tailed_interval,
    highest_density_interval,
    summarize,
    summary_frame,
)

__all__ = [
    "summarize",
    "summary_frame",
    "credible_interval",
    "equal_tailed_interval",
    "highest_density_interval",
]
