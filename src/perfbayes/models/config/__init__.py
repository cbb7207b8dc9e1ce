"""
Configuration objects for perfbayes models, sampling and decision rules.
"""

from .enums import FamilyType, IntervalMethod, LinkType
from .groups import DominancePolicy, PriorConfig, SamplerConfig

__all__ = [
    "FamilyType",
    "LinkType",
    "IntervalMethod",
    "PriorConfig",
    "SamplerConfig",
    "DominancePolicy",
]
