"""
Hierarchical model definitions for perfbayes.

- ``families``: outcome families and link functions.
- ``builder``: the declarative ``ModelSpec`` and its builder.
- ``hierarchical``: the numpyro model consumed by the sampler.
- ``config``: pydantic configuration groups.
"""

from .builder import INTERCEPT_NAME, ModelSpec, build_model_spec
from .families import (
    Beta,
    Binomial,
    Gamma,
    Gaussian,
    Link,
    OutcomeFamily,
    available_families,
    get_family,
    get_link,
    register_family,
    resolve_link,
)
from .hierarchical import perf_model

__all__ = [
    "ModelSpec",
    "build_model_spec",
    "INTERCEPT_NAME",
    "OutcomeFamily",
    "Gaussian",
    "Gamma",
    "Binomial",
    "Beta",
    "Link",
    "get_family",
    "get_link",
    "resolve_link",
    "register_family",
    "available_families",
    "perf_model",
]
