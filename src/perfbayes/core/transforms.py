"""Outcome transforms applied before modeling and undone when reporting.

A transform is a named ``(forward, inverse)`` pair of element-wise numpy
functions. The forward function is applied to the raw performance statistic
before the hierarchical model is built; the inverse maps posterior draws back
to the statistic's original units.

Built-in transforms
-------------------
- ``identity``: ``x`` both ways.
- ``log``: ``ln(x)`` / ``exp(x)``, requires ``x > 0``.
- ``logit``: ``logit(x)`` / ``expit(x)``, requires ``0 < x < 1``.
- ``fisher_z``: ``atanh(x)`` / ``tanh(x)``, requires ``-1 < x < 1``.

Additional transforms can be registered with :func:`register_transform`.
The forward and inverse functions are expected to be mutual inverses on the
observed data range; this is not checked.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Union

import numpy as np
from scipy.special import expit, logit

from ..errors import DomainError

ArrayFn = Callable[[np.ndarray], np.ndarray]

# ------------------------------------------------------------------------------
# Transform container
# ------------------------------------------------------------------------------


@dataclass(frozen=True)
class Transform:
    """Named pair of element-wise forward and inverse functions.

    Parameters
    ----------
    name : str
        Registry name.
    forward : callable
        Map from outcome units to modeling units.
    inverse : callable
        Map from modeling units back to outcome units.
    domain : callable, optional
        Predicate returning a boolean array that is True where the forward
        function is defined. ``None`` means the whole real line.
    domain_description : str, default="all real numbers"
        Human-readable description of the domain used in error messages.
    """

    name: str
    forward: ArrayFn
    inverse: ArrayFn
    domain: Optional[Callable[[np.ndarray], np.ndarray]] = None
    domain_description: str = "all real numbers"

    def check_domain(self, values) -> None:
        """Raise ``DomainError`` if any value lies outside the domain."""
        if self.domain is None:
            return
        values = np.asarray(values, dtype=float)
        bad = ~np.asarray(self.domain(values), dtype=bool)
        if bad.any():
            offending = np.unique(values[bad])[:5].tolist()
            raise DomainError(
                f"The {self.name!r} transform requires {self.domain_description}; "
                f"{int(bad.sum())} statistic(s) fall outside it "
                f"(e.g. {offending})"
            )

    def apply(self, values) -> np.ndarray:
        """Check the domain and apply the forward function."""
        self.check_domain(values)
        return np.asarray(self.forward(np.asarray(values, dtype=float)))

    def invert(self, values) -> np.ndarray:
        """Apply the inverse function."""
        return np.asarray(self.inverse(np.asarray(values, dtype=float)))


# ------------------------------------------------------------------------------
# Registry
# ------------------------------------------------------------------------------

_TRANSFORM_REGISTRY: Dict[str, Transform] = {}


def register_transform(
    name: str,
    forward: ArrayFn,
    inverse: ArrayFn,
    domain: Optional[Callable[[np.ndarray], np.ndarray]] = None,
    domain_description: str = "all real numbers",
    overwrite: bool = False,
) -> Transform:
    """
    Register a named transform.

    Parameters
    ----------
    name : str
        Registry name (case-insensitive).
    forward, inverse : callable
        Element-wise numpy functions; must be mutual inverses on the data.
    domain : callable, optional
        Predicate marking valid inputs of ``forward``.
    domain_description : str, default="all real numbers"
        Description used in ``DomainError`` messages.
    overwrite : bool, default=False
        Allow replacing an existing registration.

    Returns
    -------
    Transform
        The registered transform.

    Raises
    ------
    ValueError
        If ``name`` is already registered and ``overwrite`` is False.
    """
    key = name.lower()
    if key in _TRANSFORM_REGISTRY and not overwrite:
        raise ValueError(f"Transform {key!r} is already registered")
    transform = Transform(
        name=key,
        forward=forward,
        inverse=inverse,
        domain=domain,
        domain_description=domain_description,
    )
    _TRANSFORM_REGISTRY[key] = transform
    return transform


def get_transform(transform: Union[str, Transform, None]) -> Transform:
    """
    Resolve a transform name (or pass through a ``Transform``).

    ``None`` resolves to ``identity``.

    Raises
    ------
    KeyError
        If the name is not registered.
    """
    if transform is None:
        return _TRANSFORM_REGISTRY["identity"]
    if isinstance(transform, Transform):
        return transform
    key = str(transform).lower()
    if key not in _TRANSFORM_REGISTRY:
        raise KeyError(
            f"Unknown transform {transform!r}; registered transforms are "
            f"{available_transforms()}"
        )
    return _TRANSFORM_REGISTRY[key]


def available_transforms():
    """Sorted list of registered transform names."""
    return sorted(_TRANSFORM_REGISTRY)


# ------------------------------------------------------------------------------
# Built-in transforms
# ------------------------------------------------------------------------------

IDENTITY = register_transform(
    "identity", forward=lambda x: x, inverse=lambda x: x
)

LOG = register_transform(
    "log",
    forward=np.log,
    inverse=np.exp,
    domain=lambda x: x > 0,
    domain_description="strictly positive statistics",
)

LOGIT = register_transform(
    "logit",
    forward=logit,
    inverse=expit,
    domain=lambda x: (x > 0) & (x < 1),
    domain_description="statistics strictly between 0 and 1",
)

FISHER_Z = register_transform(
    "fisher_z",
    forward=np.arctanh,
    inverse=np.tanh,
    domain=lambda x: (x > -1) & (x < 1),
    domain_description="statistics strictly between -1 and 1",
)
