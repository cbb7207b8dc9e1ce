"""
Exception and warning types raised by perfbayes.

Validation errors (``SchemaError``, ``DomainError``,
``UnsupportedFamilyError``) are raised before any sampling work begins.
``SamplingError`` aborts a fit without returning partial draws.
``ConvergenceWarning`` is non-fatal: instances are attached to the fitted
draws and can be queried from them.

Every error also derives from the builtin exception a caller would naturally
catch (``ValueError`` for bad input, ``RuntimeError`` for sampler failures).
"""


class PerfBayesError(Exception):
    """Base class for all perfbayes errors."""


class SchemaError(PerfBayesError, ValueError):
    """The performance table is malformed or incomplete."""


class DomainError(PerfBayesError, ValueError):
    """A transform or family was applied outside its valid domain."""


class UnsupportedFamilyError(PerfBayesError, ValueError):
    """Unknown outcome family, or a link the family does not allow."""


class SamplingError(PerfBayesError, RuntimeError):
    """The posterior sampler could not produce any usable draws."""


class IncompatibleDrawsError(PerfBayesError, ValueError):
    """Posterior draws from different fits were combined."""


class ConvergenceWarning(UserWarning):
    """The sampler produced draws but flagged reliability concerns.

    Parameters
    ----------
    message : str
        Human-readable description of the problem.
    kind : str, default="other"
        Short machine-readable tag: ``"divergences"``, ``"rhat"``, ``"ess"``
        or ``"other"``.
    parameter : str, optional
        Name of the sampled site the diagnostic refers to, if any.
    value : float, optional
        Offending diagnostic value.
    """

    def __init__(self, message, kind="other", parameter=None, value=None):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.parameter = parameter
        self.value = value

    def __repr__(self):
        return (
            f"ConvergenceWarning(kind={self.kind!r}, "
            f"parameter={self.parameter!r}, message={self.message!r})"
        )
