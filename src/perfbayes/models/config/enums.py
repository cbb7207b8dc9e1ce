"""
Enums and constants for model configuration.

The outcome family, link function and interval method are all fixed sets of
choices. Keeping them as string enums lets configuration accept either the
enum member or its plain string value while still rejecting typos early.
"""

from enum import Enum

# ==============================================================================
# Enums for model configuration
# ==============================================================================


class FamilyType(str, Enum):
    """Supported outcome families."""

    GAUSSIAN = "gaussian"
    GAMMA = "gamma"
    BINOMIAL = "binomial"
    BETA = "beta"


# ------------------------------------------------------------------------------


class LinkType(str, Enum):
    """Supported link functions."""

    IDENTITY = "identity"
    LOG = "log"
    INVERSE = "inverse"
    LOGIT = "logit"
    PROBIT = "probit"


# ------------------------------------------------------------------------------


class IntervalMethod(str, Enum):
    """Credible interval construction methods."""

    EQUAL_TAILED = "equal_tailed"
    HDI = "hdi"
