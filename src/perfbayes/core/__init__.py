"""
Core input handling for perfbayes: table normalization and outcome transforms.
"""

from .input_processor import (
    InputProcessor,
    PerformanceTable,
    from_long,
    normalize_table,
)
from .transforms import (
    Transform,
    available_transforms,
    get_transform,
    register_transform,
)

__all__ = [
    "InputProcessor",
    "PerformanceTable",
    "normalize_table",
    "from_long",
    "Transform",
    "get_transform",
    "register_transform",
    "available_transforms",
]
