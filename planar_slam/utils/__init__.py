"""
Utility functions shared across the package.

This module provides angle standardization and the scalar text form used by
the node and factor representations.
"""

from .angles import wrap_angle, wrap_angle_array, angle_diff
from .formatting import format_scalar, format_vector

__all__ = [
    'wrap_angle',
    'wrap_angle_array',
    'angle_diff',
    'format_scalar',
    'format_vector',
]
