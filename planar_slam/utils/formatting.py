"""
Text formatting of scalars for the factor and node text representations.

Scalars are written in the shortest positional form that parses back to the
same float, without a trailing ".0" for integral values (1, 0.5, -2.25).
"""

import numpy as np


def format_scalar(value: float) -> str:
    """
    Format a float in its shortest round-trip positional form.

    Args:
        value: Finite scalar.

    Returns:
        Text such that float(text) == value.

    Example:
        >>> format_scalar(1.0)
        '1'
        >>> format_scalar(0.1)
        '0.1'
    """
    return np.format_float_positional(float(value), trim="-")


def format_vector(values) -> str:
    """Format a sequence of scalars as "(a, b, ...)"."""
    return "(" + ", ".join(format_scalar(v) for v in values) + ")"
