"""
Angle standardization utilities.

Headings and heading differences are kept in the half-open range (-π, π].
Every residual and every initialization guess with an angular component is
passed through these functions, so that a heading error of 359° is seen by
the optimizer as -1°.

Critical for:
- Heading residuals of pose priors and relative pose constraints
- Composition of poses (oplus / ominus)
"""

from typing import Union

import numpy as np


def wrap_angle(angle: float) -> float:
    """
    Standardize angle to the (-π, π] range.

    Angles already inside the range are returned unchanged, which makes the
    function idempotent. The lower bound is open: -π maps to +π, so that both
    representations of the same heading produce the same value.

    Args:
        angle: Angle in radians (can be any finite value)

    Returns:
        Standardized angle in range (-π, π]

    Example:
        >>> wrap_angle(3.5 * np.pi)  # 630° -> -90°
        -1.5707963267948966
        >>> wrap_angle(-np.pi)  # -180° -> 180°
        3.141592653589793
    """
    angle = float(angle)
    if -np.pi < angle <= np.pi:
        return angle

    wrapped = np.pi - np.mod(np.pi - angle, 2.0 * np.pi)
    # np.mod may round up to exactly 2π
    if wrapped <= -np.pi:
        wrapped += 2.0 * np.pi
    return float(wrapped)


def wrap_angle_array(angles: np.ndarray) -> np.ndarray:
    """
    Standardize an array of angles to the (-π, π] range.

    Vectorized version of wrap_angle().

    Args:
        angles: Array of angles in radians

    Returns:
        Array of standardized angles, same shape as the input

    Example:
        >>> wrap_angle_array(np.array([0.0, -np.pi, 3 * np.pi / 2]))
        array([ 0.        ,  3.14159265, -1.57079633])
    """
    angles = np.asarray(angles, dtype=np.float64)
    in_range = (angles > -np.pi) & (angles <= np.pi)
    wrapped = np.pi - np.mod(np.pi - angles, 2.0 * np.pi)
    wrapped = np.where(wrapped <= -np.pi, wrapped + 2.0 * np.pi, wrapped)
    return np.where(in_range, angles, wrapped)


def angle_diff(angle1: Union[float, np.ndarray],
               angle2: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Compute the shortest signed angular difference angle1 - angle2.

    Args:
        angle1: First angle in radians
        angle2: Second angle in radians

    Returns:
        Difference angle1 - angle2 standardized to (-π, π]

    Example:
        >>> round(angle_diff(np.pi - 0.1, -np.pi + 0.1), 10)
        -0.2
    """
    if isinstance(angle1, np.ndarray) or isinstance(angle2, np.ndarray):
        return wrap_angle_array(np.asarray(angle1) - np.asarray(angle2))
    else:
        return wrap_angle(angle1 - angle2)
