"""Value types for planar SLAM.

This module defines the immutable values that the unknown variables of a
planar SLAM problem take, and that factors store as measurements.

Key types:
    - Point2: 2D point / landmark position [x, y]
    - Pose2: SE(2) pose [x, y, yaw] with oplus / ominus / transform operators

Both types convert to NumPy arrays (to_array() or np.asarray) and print in
the "(x, y)" / "(x, y, yaw)" text form used by node and factor output.
"""

from dataclasses import dataclass

import numpy as np

from ..utils.formatting import format_vector
from .se2 import (
    se2_compose,
    se2_inverse,
    se2_relative,
    se2_transform_from,
    se2_transform_to,
)


@dataclass(frozen=True)
class Point2:
    """
    2D point, used for landmark positions and landmark observations.

    Attributes:
        x: Position along the x-axis (meters).
        y: Position along the y-axis (meters).

    Examples:
        >>> q = Point2(x=2.0, y=1.0)
        >>> q.to_array()
        array([2., 1.])
        >>> str(q)
        '(2, 1)'
    """

    x: float
    y: float

    dim = 2

    def __post_init__(self) -> None:
        """Validate point values after initialization."""
        if not np.isfinite(self.x):
            raise ValueError(f"x must be finite, got {self.x}")
        if not np.isfinite(self.y):
            raise ValueError(f"y must be finite, got {self.y}")

    def to_array(self) -> np.ndarray:
        """Convert point to NumPy array [x, y] of shape (2,)."""
        return np.array([self.x, self.y], dtype=np.float64)

    def __array__(self, dtype=None, copy=None):
        return self.to_array() if dtype is None else self.to_array().astype(dtype)

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "Point2":
        """
        Create Point2 from array [x, y].

        Raises:
            ValueError: If array does not have shape (2,).
        """
        arr = np.asarray(arr, dtype=np.float64)
        if arr.shape != (2,):
            raise ValueError(f"Array must have shape (2,), got {arr.shape}")
        return cls(x=float(arr[0]), y=float(arr[1]))

    def __str__(self) -> str:
        return format_vector((self.x, self.y))


@dataclass(frozen=True)
class Pose2:
    """
    SE(2) pose: position (x, y) and heading (yaw).

    The heading is stored as given. Every pose produced by an operation
    (oplus, ominus, inverse) has its heading standardized to (-π, π].

    Attributes:
        x: Position along the x-axis (meters).
        y: Position along the y-axis (meters).
        yaw: Heading angle (radians), counter-clockwise from the x-axis.

    Examples:
        >>> a = Pose2(x=0.0, y=0.0, yaw=0.0)
        >>> b = a.oplus(Pose2(1.0, 0.0, np.pi / 2))  # 1m forward, turn left
        >>> a.ominus(b)  # b seen from a recovers the relative motion
        Pose2(x=1.0, y=0.0, yaw=1.5707963267948966)
    """

    x: float
    y: float
    yaw: float

    dim = 3

    def __post_init__(self) -> None:
        """Validate pose values after initialization."""
        if not np.isfinite(self.x):
            raise ValueError(f"x must be finite, got {self.x}")
        if not np.isfinite(self.y):
            raise ValueError(f"y must be finite, got {self.y}")
        if not np.isfinite(self.yaw):
            raise ValueError(f"yaw must be finite, got {self.yaw}")

    def to_array(self) -> np.ndarray:
        """Convert pose to NumPy array [x, y, yaw] of shape (3,)."""
        return np.array([self.x, self.y, self.yaw], dtype=np.float64)

    def __array__(self, dtype=None, copy=None):
        return self.to_array() if dtype is None else self.to_array().astype(dtype)

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "Pose2":
        """
        Create Pose2 from array [x, y, yaw].

        Raises:
            ValueError: If array does not have shape (3,).
        """
        arr = np.asarray(arr, dtype=np.float64)
        if arr.shape != (3,):
            raise ValueError(f"Array must have shape (3,), got {arr.shape}")
        return cls(x=float(arr[0]), y=float(arr[1]), yaw=float(arr[2]))

    @classmethod
    def identity(cls) -> "Pose2":
        """Create identity pose (origin with zero rotation)."""
        return cls(x=0.0, y=0.0, yaw=0.0)

    def translation(self) -> Point2:
        """Return the position part of the pose."""
        return Point2(self.x, self.y)

    def oplus(self, other: "Pose2") -> "Pose2":
        """
        Compose: self ⊕ other.

        Treats other as expressed in the frame of self and returns it in the
        frame self is expressed in.
        """
        return Pose2.from_array(se2_compose(self, other))

    def ominus(self, other: "Pose2") -> "Pose2":
        """
        Inverse composition: pose of other expressed in the frame of self.

        self.oplus(self.ominus(other)) == other, up to heading wrap.
        """
        return Pose2.from_array(se2_relative(self, other))

    def inverse(self) -> "Pose2":
        """Return the pose p⁻¹ with p ⊕ p⁻¹ = identity."""
        return Pose2.from_array(se2_inverse(self))

    def transform_to(self, point: Point2) -> Point2:
        """Express the global point in this pose's local frame."""
        return Point2.from_array(se2_transform_to(self, point))

    def transform_from(self, point: Point2) -> Point2:
        """Express a point given in this pose's local frame globally."""
        return Point2.from_array(se2_transform_from(self, point))

    def __str__(self) -> str:
        return format_vector((self.x, self.y, self.yaw))
