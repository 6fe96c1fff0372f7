"""SE(2) operations for planar SLAM (Special Euclidean Group in 2D).

This module implements the closed-form operations on SE(2), the group of
rigid transformations in the plane, that the factors use to predict and
compare poses and landmark observations.

Key functions:
    - se2_compose: Compose two SE(2) poses (p1 ⊕ p2)
    - se2_inverse: Invert an SE(2) pose (p⁻¹)
    - se2_relative: Pose of p_to expressed in p_from's frame (p_from ⊖ p_to)
    - se2_transform_to: Express global points in a pose's local frame
    - se2_transform_from: Express local points in the global frame

SE(2) representation: poses are NumPy arrays [x, y, yaw] of shape (3,).
Anything convertible with np.asarray (lists, Pose2, Point2) is accepted.
Every pose returned has its yaw standardized to (-π, π].
"""

import numpy as np

from ..utils.angles import wrap_angle


def _as_pose(p, name: str) -> np.ndarray:
    p = np.asarray(p, dtype=np.float64)
    if p.shape != (3,):
        raise ValueError(f"{name} must have shape (3,), got {p.shape}")
    return p


def _as_points(points, name: str) -> np.ndarray:
    points = np.asarray(points, dtype=np.float64)
    if points.shape != (2,) and (points.ndim != 2 or points.shape[1] != 2):
        raise ValueError(
            f"{name} must have shape (2,) or (N, 2), got {points.shape}"
        )
    return points


def _rotation(yaw: float) -> np.ndarray:
    cos_yaw = np.cos(yaw)
    sin_yaw = np.sin(yaw)
    return np.array([[cos_yaw, -sin_yaw], [sin_yaw, cos_yaw]], dtype=np.float64)


def se2_compose(p1, p2) -> np.ndarray:
    """
    Compose two SE(2) poses: p_result = p1 ⊕ p2.

    Expresses p2, given in the frame of p1, in the frame p1 is given in.
    Used to predict a pose from a reference pose and a relative measurement.

    The composition formula for SE(2):
        x_result = x1 + x2*cos(yaw1) - y2*sin(yaw1)
        y_result = y1 + x2*sin(yaw1) + y2*cos(yaw1)
        yaw_result = yaw1 + yaw2  (standardized to (-π, π])

    Args:
        p1: First pose [x1, y1, yaw1].
        p2: Second pose [x2, y2, yaw2], relative to p1.

    Returns:
        Composed pose as array [x, y, yaw] of shape (3,).

    Raises:
        ValueError: If poses do not have shape (3,).

    Examples:
        >>> p1 = np.array([0, 0, np.pi/2])  # 90° rotation
        >>> p2 = np.array([1, 0, 0])  # 1m forward
        >>> result = se2_compose(p1, p2)
        >>> # After 90° rotation, forward becomes left (0, 1)
        >>> np.allclose(result, [0, 1, np.pi/2], atol=1e-10)
        True
    """
    p1 = _as_pose(p1, "p1")
    p2 = _as_pose(p2, "p2")

    x1, y1, yaw1 = p1
    x2, y2, yaw2 = p2

    cos_yaw1 = np.cos(yaw1)
    sin_yaw1 = np.sin(yaw1)

    x_result = x1 + x2 * cos_yaw1 - y2 * sin_yaw1
    y_result = y1 + x2 * sin_yaw1 + y2 * cos_yaw1
    yaw_result = wrap_angle(yaw1 + yaw2)

    return np.array([x_result, y_result, yaw_result], dtype=np.float64)


def se2_inverse(p) -> np.ndarray:
    """
    Compute the inverse of an SE(2) pose: p_inv = p⁻¹.

    The inverse formula for SE(2):
        x_inv = -(x*cos(yaw) + y*sin(yaw))
        y_inv = -(-x*sin(yaw) + y*cos(yaw))
        yaw_inv = -yaw  (standardized to (-π, π])

    Args:
        p: Pose to invert [x, y, yaw].

    Returns:
        Inverted pose as array [x, y, yaw] of shape (3,).

    Raises:
        ValueError: If pose does not have shape (3,).

    Examples:
        >>> p = np.array([1, 2, np.pi/4])
        >>> np.allclose(se2_compose(p, se2_inverse(p)), [0, 0, 0], atol=1e-10)
        True
    """
    p = _as_pose(p, "p")

    x, y, yaw = p

    cos_yaw = np.cos(yaw)
    sin_yaw = np.sin(yaw)

    x_inv = -(x * cos_yaw + y * sin_yaw)
    y_inv = -(-x * sin_yaw + y * cos_yaw)
    yaw_inv = wrap_angle(-yaw)

    return np.array([x_inv, y_inv, yaw_inv], dtype=np.float64)


def se2_relative(p_from, p_to) -> np.ndarray:
    """
    Compute the pose of p_to expressed in the frame of p_from.

    This is the inverse of composition, p_from ⊖ p_to = p_from⁻¹ ⊕ p_to,
    computed directly in closed form:
        [x, y] = R(-yaw_from) ([x_to, y_to] - [x_from, y_from])
        yaw = yaw_to - yaw_from  (standardized to (-π, π])

    Used to turn two absolute poses into the relative measurement an
    odometry or loop-closure sensor would report between them.

    Args:
        p_from: Reference pose [x, y, yaw].
        p_to: Target pose [x, y, yaw].

    Returns:
        Relative pose as array [x, y, yaw] of shape (3,).

    Examples:
        >>> p1 = np.array([0, 0, 0])
        >>> p2 = np.array([1, 1, np.pi/2])
        >>> np.allclose(se2_relative(p1, p2), [1, 1, np.pi/2], atol=1e-10)
        True
    """
    p_from = _as_pose(p_from, "p_from")
    p_to = _as_pose(p_to, "p_to")

    cos_yaw = np.cos(p_from[2])
    sin_yaw = np.sin(p_from[2])
    dx = p_to[0] - p_from[0]
    dy = p_to[1] - p_from[1]

    x_rel = cos_yaw * dx + sin_yaw * dy
    y_rel = -sin_yaw * dx + cos_yaw * dy
    yaw_rel = wrap_angle(p_to[2] - p_from[2])

    return np.array([x_rel, y_rel, yaw_rel], dtype=np.float64)


def se2_transform_to(p, points) -> np.ndarray:
    """
    Express global 2D points in the local frame of a pose.

        points_local = R(yaw)ᵀ (points - [x, y])

    Used by landmark observation residuals: the result is where the pose
    would observe the landmark.

    Args:
        p: Pose [x, y, yaw].
        points: Global point of shape (2,) or points of shape (N, 2).

    Returns:
        Local points, same shape as points.

    Raises:
        ValueError: If shapes are invalid.

    Examples:
        >>> p = np.array([1, 0, np.pi/2])
        >>> np.allclose(se2_transform_to(p, [1, 2]), [2, 0], atol=1e-10)
        True
    """
    p = _as_pose(p, "p")
    points = _as_points(points, "points")

    R = _rotation(p[2])
    return (points - p[:2]) @ R


def se2_transform_from(p, points) -> np.ndarray:
    """
    Express 2D points given in the local frame of a pose in the global frame.

        points_global = R(yaw) points_local + [x, y]

    Inverse of se2_transform_to(). Used to initialize a landmark from its
    first observation.

    Args:
        p: Pose [x, y, yaw].
        points: Local point of shape (2,) or points of shape (N, 2).

    Returns:
        Global points, same shape as points.

    Raises:
        ValueError: If shapes are invalid.

    Examples:
        >>> p = np.array([0, 0, np.pi/2])
        >>> pts = np.array([[1, 0], [0, 1]])
        >>> # [1,0] rotates to [0,1], [0,1] rotates to [-1,0]
        >>> np.allclose(se2_transform_from(p, pts), [[0, 1], [-1, 0]], atol=1e-10)
        True
    """
    p = _as_pose(p, "p")
    points = _as_points(points, "points")

    R = _rotation(p[2])
    return points @ R.T + p[:2]


def se2_to_matrix(p) -> np.ndarray:
    """
    Convert SE(2) pose to 3x3 homogeneous transformation matrix.

        T = [[cos(yaw), -sin(yaw), x],
             [sin(yaw),  cos(yaw), y],
             [       0,         0, 1]]

    Composition of poses corresponds to the matrix product of their
    homogeneous forms.

    Args:
        p: Pose [x, y, yaw].

    Returns:
        Homogeneous transformation matrix of shape (3, 3).
    """
    p = _as_pose(p, "p")

    T = np.eye(3, dtype=np.float64)
    T[:2, :2] = _rotation(p[2])
    T[:2, 2] = p[:2]
    return T
