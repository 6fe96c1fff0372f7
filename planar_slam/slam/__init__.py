"""Planar SLAM values, nodes and factors.

This module implements the factor layer of an incremental least-squares
estimator for 2D SLAM: the SE(2) geometry, the pose and landmark unknowns,
and the four measurement factors with their residuals, analytic Jacobians
and initialization heuristics.

Main components:
    - Pose2, Point2: Immutable planar values
    - se2_compose, se2_inverse, se2_relative: SE(2) operations
    - se2_transform_to, se2_transform_from: Point transforms
    - Pose2Node, Point2Node: Unknown poses and landmarks
    - Point2PriorFactor, Pose2PriorFactor: Absolute priors
    - Pose2Pose2Factor: Odometry, loop closures and anchored constraints
    - Pose2Point2Factor: Landmark observations
    - sqrtinf_to_string, sqrtinf_from_string: Weighting matrix text form

Example usage:
    >>> from planar_slam.estimators import FactorGraph
    >>> from planar_slam.slam import (
    ...     Pose2, Pose2Node, create_odometry_factor, create_prior_factor)
    >>> import numpy as np
    >>>
    >>> graph = FactorGraph()
    >>> x0 = graph.add_node(Pose2Node())
    >>> x1 = graph.add_node(Pose2Node())
    >>> _ = graph.add_factor(create_prior_factor(x0, np.zeros(3)))
    >>> _ = graph.add_factor(create_odometry_factor(x0, x1, [1.0, 0.0, 0.0]))
    >>> x1.value()  # initialized from x0 and the odometry
    Pose2(x=1.0, y=0.0, yaw=0.0)
"""

from .factors import (
    Point2PriorFactor,
    Pose2Point2Factor,
    Pose2Pose2Factor,
    Pose2PriorFactor,
    create_anchored_factor,
    create_landmark_factor,
    create_loop_closure_factor,
    create_odometry_factor,
    create_point_prior_factor,
    create_prior_factor,
)
from .nodes import Point2Node, Pose2Node
from .se2 import (
    se2_compose,
    se2_inverse,
    se2_relative,
    se2_to_matrix,
    se2_transform_from,
    se2_transform_to,
)
from .sqrtinf import (
    parse_point2,
    parse_pose2,
    sqrtinf_from_covariance,
    sqrtinf_from_information,
    sqrtinf_from_string,
    sqrtinf_to_string,
)
from .types import Point2, Pose2

__all__ = [
    # Core types
    "Pose2",
    "Point2",
    # SE(2) operations
    "se2_compose",
    "se2_inverse",
    "se2_relative",
    "se2_transform_to",
    "se2_transform_from",
    "se2_to_matrix",
    # Nodes
    "Pose2Node",
    "Point2Node",
    # Factors
    "Point2PriorFactor",
    "Pose2PriorFactor",
    "Pose2Pose2Factor",
    "Pose2Point2Factor",
    "create_prior_factor",
    "create_point_prior_factor",
    "create_odometry_factor",
    "create_loop_closure_factor",
    "create_anchored_factor",
    "create_landmark_factor",
    # Weighting matrices and text forms
    "sqrtinf_to_string",
    "sqrtinf_from_string",
    "sqrtinf_from_information",
    "sqrtinf_from_covariance",
    "parse_pose2",
    "parse_point2",
]
