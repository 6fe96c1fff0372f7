"""Typed unknown variables for planar SLAM.

    - Pose2Node: robot pose, value Pose2
    - Point2Node: landmark position, value Point2

Factors check the node types they are given at construction, so a mismatch
fails before any node is read or initialized.
"""

from ..estimators.factor_graph import Node
from .types import Point2, Pose2


class Pose2Node(Node):
    """Unknown SE(2) pose."""

    value_type = Pose2
    name = "Pose2d"


class Point2Node(Node):
    """Unknown 2D point (landmark)."""

    value_type = Point2
    name = "Point2d"
