"""Factors for planar SLAM.

This module implements the measurement models of planar SLAM as factors of
the factor graph framework in planar_slam.estimators:

    - Point2PriorFactor: absolute prior on a landmark position
    - Pose2PriorFactor: absolute prior on a pose (origin, GPS, ...)
    - Pose2Pose2Factor: relative pose constraint (odometry, loop closure),
      optionally between two trajectories tied together by anchor nodes
    - Pose2Point2Factor: landmark observed in the frame of a pose

Each factor provides:
    - initialize(): seeds uninitialized nodes from initialized ones, so that
      a graph grown one measurement at a time always has a starting estimate
    - basic_error(): unwhitened residual, headings standardized to (-π, π]
    - jacobian(): analytic derivatives at the linearization point (the
      anchored pose constraint uses the numerical fallback of Factor)
    - write(): type, ids, measurement and weighting matrix as text

The create_* functions build factors from an information matrix instead of
a square-root information matrix.
"""

from typing import Optional

import numpy as np

from ..estimators.factor_graph import Factor, Jacobian, Node
from ..utils.angles import wrap_angle
from .nodes import Point2Node, Pose2Node
from .se2 import se2_compose, se2_relative, se2_transform_to
from .sqrtinf import sqrtinf_from_information, sqrtinf_to_string
from .types import Point2, Pose2


def _require_node(factor_name: str, role: str, node: Node, node_type: type) -> None:
    if not isinstance(node, node_type):
        raise TypeError(
            f"{factor_name}: {role} must be a {node_type.__name__}, "
            f"got {type(node).__name__}"
        )


def _as_value(value, value_type: type):
    if isinstance(value, value_type):
        return value
    return value_type.from_array(value)


class Point2PriorFactor(Factor):
    """
    Prior on a landmark position.

    Residual:
        e = point - prior

    Attributes:
        prior: Prior position (Point2).
    """

    def __init__(self, point: Point2Node, prior: Point2, sqrtinf: np.ndarray):
        """
        Args:
            point: Landmark node the prior acts on.
            prior: Prior position.
            sqrtinf: 2x2 upper-triangular square-root information matrix.
        """
        _require_node("Point2d_Factor", "point", point, Point2Node)
        super().__init__("Point2d_Factor", 2, sqrtinf, [point])
        self.prior = _as_value(prior, Point2)

    @property
    def point(self) -> Point2Node:
        return self.nodes[0]

    def initialize(self) -> None:
        if not self.point.initialized:
            self.point.init(self.prior)

    def basic_error(self, vectors):
        return np.asarray(vectors[0], dtype=np.float64) - self.prior.to_array()

    def jacobian(self) -> Jacobian:
        # The residual is linear in the point
        err = self.point.vector0() - self.prior.to_array()
        jac = Jacobian(self.sqrtinf @ err)
        jac.add_term(self.point, self.sqrtinf)
        return jac

    def write(self, out) -> None:
        self._write_header(out)
        out.write(f" {self.prior} {sqrtinf_to_string(self.sqrtinf)}")


class Pose2PriorFactor(Factor):
    """
    Prior on a pose.

    Residual:
        e = pose - prior, heading difference standardized to (-π, π]

    Attributes:
        prior: Prior pose (Pose2).
    """

    def __init__(self, pose: Pose2Node, prior: Pose2, sqrtinf: np.ndarray):
        """
        Args:
            pose: Pose node the prior acts on.
            prior: Prior pose.
            sqrtinf: 3x3 upper-triangular square-root information matrix.
        """
        _require_node("Pose2d_Factor", "pose", pose, Pose2Node)
        super().__init__("Pose2d_Factor", 3, sqrtinf, [pose])
        self.prior = _as_value(prior, Pose2)

    @property
    def pose(self) -> Pose2Node:
        return self.nodes[0]

    def initialize(self) -> None:
        if not self.pose.initialized:
            self.pose.init(self.prior)

    def basic_error(self, vectors):
        err = np.asarray(vectors[0], dtype=np.float64) - self.prior.to_array()
        err[2] = wrap_angle(err[2])
        return err

    def jacobian(self) -> Jacobian:
        # Derivatives are the identity, up to the heading wrap
        jac = Jacobian(self.sqrtinf @ self.basic_error([self.pose.vector0()]))
        jac.add_term(self.pose, self.sqrtinf)
        return jac

    def write(self, out) -> None:
        self._write_header(out)
        out.write(f" {self.prior} {sqrtinf_to_string(self.sqrtinf)}")


class Pose2Pose2Factor(Factor):
    """
    Relative pose constraint from pose1 to pose2 (odometry or loop closure).

    The measurement is pose2 expressed in the frame of pose1.

    Residual:
        e = (pose1 ⊖ pose2) - measure, heading standardized

    With anchor nodes, pose1 and pose2 belong to two separately
    parameterized trajectories whose frames are anchor1 and anchor2. Both
    poses are first moved into the common frame:
        e = ((anchor1 ⊕ pose1) ⊖ (anchor2 ⊕ pose2)) - measure

    Attributes:
        measure: Relative pose measurement (Pose2).
    """

    def __init__(
        self,
        pose1: Pose2Node,
        pose2: Pose2Node,
        measure: Pose2,
        sqrtinf: np.ndarray,
        anchor1: Optional[Pose2Node] = None,
        anchor2: Optional[Pose2Node] = None,
    ):
        """
        Args:
            pose1: Pose from which the measurement starts.
            pose2: Pose to which the measurement extends.
            measure: pose2 in the frame of pose1.
            sqrtinf: 3x3 upper-triangular square-root information matrix.
            anchor1: Anchor of the trajectory pose1 belongs to.
            anchor2: Anchor of the trajectory pose2 belongs to.

        Raises:
            ValueError: If exactly one anchor node is given.
        """
        name = "Pose2d_Pose2d_Factor"
        if (anchor1 is None) != (anchor2 is None):
            raise ValueError(f"{name} requires either 0 or 2 anchor nodes")

        nodes = [pose1, pose2]
        if anchor1 is not None:
            nodes += [anchor1, anchor2]
        for role, node in zip(("pose1", "pose2", "anchor1", "anchor2"), nodes):
            _require_node(name, role, node, Pose2Node)

        super().__init__(name, 3, sqrtinf, nodes)
        self.measure = _as_value(measure, Pose2)

    @property
    def pose1(self) -> Pose2Node:
        return self.nodes[0]

    @property
    def pose2(self) -> Pose2Node:
        return self.nodes[1]

    @property
    def has_anchors(self) -> bool:
        return len(self.nodes) == 4

    @property
    def anchor1(self) -> Optional[Pose2Node]:
        return self.nodes[2] if self.has_anchors else None

    @property
    def anchor2(self) -> Optional[Pose2Node]:
        return self.nodes[3] if self.has_anchors else None

    def initialize(self) -> None:
        """
        Seed pose2 (and anchor2) from pose1 (and anchor1).

        pose2 is predicted as pose1 ⊕ measure. anchor2 is the solution of
        anchor2 ⊕ pose2 = anchor1 ⊕ pose1 ⊕ measure, which makes the
        residual zero at the initial estimate.

        Raises:
            RuntimeError: If pose1, or anchor1 when anchors are used, is not
                initialized.
        """
        if not self.pose1.initialized:
            raise RuntimeError(f"{self.name} requires pose1 to be initialized")
        if self.has_anchors and not self.anchor1.initialized:
            raise RuntimeError(f"{self.name} requires anchor1 to be initialized")

        if not self.pose2.initialized:
            self.pose2.init(self.pose1.value().oplus(self.measure))

        if self.has_anchors and not self.anchor2.initialized:
            predicted = self.anchor1.value().oplus(self.pose1.value()).oplus(self.measure)
            self.anchor2.init(predicted.oplus(self.pose2.value().inverse()))

    def basic_error(self, vectors):
        p1, p2 = vectors[0], vectors[1]
        if len(vectors) == 4:
            p1 = se2_compose(vectors[2], p1)
            p2 = se2_compose(vectors[3], p2)
        err = se2_relative(p1, p2) - self.measure.to_array()
        err[2] = wrap_angle(err[2])
        return err

    def jacobian(self) -> Jacobian:
        if self.has_anchors:
            # Analytic derivatives only for the two-node case
            return super().jacobian()

        p1 = self.pose1.vector0()
        p2 = self.pose2.vector0()
        p = se2_relative(p1, p2)
        c = np.cos(p1[2])
        s = np.sin(p1[2])

        M1 = np.array([
            [-c, -s, p[1]],
            [s, -c, -p[0]],
            [0.0, 0.0, -1.0],
        ])
        M2 = np.array([
            [c, s, 0.0],
            [-s, c, 0.0],
            [0.0, 0.0, 1.0],
        ])

        err = p - self.measure.to_array()
        err[2] = wrap_angle(err[2])

        jac = Jacobian(self.sqrtinf @ err)
        jac.add_term(self.pose1, self.sqrtinf @ M1)
        jac.add_term(self.pose2, self.sqrtinf @ M2)
        return jac

    def write(self, out) -> None:
        self._write_header(out, self.nodes[:2])
        out.write(f" {self.measure} {sqrtinf_to_string(self.sqrtinf)}")
        if self.has_anchors:
            out.write(f" {self.anchor1.unique_id} {self.anchor2.unique_id}")


class Pose2Point2Factor(Factor):
    """
    Landmark observation.

    The measurement is the landmark position in the frame of the observing
    pose (forward, left).

    Residual:
        e = transform_to(pose, point) - measure

    Attributes:
        measure: Observed landmark position in the pose frame (Point2).
    """

    def __init__(
        self,
        pose: Pose2Node,
        point: Point2Node,
        measure: Point2,
        sqrtinf: np.ndarray,
    ):
        """
        Args:
            pose: Pose from which the landmark is observed.
            point: Landmark that is observed.
            measure: Landmark position in the pose frame.
            sqrtinf: 2x2 upper-triangular square-root information matrix.
        """
        name = "Pose2d_Point2d_Factor"
        _require_node(name, "pose", pose, Pose2Node)
        _require_node(name, "point", point, Point2Node)
        super().__init__(name, 2, sqrtinf, [pose, point])
        self.measure = _as_value(measure, Point2)

    @property
    def pose(self) -> Pose2Node:
        return self.nodes[0]

    @property
    def point(self) -> Point2Node:
        return self.nodes[1]

    def initialize(self) -> None:
        """
        Seed the landmark from the observation.

        Raises:
            RuntimeError: If the pose is not initialized.
        """
        if not self.pose.initialized:
            raise RuntimeError(f"{self.name} requires pose to be initialized")
        if not self.point.initialized:
            self.point.init(self.pose.value().transform_from(self.measure))

    def basic_error(self, vectors):
        return se2_transform_to(vectors[0], vectors[1]) - self.measure.to_array()

    def jacobian(self) -> Jacobian:
        po = self.pose.vector0()
        pt = self.point.vector0()
        c = np.cos(po[2])
        s = np.sin(po[2])
        dx = pt[0] - po[0]
        dy = pt[1] - po[1]
        x = c * dx + s * dy  # forward
        y = -s * dx + c * dy  # left

        M1 = np.array([
            [-c, -s, y],
            [s, -c, -x],
        ])
        M2 = np.array([
            [c, s],
            [-s, c],
        ])

        jac = Jacobian(self.sqrtinf @ (np.array([x, y]) - self.measure.to_array()))
        jac.add_term(self.pose, self.sqrtinf @ M1)
        jac.add_term(self.point, self.sqrtinf @ M2)
        return jac

    def write(self, out) -> None:
        self._write_header(out)
        out.write(f" {self.measure} {sqrtinf_to_string(self.sqrtinf)}")


def _sqrtinf_or_identity(information: Optional[np.ndarray], dim: int) -> np.ndarray:
    if information is None:
        return np.eye(dim)
    return sqrtinf_from_information(information)


def create_prior_factor(
    pose: Pose2Node,
    prior_pose: np.ndarray,
    information: Optional[np.ndarray] = None,
) -> Pose2PriorFactor:
    """
    Create prior factor anchoring a pose to a known value.

    This is used to:
        - Fix the first pose in the trajectory (anchor the origin)
        - Incorporate GPS or other absolute pose measurements

    Args:
        pose: Pose node to constrain.
        prior_pose: Prior pose value [x, y, yaw] or Pose2.
        information: Information matrix (3, 3). If None, uses identity.

    Returns:
        Pose2PriorFactor instance.

    Examples:
        >>> pose = Pose2Node()
        >>> factor = create_prior_factor(pose, np.array([0.0, 0.0, 0.0]),
        ...                              information=np.diag([1e6, 1e6, 1e6]))
    """
    return Pose2PriorFactor(pose, prior_pose, _sqrtinf_or_identity(information, 3))


def create_point_prior_factor(
    point: Point2Node,
    prior_point: np.ndarray,
    information: Optional[np.ndarray] = None,
) -> Point2PriorFactor:
    """
    Create prior factor on a landmark position (e.g. a surveyed marker).

    Args:
        point: Landmark node to constrain.
        prior_point: Prior position [x, y] or Point2.
        information: Information matrix (2, 2). If None, uses identity.

    Returns:
        Point2PriorFactor instance.
    """
    return Point2PriorFactor(point, prior_point, _sqrtinf_or_identity(information, 2))


def create_odometry_factor(
    pose_from: Pose2Node,
    pose_to: Pose2Node,
    relative_pose: np.ndarray,
    information: Optional[np.ndarray] = None,
) -> Pose2Pose2Factor:
    """
    Create odometry factor connecting two consecutive poses.

    Args:
        pose_from: Starting pose node.
        pose_to: Ending pose node.
        relative_pose: Measured motion [Δx, Δy, Δyaw] in the frame of
            pose_from, or Pose2.
        information: Information matrix (3, 3). If None, uses identity.

    Returns:
        Pose2Pose2Factor instance.

    Examples:
        >>> # Robot moved 1m forward, 0.5m left, rotated 30° left
        >>> cov = np.diag([0.01, 0.04, 0.001])
        >>> factor = create_odometry_factor(
        ...     Pose2Node(), Pose2Node(), np.array([1.0, 0.5, np.pi/6]),
        ...     information=np.linalg.inv(cov))
    """
    return Pose2Pose2Factor(
        pose_from, pose_to, relative_pose, _sqrtinf_or_identity(information, 3)
    )


def create_loop_closure_factor(
    pose_from: Pose2Node,
    pose_to: Pose2Node,
    relative_pose: np.ndarray,
    information: Optional[np.ndarray] = None,
) -> Pose2Pose2Factor:
    """
    Create loop closure factor connecting non-consecutive poses.

    Structurally identical to an odometry factor; the relative pose
    typically comes from scan matching or place recognition. Both poses are
    usually initialized already, in which case initialize() changes nothing.

    Args:
        pose_from: Earlier pose node.
        pose_to: Later pose node.
        relative_pose: Relative pose [Δx, Δy, Δyaw] of pose_to in the frame
            of pose_from, or Pose2.
        information: Information matrix (3, 3). If None, uses identity.

    Returns:
        Pose2Pose2Factor instance.
    """
    return create_odometry_factor(pose_from, pose_to, relative_pose, information)


def create_anchored_factor(
    pose1: Pose2Node,
    pose2: Pose2Node,
    relative_pose: np.ndarray,
    anchor1: Pose2Node,
    anchor2: Pose2Node,
    information: Optional[np.ndarray] = None,
) -> Pose2Pose2Factor:
    """
    Create a relative pose constraint between two trajectories.

    Each trajectory is optimized in its own frame; anchor1 and anchor2 are
    the poses of those frames. The first constraint between the trajectories
    initializes anchor2 from anchor1.

    Args:
        pose1: Pose of the first trajectory, in its own frame.
        pose2: Pose of the second trajectory, in its own frame.
        relative_pose: pose2 in the frame of pose1, [Δx, Δy, Δyaw] or Pose2.
        anchor1: Anchor of the first trajectory.
        anchor2: Anchor of the second trajectory.
        information: Information matrix (3, 3). If None, uses identity.

    Returns:
        Pose2Pose2Factor instance with four nodes.
    """
    return Pose2Pose2Factor(
        pose1,
        pose2,
        relative_pose,
        _sqrtinf_or_identity(information, 3),
        anchor1=anchor1,
        anchor2=anchor2,
    )


def create_landmark_factor(
    pose: Pose2Node,
    landmark: Point2Node,
    observation: np.ndarray,
    information: Optional[np.ndarray] = None,
) -> Pose2Point2Factor:
    """
    Create landmark observation factor.

    Args:
        pose: Observing pose node.
        landmark: Landmark node.
        observation: Landmark in the pose frame [x_local, y_local] or Point2.
        information: Information matrix (2, 2). If None, uses identity.

    Returns:
        Pose2Point2Factor instance.

    Examples:
        >>> # Landmark seen 2m ahead and 1m to the left, 10cm noise
        >>> info = np.linalg.inv(np.diag([0.01, 0.01]))
        >>> factor = create_landmark_factor(Pose2Node(), Point2Node(),
        ...                                 np.array([2.0, 1.0]), information=info)
    """
    return Pose2Point2Factor(
        pose, landmark, observation, _sqrtinf_or_identity(information, 2)
    )
